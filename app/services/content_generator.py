"""
Strategy content generation for case intakes.

A JSON-mode chat completion produces the structured ``GeneratedContent``.
Whenever the model is unconfigured, times out, errors, or answers with
something that does not validate, a fallback object templated from the
intake is returned instead so the pipeline keeps moving.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from decimal import Decimal

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from app.config import Settings, settings
from app.metrics import STRATEGY_GENERATIONS
from app.models.strategy import DocumentKind
from app.schemas.content import (
    ActionStep,
    CaseIntake,
    CostEstimate,
    GeneratedContent,
    RiskAssessment,
    TimelineEntry,
)

logger = logging.getLogger(__name__)

AMOUNT_PLACEHOLDER = "Amount to be determined"
NOT_SPECIFIED = "Not specified"

SYSTEM_MESSAGE = (
    "You are a legal AI assistant specialised in Australian construction law "
    "and the Security of Payment Act. Provide practical, actionable guidance "
    "for tradespeople. Respond with a single JSON object only."
)

RESPONSE_SHAPE = """{
  "welcome_message": "Personalised welcome acknowledging their situation",
  "legal_analysis": "Analysis of their legal position and rights",
  "how_it_works": "Why the Security of Payment Act does or doesn't apply and how the process works",
  "recommended_actions": [
    {"step": 1, "title": "Step title", "description": "What to do",
     "timeframe": "How long it takes", "priority": "high|medium|low"}
  ],
  "timeline": [
    {"label": "Day 0 or YYYY-MM-DD", "action": "Action to take",
     "deadline": "Deadline note or null", "is_deadline": true}
  ],
  "cost_estimate": {
    "adjudication_fee": "Cost estimate", "adjudicator_fee": "Fee range",
    "recovery_likelihood": "Likelihood assessment",
    "total_estimated_cost": "Total estimated cost"
  },
  "risk_assessment": {
    "success_probability": 0, "risks": ["..."], "mitigation_strategies": ["..."]
  },
  "next_steps": "Clear next steps and recommendations",
  "attachments": ["Recommended attachments"],
  "document_templates": {
    "demand_letter": "Letter body", "notice_to_complete": "Notice body",
    "adjudication_application": "Application body"
  }
}"""


def format_currency(amount) -> str | None:
    """``15000`` -> ``"$15,000"``; cents are kept only when present."""
    if amount is None:
        return None
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"${value:,.0f}"
    return f"${value:,.2f}"


class GenerationDegraded(Exception):
    """The model could not supply usable content; fallback applies."""


@dataclass(frozen=True)
class GenerationResult:
    content: GeneratedContent
    degraded: bool
    reason: str | None = None


class ContentGenerator:
    def __init__(
        self,
        client: OpenAI | None,
        model: str = "gpt-4o",
        temperature: float = 0.3,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "ContentGenerator":
        client = None
        if config.openai_api_key:
            client = OpenAI(
                api_key=config.openai_api_key,
                timeout=config.openai_timeout,
                max_retries=1,
            )
        return cls(client, model=config.openai_model, temperature=config.openai_temperature)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, intake: CaseIntake) -> GeneratedContent:
        return self.generate_with_status(intake).content

    def generate_with_status(self, intake: CaseIntake) -> GenerationResult:
        try:
            content = self._generate_from_model(intake)
        except GenerationDegraded as e:
            logger.warning(
                "Using fallback content for case '%s': %s", intake.case_title, e
            )
            return self._fallback_result(intake, str(e))
        except Exception as e:
            logger.exception(
                "Unexpected error generating content for case '%s'", intake.case_title
            )
            return self._fallback_result(intake, f"Unexpected error: {e}")
        STRATEGY_GENERATIONS.labels(source="ai").inc()
        logger.info("Generated AI content for case '%s'", intake.case_title)
        return GenerationResult(content=content, degraded=False)

    def build_prompt(self, intake: CaseIntake) -> str:
        amount = format_currency(intake.amount) or NOT_SPECIFIED
        lines = [
            "Analyse the following case and generate a comprehensive "
            '"RESOLVE - FOR TRADIES" strategy document.',
            "",
            "Case Information:",
            f"- Client: {intake.client_name}",
            f"- Case Title: {intake.case_title}",
            f"- Issue Type: {intake.issue_type.value}",
            f"- Amount: {amount}",
            f"- Urgency: {intake.urgency.value}",
            f"- Description: {intake.description}",
            f"- Incident Date: {_date_or_placeholder(intake.incident_date)}",
            f"- Discovery Date: {_date_or_placeholder(intake.discovery_date)}",
            f"- Deadline Date: {_date_or_placeholder(intake.deadline_date)}",
            f"- Previous Actions: {intake.previous_actions or NOT_SPECIFIED}",
            f"- Desired Outcome: {intake.desired_outcome or NOT_SPECIFIED}",
            "",
            "Focus on practical, actionable advice for Australian tradespeople, "
            "particularly around the Security of Payment Act. Keep steps and "
            "timeline entries in the order the client should act on them.",
            "",
            "Return your response as JSON with the following structure:",
            RESPONSE_SHAPE,
        ]
        return "\n".join(lines)

    def parse_content(self, intake: CaseIntake, payload: dict) -> GeneratedContent:
        known = set(GeneratedContent.model_fields)
        unknown = sorted(set(payload) - known)
        if unknown:
            logger.debug("Ignoring unexpected model keys: %s", ", ".join(unknown))
        data = {key: value for key, value in payload.items() if key in known}
        _relax_nested(data)
        data.update(_identity_fields(intake))
        try:
            return GeneratedContent.model_validate(data)
        except ValidationError as e:
            raise GenerationDegraded(
                f"Model response failed validation ({e.error_count()} errors)"
            ) from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _generate_from_model(self, intake: CaseIntake) -> GeneratedContent:
        if self.client is None:
            raise GenerationDegraded("OPENAI_API_KEY is not configured")
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": self.build_prompt(intake)},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise GenerationDegraded(f"Model call failed: {e}") from e

        raw = response.choices[0].message.content if response.choices else None
        if not raw:
            raise GenerationDegraded("Model returned no content")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise GenerationDegraded(f"Model returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise GenerationDegraded("Model returned JSON that is not an object")
        return self.parse_content(intake, payload)

    def _fallback_result(self, intake: CaseIntake, reason: str) -> GenerationResult:
        STRATEGY_GENERATIONS.labels(source="fallback").inc()
        return GenerationResult(
            content=fallback_content(intake), degraded=True, reason=reason
        )


def _date_or_placeholder(value) -> str:
    return value.isoformat() if value else NOT_SPECIFIED


# Nested parts of the model answer; admin edits are validated strictly instead.
_NESTED_LISTS = {"recommended_actions": ActionStep, "timeline": TimelineEntry}
_NESTED_OBJECTS = {"cost_estimate": CostEstimate, "risk_assessment": RiskAssessment}


def _known_keys(model, value):
    if not isinstance(value, dict):
        return value
    return {k: v for k, v in value.items() if k in model.model_fields}


def _relax_nested(data: dict) -> None:
    """Drop unknown nested keys and round the success percentage in place."""
    for key, model in _NESTED_LISTS.items():
        if isinstance(data.get(key), list):
            data[key] = [_known_keys(model, item) for item in data[key]]
    for key, model in _NESTED_OBJECTS.items():
        if key in data:
            data[key] = _known_keys(model, data[key])

    risk = data.get("risk_assessment")
    if isinstance(risk, dict):
        probability = risk.get("success_probability")
        if isinstance(probability, str):
            try:
                probability = float(probability.strip().rstrip("%"))
            except ValueError:
                probability = None
        if isinstance(probability, float) and math.isfinite(probability):
            risk["success_probability"] = min(100, max(0, round(probability)))
        elif probability is None or isinstance(probability, float):
            risk["success_probability"] = None


def _identity_fields(intake: CaseIntake) -> dict:
    return {
        "client_name": intake.client_name,
        "case_title": intake.case_title,
        "amount": format_currency(intake.amount) or AMOUNT_PLACEHOLDER,
        "issue_type": intake.issue_type.value,
        "description": intake.description,
    }


def fallback_content(intake: CaseIntake) -> GeneratedContent:
    identity = _identity_fields(intake)
    issue = intake.issue_type
    amount = format_currency(intake.amount)
    amount_clause = f" involving {amount}" if amount else ""

    timeline = [
        {
            "label": "Day 0",
            "action": "Send Payment Claim under the Security of Payment Act",
            "deadline": "Today",
            "is_deadline": False,
        },
        {
            "label": "Day 10",
            "action": "Deadline for the other party to respond with a payment schedule",
            "deadline": "Critical deadline",
            "is_deadline": True,
        },
        {
            "label": "Day 11-15",
            "action": "Apply for adjudication if no response is received",
            "deadline": "Action window",
            "is_deadline": False,
        },
    ]
    if intake.deadline_date:
        timeline.append(
            {
                "label": intake.deadline_date.isoformat(),
                "action": "Your nominated deadline for this matter",
                "deadline": "Client deadline",
                "is_deadline": True,
            }
        )

    claim_amount = amount or "the amount owed"
    return GeneratedContent.model_validate(
        {
            **identity,
            "welcome_message": (
                "Thanks for reaching out. I understand you're dealing with a "
                f"{issue.label} issue ({issue.value}){amount_clause}, and I'm here "
                "to help you navigate this situation effectively."
            ),
            "legal_analysis": (
                f"Based on your {issue.label} matter, you have legal protections "
                "under Australian construction law. Even without a formal written "
                "contract, you may have rights to payment for work completed and "
                "can take action to recover what you're owed."
            ),
            "how_it_works": (
                "The Security of Payment Act typically applies to construction work "
                "and related services, providing fast-track dispute resolution for "
                "payment issues."
            ),
            "recommended_actions": [
                {
                    "step": 1,
                    "title": "Issue Payment Claim",
                    "description": (
                        "Send a formal payment claim under the Security of Payment "
                        f"Act, clearly stating {claim_amount} and the work completed."
                    ),
                    "timeframe": "Immediate action required",
                    "priority": "high",
                },
                {
                    "step": 2,
                    "title": "Await Payment Schedule",
                    "description": (
                        "The other party has 10 business days to respond with a "
                        "payment schedule or reasons for non-payment."
                    ),
                    "timeframe": "10 business days",
                    "priority": "medium",
                },
                {
                    "step": 3,
                    "title": "Consider Adjudication",
                    "description": (
                        "If there is no response or the claim is disputed, you can "
                        "apply for adjudication for a binding decision."
                    ),
                    "timeframe": "Available after 10 business days",
                    "priority": "medium",
                },
            ],
            "timeline": timeline,
            "cost_estimate": {
                "adjudication_fee": "Often free through some providers",
                "adjudicator_fee": "$500 - $1,500 depending on complexity",
                "recovery_likelihood": "High if paperwork is correct and claim is valid",
                "total_estimated_cost": "$500 - $1,500 (may be recoverable if successful)",
            },
            "risk_assessment": {
                "success_probability": None,
                "risks": ["Missing the 10 business day response window"],
                "mitigation_strategies": [
                    "Keep detailed records of all communications and deadlines"
                ],
            },
            "next_steps": (
                "Review the attached payment claim template, customise it with your "
                "specific details, and send it to the other party. Keep detailed "
                "records of all communications and deadlines."
            ),
            "attachments": [
                "Payment Claim Letter Template",
                "Supporting Documentation Checklist",
                "Timeline Tracker",
            ],
            "document_templates": {
                DocumentKind.demand_letter.value: (
                    f"Re: {intake.case_title}\n\n"
                    f"We write on behalf of {intake.client_name} regarding "
                    f"{claim_amount} outstanding for work performed. Payment is "
                    "requested within 10 business days of the date of this letter."
                ),
                DocumentKind.notice_to_complete.value: (
                    f"Re: {intake.case_title}\n\n"
                    "You are requested to complete the outstanding obligations "
                    "under the agreement within 10 business days."
                ),
                DocumentKind.adjudication_application.value: (
                    f"Claimant: {intake.client_name}\n"
                    f"Claimed amount: {claim_amount}\n\n"
                    "This application is made under the Security of Payment Act "
                    "following the respondent's failure to provide a payment schedule."
                ),
            },
        }
    )
