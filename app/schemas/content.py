from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.cases import IssueType, Urgency
from app.models.strategy import DocumentKind


# ---------------------------------------------------------------------------
# CaseIntake (immutable once submitted)
# ---------------------------------------------------------------------------


class CaseIntake(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_name: str = Field(min_length=1, max_length=160)
    client_email: str = Field(min_length=3, max_length=255)
    client_phone: str | None = Field(default=None, max_length=40)
    client_address: str | None = None
    case_title: str = Field(min_length=1, max_length=500)
    issue_type: IssueType = IssueType.other
    description: str = Field(min_length=1)
    amount: Decimal | None = Field(default=None, ge=0)
    urgency: Urgency = Urgency.medium
    incident_date: date | None = None
    discovery_date: date | None = None
    deadline_date: date | None = None
    previous_actions: str | None = None
    desired_outcome: str | None = None

    @field_validator("issue_type", mode="before")
    @classmethod
    def _coerce_issue_type(cls, value):
        # Unrecognised categories are treated as "other" rather than rejected.
        if isinstance(value, IssueType):
            return value
        normalized = str(value or "").strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return IssueType(normalized)
        except ValueError:
            return IssueType.other

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("description must not be blank")
        return value.strip()


# ---------------------------------------------------------------------------
# GeneratedContent (whole-object replace on edit)
# ---------------------------------------------------------------------------


class ActionStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    step: int = Field(ge=1)
    title: str = Field(min_length=1)
    description: str
    timeframe: str
    priority: Literal["low", "medium", "high"] = "medium"


class TimelineEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str = Field(min_length=1)
    action: str = Field(min_length=1)
    deadline: str | None = None
    is_deadline: bool = False


class CostEstimate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    adjudication_fee: str = ""
    adjudicator_fee: str = ""
    recovery_likelihood: str = ""
    total_estimated_cost: str = ""

    def rows(self) -> list[tuple[str, str]]:
        rows = [
            ("Adjudication Fee", self.adjudication_fee),
            ("Adjudicator Fee", self.adjudicator_fee),
            ("Recovery Likelihood", self.recovery_likelihood),
            ("Total Estimated Cost", self.total_estimated_cost),
        ]
        return [(label, value) for label, value in rows if value]


class RiskAssessment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success_probability: int | None = Field(default=None, ge=0, le=100)
    risks: list[str] = Field(default_factory=list)
    mitigation_strategies: list[str] = Field(default_factory=list)


class GeneratedContent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    client_name: str
    case_title: str
    amount: str
    issue_type: str
    description: str
    welcome_message: str
    legal_analysis: str
    how_it_works: str = ""
    recommended_actions: list[ActionStep] = Field(default_factory=list)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    cost_estimate: CostEstimate = Field(default_factory=CostEstimate)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    next_steps: str = ""
    attachments: list[str] = Field(default_factory=list)
    document_templates: dict[DocumentKind, str] = Field(default_factory=dict)
