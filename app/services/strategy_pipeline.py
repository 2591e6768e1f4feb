from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import AuthorizationDenied, NotFound
from app.models.cases import Case
from app.models.strategy import DocumentKind, GeneratedDocument
from app.schemas.content import CaseIntake
from app.services.auth_dependencies import Principal
from app.services.common import try_coerce_uuid
from app.services.content_generator import ContentGenerator
from app.services.document_renderer import DOCUMENT_TITLES, DocumentRenderer
from app.services.document_store import DocumentStore
from app.services.notification import notifications

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    document: GeneratedDocument
    degraded: bool


class StrategyPipeline:
    """intake -> content -> rendering -> stored draft (+ admin review alert)."""

    def __init__(
        self,
        generator: ContentGenerator,
        renderer: DocumentRenderer,
        store: DocumentStore,
    ):
        self.generator = generator
        self.renderer = renderer
        self.store = store

    def _load_case(self, db: Session, case_id, principal: Principal) -> Case:
        case_uuid = try_coerce_uuid(case_id)
        case = db.get(Case, case_uuid) if case_uuid else None
        if case is None or not case.is_active:
            if principal.is_admin:
                raise NotFound("Case not found")
            logger.info("Case %s not found for user %s", case_id, principal.user_id)
            raise AuthorizationDenied("You do not have access to this case")
        if not principal.is_admin and case.person_id != principal.user_id:
            logger.warning(
                "User %s denied generation for case %s owned by %s",
                principal.user_id,
                case.id,
                case.person_id,
            )
            raise AuthorizationDenied("You do not have access to this case")
        return case

    def generate(
        self,
        db: Session,
        principal: Principal,
        case_id,
        intake: CaseIntake,
        kind: DocumentKind = DocumentKind.strategy_pack,
        include_word: bool = True,
    ) -> PipelineResult:
        case = self._load_case(db, case_id, principal)
        generation = self.generator.generate_with_status(intake)
        content = generation.content
        rendered = self.renderer.render(content, kind, include_word=include_word)

        metadata = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "model": None if generation.degraded else self.generator.model,
            "amount": content.amount,
            "issue_type": content.issue_type,
            "omitted_sections": list(rendered.omitted_sections),
        }
        if generation.degraded:
            metadata["fallback_reason"] = generation.reason

        document = self.store.persist(
            db,
            rendered,
            case_id=case.id,
            user_id=case.person_id,
            kind=kind,
            title=f"{DOCUMENT_TITLES[kind]} - {intake.case_title}",
            content=content,
            intake=intake,
            is_fallback=generation.degraded,
            metadata=metadata,
        )
        self._alert_reviewers(db, document)
        logger.info(
            "Generated %s document %s for case %s (fallback=%s)",
            kind.value,
            document.id,
            case.id,
            generation.degraded,
        )
        return PipelineResult(document=document, degraded=generation.degraded)

    @staticmethod
    def _alert_reviewers(db: Session, document: GeneratedDocument) -> None:
        # The stored draft stands on its own; the admin-alert sweep retries this.
        try:
            notifications.notify_document_review(db, document)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(
                "Could not queue review alert for document %s: %s", document.id, e
            )
