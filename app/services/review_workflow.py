from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, settings
from app.errors import (
    AuthorizationDenied,
    DeliveryFailure,
    InvalidContent,
    InvalidTransition,
    PersistenceFailure,
)
from app.models.strategy import (
    DeliveryStatus,
    DocumentDelivery,
    GeneratedDocument,
    ReviewStatus,
)
from app.schemas.content import GeneratedContent
from app.services.auth_dependencies import Principal
from app.services.common import apply_pagination
from app.services.delivery import DeliveryNotifier
from app.services.document_renderer import DOCUMENT_TITLES, DocumentRenderer
from app.services.document_store import DocumentStore
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

TRANSITIONS: dict[ReviewStatus, frozenset[ReviewStatus]] = {
    ReviewStatus.draft: frozenset({ReviewStatus.reviewed}),
    ReviewStatus.reviewed: frozenset({ReviewStatus.sent}),
    ReviewStatus.sent: frozenset(),
}

PENDING_STATUSES = (ReviewStatus.draft, ReviewStatus.reviewed)


def transition(current: ReviewStatus, target: ReviewStatus) -> ReviewStatus:
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot move a document from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return target


def parse_status(value: str) -> ReviewStatus:
    try:
        return ReviewStatus(value)
    except ValueError:
        raise InvalidTransition(
            f"Unknown status '{value}'",
            details={"allowed": [s.value for s in ReviewStatus]},
        )


def validate_content(payload: dict) -> GeneratedContent:
    try:
        return GeneratedContent.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors(include_url=False)
        ]
        raise InvalidContent("Document content is invalid", details=errors) from e


@dataclass(frozen=True)
class SendOutcome:
    document: GeneratedDocument
    delivery: DocumentDelivery
    dev_mode: bool


class ReviewWorkflow(ListResponseMixin):
    """Admin approval gate: draft -> reviewed -> sent."""

    def __init__(
        self,
        store: DocumentStore,
        renderer: DocumentRenderer,
        notifier: DeliveryNotifier,
        max_attachment_bytes: int = 10 * 1024 * 1024,
        link_expiry: int = 7 * 24 * 60 * 60,
    ):
        self.store = store
        self.renderer = renderer
        self.notifier = notifier
        self.max_attachment_bytes = max_attachment_bytes
        self.link_expiry = link_expiry

    @classmethod
    def from_settings(
        cls,
        store: DocumentStore,
        renderer: DocumentRenderer,
        notifier: DeliveryNotifier,
        config: Settings = settings,
    ) -> "ReviewWorkflow":
        return cls(
            store,
            renderer,
            notifier,
            max_attachment_bytes=config.max_attachment_bytes,
            link_expiry=config.email_link_expiry,
        )

    @staticmethod
    def _require_admin(principal: Principal, action: str) -> None:
        if not principal.is_admin:
            logger.warning("User %s denied: %s requires admin", principal.user_id, action)
            raise AuthorizationDenied(f"Only admins can {action}")

    def list(self, db: Session, limit: int, offset: int) -> List[GeneratedDocument]:
        query = (
            db.query(GeneratedDocument)
            .filter(
                GeneratedDocument.status.in_(PENDING_STATUSES),
                GeneratedDocument.is_active.is_(True),
            )
            .order_by(GeneratedDocument.created_at.desc())
        )
        return apply_pagination(query, limit, offset).all()

    def list_pending(
        self, db: Session, principal: Principal, limit: int = 50, offset: int = 0
    ) -> dict:
        self._require_admin(principal, "list pending documents")
        return self.list_response(db, limit=limit, offset=offset)

    def edit_content(
        self, db: Session, document_id, principal: Principal, payload: dict
    ) -> GeneratedDocument:
        return self.update(db, document_id, principal, content=payload)

    def mark_reviewed(
        self, db: Session, document_id, principal: Principal
    ) -> GeneratedDocument:
        return self.update(db, document_id, principal, status=ReviewStatus.reviewed.value)

    def update(
        self,
        db: Session,
        document_id,
        principal: Principal,
        content: dict | None = None,
        status: str | None = None,
    ) -> GeneratedDocument:
        self._require_admin(principal, "review documents")
        target = parse_status(status) if status is not None else None
        if target == ReviewStatus.sent:
            raise InvalidTransition(
                "Documents are marked sent by the send operation, not by an update"
            )
        document = self.store.fetch(db, document_id, principal)
        if document.status == ReviewStatus.sent:
            raise InvalidTransition("Sent documents can no longer be changed")

        new_content = validate_content(content) if content is not None else None
        if target is not None and target != document.status:
            transition(document.status, target)

        superseded: list[str] = []
        fresh: list[str] = []
        if new_content is not None:
            rendered = self.renderer.render(
                new_content,
                document.kind,
                include_word=document.word_storage_key is not None,
            )
            superseded = self.store.replace_rendering(document, rendered)
            fresh = [
                key
                for key in (document.pdf_storage_key, document.word_storage_key)
                if key
            ]
            document.content = new_content.model_dump(mode="json")
            document.title = f"{DOCUMENT_TITLES[document.kind]} - {new_content.case_title}"
        if target == ReviewStatus.reviewed and document.status == ReviewStatus.draft:
            document.status = ReviewStatus.reviewed
            document.reviewed_by = principal.user_id
            document.reviewed_at = datetime.now(timezone.utc)

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to update document %s: %s", document_id, e)
            self.store.discard(fresh)
            raise PersistenceFailure("Could not save the document changes") from e
        self.store.discard(superseded)
        db.refresh(document)
        logger.info(
            "Document %s updated by %s (status=%s, content_replaced=%s)",
            document.id,
            principal.user_id,
            document.status.value,
            new_content is not None,
        )
        return document

    def send(
        self,
        db: Session,
        document_id,
        principal: Principal,
        to: str,
        subject: str,
        body: str,
        include_word: bool = True,
    ) -> SendOutcome:
        self._require_admin(principal, "send documents")
        document = self.store.fetch(db, document_id, principal)
        if document.status != ReviewStatus.reviewed:
            raise InvalidTransition(
                f"Only reviewed documents can be sent (status is {document.status.value})",
                details={"from": document.status.value, "to": ReviewStatus.sent.value},
            )

        attachments = self.store.load_attachments(document, include_word)
        download_url = None
        if sum(len(a.data) for a in attachments) > self.max_attachment_bytes:
            download_url = self.store.storage.generate_download_url(
                document.pdf_storage_key, expires_in=self.link_expiry
            )
            logger.info(
                "Attachments for document %s exceed %d bytes; sending a link instead",
                document.id,
                self.max_attachment_bytes,
            )
            attachments = []

        result = self.notifier.send(
            document, to, subject, body, attachments, download_url=download_url
        )
        delivery = DocumentDelivery(
            document_id=document.id,
            recipient=to,
            subject=subject,
            sent_by=principal.user_id,
            status=DeliveryStatus.success if result.success else DeliveryStatus.failed,
            dev_mode=result.dev_mode,
            attachment_names=[a.file_name for a in attachments],
            error=result.error,
        )
        db.add(delivery)

        if not result.success:
            db.commit()
            logger.warning(
                "Delivery of document %s to %s failed; status stays reviewed",
                document.id,
                to,
            )
            raise DeliveryFailure(
                f"Email delivery to {to} failed",
                details={"delivery_id": str(delivery.id), "error": result.error},
            )

        document.status = transition(document.status, ReviewStatus.sent)
        document.sent_at = datetime.now(timezone.utc)
        document.sent_to = to
        document.sent_by = principal.user_id
        db.commit()
        db.refresh(document)
        logger.info("Document %s sent to %s by %s", document.id, to, principal.user_id)
        return SendOutcome(document=document, delivery=delivery, dev_mode=result.dev_mode)

    def list_deliveries(
        self, db: Session, document_id, principal: Principal
    ) -> List[DocumentDelivery]:
        self._require_admin(principal, "view delivery records")
        document = self.store.fetch(db, document_id, principal)
        return (
            db.query(DocumentDelivery)
            .filter(DocumentDelivery.document_id == document.id)
            .order_by(DocumentDelivery.attempted_at.asc())
            .all()
        )
