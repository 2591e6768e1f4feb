from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import AuthorizationDenied, NotFound, PersistenceFailure
from app.models.strategy import DocumentKind, GeneratedDocument, ReviewStatus
from app.schemas.content import CaseIntake, GeneratedContent
from app.services.auth_dependencies import Principal
from app.services.blob_storage import StorageService
from app.services.common import try_coerce_uuid
from app.services.document_renderer import RenderedDocument

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)
FILE_FORMATS = ("pdf", "docx")


@dataclass(frozen=True)
class StoredFile:
    file_name: str
    data: bytes
    mime_type: str


class DocumentStore:
    """Generated-document rows plus their rendered binaries.

    Binaries go to blob storage first; the row is written last, so a document
    is only addressable once every blob it points at exists.
    """

    def __init__(self, storage: StorageService):
        self.storage = storage

    def persist(
        self,
        db: Session,
        rendered: RenderedDocument,
        *,
        case_id,
        user_id,
        kind: DocumentKind,
        title: str,
        content: GeneratedContent,
        intake: CaseIntake,
        is_fallback: bool = False,
        metadata: dict | None = None,
    ) -> GeneratedDocument:
        keys = self._upload(rendered, user_id, case_id)
        document = GeneratedDocument(
            case_id=case_id,
            person_id=user_id,
            kind=kind,
            title=title,
            status=ReviewStatus.draft,
            content=content.model_dump(mode="json"),
            intake_data=intake.model_dump(mode="json"),
            is_fallback=is_fallback,
            pdf_storage_key=keys["pdf"],
            pdf_file_name=rendered.pdf_file_name,
            pdf_file_size=len(rendered.pdf_bytes),
            word_storage_key=keys.get("docx"),
            word_file_name=rendered.word_file_name if "docx" in keys else None,
            word_file_size=len(rendered.word_bytes) if "docx" in keys else None,
            metadata_=metadata,
        )
        db.add(document)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to save document record for case %s: %s", case_id, e)
            self.discard(keys.values())
            raise PersistenceFailure("Could not save the generated document") from e
        db.refresh(document)
        logger.info(
            "Stored %s document %s for case %s (fallback=%s)",
            kind.value,
            document.id,
            case_id,
            is_fallback,
        )
        return document

    def replace_rendering(
        self, document: GeneratedDocument, rendered: RenderedDocument
    ) -> list[str]:
        """Upload a fresh rendering and point ``document`` at it.

        Returns the superseded storage keys. The caller commits, then
        discards either the old keys (success) or the new ones (failure).
        """
        keys = self._upload(rendered, document.person_id, document.case_id)
        previous = [
            key
            for key in (document.pdf_storage_key, document.word_storage_key)
            if key
        ]
        document.pdf_storage_key = keys["pdf"]
        document.pdf_file_name = rendered.pdf_file_name
        document.pdf_file_size = len(rendered.pdf_bytes)
        document.word_storage_key = keys.get("docx")
        document.word_file_name = rendered.word_file_name if "docx" in keys else None
        document.word_file_size = len(rendered.word_bytes) if "docx" in keys else None
        return previous

    def discard(self, storage_keys) -> None:
        for key in storage_keys:
            try:
                self.storage.delete(key)
            except PersistenceFailure:
                logger.warning("Could not remove blob %s; it is now orphaned", key)

    def fetch(self, db: Session, document_id, principal: Principal) -> GeneratedDocument:
        document = None
        doc_uuid = try_coerce_uuid(document_id)
        if doc_uuid is not None:
            document = db.get(GeneratedDocument, doc_uuid)
        if document is None or not document.is_active:
            if principal.is_admin:
                raise NotFound("Document not found")
            # Non-admins cannot tell a missing document from someone else's.
            logger.info(
                "Document %s not found for user %s", document_id, principal.user_id
            )
            raise AuthorizationDenied("You do not have access to this document")
        if principal.is_admin:
            return document
        if document.person_id != principal.user_id:
            logger.warning(
                "User %s denied access to document %s owned by %s",
                principal.user_id,
                document.id,
                document.person_id,
            )
            raise AuthorizationDenied("You do not have access to this document")
        if document.status == ReviewStatus.draft:
            logger.warning(
                "User %s denied access to draft document %s",
                principal.user_id,
                document.id,
            )
            raise AuthorizationDenied("This document is still being reviewed")
        return document

    def delete(self, db: Session, document_id, principal: Principal) -> None:
        document = self.fetch(db, document_id, principal)
        document.is_active = False
        db.commit()
        logger.info("Soft-deleted document %s by %s", document.id, principal.user_id)

    def download(
        self, db: Session, document_id, principal: Principal, file_format: str = "pdf"
    ) -> StoredFile:
        document = self.fetch(db, document_id, principal)
        return self.load_file(document, file_format)

    def load_file(self, document: GeneratedDocument, file_format: str) -> StoredFile:
        if file_format == "pdf":
            data = self.storage.download(document.pdf_storage_key)
            return StoredFile(document.pdf_file_name, data, PDF_MIME)
        if file_format == "docx":
            if not document.word_storage_key:
                raise NotFound("No Word version was rendered for this document")
            data = self.storage.download(document.word_storage_key)
            return StoredFile(document.word_file_name, data, DOCX_MIME)
        raise NotFound(f"Unknown format '{file_format}'. Allowed: {', '.join(FILE_FORMATS)}")

    def load_attachments(
        self, document: GeneratedDocument, include_word: bool = True
    ) -> list[StoredFile]:
        files = [self.load_file(document, "pdf")]
        if include_word and document.word_storage_key:
            files.append(self.load_file(document, "docx"))
        return files

    def _upload(self, rendered: RenderedDocument, user_id, case_id) -> dict[str, str]:
        uploads = [("pdf", rendered.pdf_file_name, rendered.pdf_bytes, PDF_MIME)]
        if rendered.word_bytes is not None and rendered.word_file_name:
            uploads.append(
                ("docx", rendered.word_file_name, rendered.word_bytes, DOCX_MIME)
            )
        keys: dict[str, str] = {}
        try:
            for file_format, file_name, data, mime_type in uploads:
                key = self.storage.generate_storage_key(user_id, case_id, file_name)
                self.storage.upload(key, data, mime_type)
                keys[file_format] = key
        except PersistenceFailure:
            self.discard(keys.values())
            raise
        return keys
