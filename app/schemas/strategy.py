from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.strategy import DeliveryStatus, DocumentKind, ReviewStatus
from app.schemas.content import CaseIntake


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class StrategyGenerateRequest(BaseModel):
    case_id: UUID
    kind: DocumentKind = DocumentKind.strategy_pack
    include_word: bool = True
    intake: CaseIntake


class StrategyGenerateResponse(BaseModel):
    document_id: UUID
    status: ReviewStatus
    is_fallback: bool
    pdf_url: str
    word_url: str | None = None


# ---------------------------------------------------------------------------
# GeneratedDocument
# ---------------------------------------------------------------------------


class GeneratedDocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    case_id: UUID
    person_id: UUID
    kind: DocumentKind
    title: str
    status: ReviewStatus
    content: dict[str, Any]
    intake_data: dict[str, Any]
    is_fallback: bool
    template_used: str
    pdf_file_name: str
    pdf_file_size: int
    word_file_name: str | None = None
    word_file_size: int | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    sent_by: UUID | None = None
    sent_at: datetime | None = None
    sent_to: str | None = None
    is_active: bool
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")
    created_at: datetime
    updated_at: datetime


class DocumentReviewUpdate(BaseModel):
    """Admin edit: whole-content replace and/or a status transition."""

    content: dict[str, Any] | None = None
    status: str | None = None


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class SendDocumentRequest(BaseModel):
    to: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    subject: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1)
    include_word: bool = True


class SendDocumentResponse(BaseModel):
    document_id: UUID
    status: ReviewStatus
    delivery_id: UUID
    sent_to: str
    sent_at: datetime
    dev_mode: bool = False


class DocumentDeliveryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    recipient: str
    subject: str
    sent_by: UUID
    status: DeliveryStatus
    dev_mode: bool
    attachment_names: list[str]
    error: str | None = None
    attempted_at: datetime
