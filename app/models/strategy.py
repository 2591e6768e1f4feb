import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentKind(enum.Enum):
    strategy_pack = "strategy_pack"
    demand_letter = "demand_letter"
    notice_to_complete = "notice_to_complete"
    adjudication_application = "adjudication_application"


class ReviewStatus(enum.Enum):
    draft = "draft"
    reviewed = "reviewed"
    sent = "sent"


class DeliveryStatus(enum.Enum):
    success = "success"
    failed = "failed"


# ---------------------------------------------------------------------------
# Generated documents
# ---------------------------------------------------------------------------


class GeneratedDocument(Base):
    __tablename__ = "generated_documents"
    __table_args__ = (
        Index("ix_generated_documents_case_id", "case_id"),
        Index("ix_generated_documents_person_id", "person_id"),
        Index("ix_generated_documents_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cases.id"), nullable=False
    )
    person_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    kind: Mapped[DocumentKind] = mapped_column(
        Enum(DocumentKind), default=DocumentKind.strategy_pack
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus), default=ReviewStatus.draft
    )
    content: Mapped[dict] = mapped_column(JSON, nullable=False)
    intake_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    is_fallback: Mapped[bool] = mapped_column(Boolean, default=False)
    template_used: Mapped[str] = mapped_column(
        String(120), default="resolve_tradies_template"
    )

    pdf_storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    pdf_file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    pdf_file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    word_storage_key: Mapped[str | None] = mapped_column(String(1024))
    word_file_name: Mapped[str | None] = mapped_column(String(500))
    word_file_size: Mapped[int | None] = mapped_column(BigInteger)

    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sent_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id")
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sent_to: Mapped[str | None] = mapped_column(String(255))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    case = relationship("Case", back_populates="documents")
    owner = relationship("Person", foreign_keys=[person_id])
    deliveries = relationship(
        "DocumentDelivery",
        back_populates="document",
        order_by="DocumentDelivery.attempted_at",
    )


class DocumentDelivery(Base):
    __tablename__ = "document_deliveries"
    __table_args__ = (Index("ix_document_deliveries_document_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("generated_documents.id"), nullable=False
    )
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    sent_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("people.id"), nullable=False
    )
    status: Mapped[DeliveryStatus] = mapped_column(
        Enum(DeliveryStatus), nullable=False
    )
    dev_mode: Mapped[bool] = mapped_column(Boolean, default=False)
    attachment_names: Mapped[list] = mapped_column(JSON, default=list)
    error: Mapped[str | None] = mapped_column(Text)
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    document = relationship("GeneratedDocument", back_populates="deliveries")
