"""strategy documents schema

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f9a1c2b7d10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- People, cases, applications ---
    op.create_table(
        "people",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column(
            "role", sa.Enum("client", "admin", name="personrole"), nullable=True
        ),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    issuetype = sa.Enum(
        "payment_dispute",
        "contract_breach",
        "defective_work",
        "scope_change",
        "delay_claim",
        "warranty",
        "licensing",
        "safety",
        "other",
        name="issuetype",
    )
    op.create_table(
        "cases",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.Column("case_number", sa.String(length=40), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("issue_type", issuetype, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "urgency",
            sa.Enum("low", "medium", "high", "critical", name="urgency"),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("pending", "in_progress", "resolved", "closed", name="casestatus"),
            nullable=True,
        ),
        sa.Column("deadline_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("case_number"),
    )
    op.create_index("ix_cases_person_id", "cases", ["person_id"])
    op.create_index("ix_cases_deadline_date", "cases", ["deadline_date"])

    op.create_table(
        "applications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "issue_type",
            postgresql.ENUM(name="issuetype", create_type=False),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("pending", "approved", "rejected", name="applicationstatus"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_applications_status", "applications", ["status"])

    # --- Generated documents and deliveries ---
    op.create_table(
        "generated_documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("case_id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=False),
        sa.Column(
            "kind",
            sa.Enum(
                "strategy_pack",
                "demand_letter",
                "notice_to_complete",
                "adjudication_application",
                name="documentkind",
            ),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column(
            "status",
            sa.Enum("draft", "reviewed", "sent", name="reviewstatus"),
            nullable=True,
        ),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("intake_data", sa.JSON(), nullable=False),
        sa.Column("is_fallback", sa.Boolean(), nullable=True),
        sa.Column("template_used", sa.String(length=120), nullable=True),
        sa.Column("pdf_storage_key", sa.String(length=1024), nullable=False),
        sa.Column("pdf_file_name", sa.String(length=500), nullable=False),
        sa.Column("pdf_file_size", sa.BigInteger(), nullable=False),
        sa.Column("word_storage_key", sa.String(length=1024), nullable=True),
        sa.Column("word_file_name", sa.String(length=500), nullable=True),
        sa.Column("word_file_size", sa.BigInteger(), nullable=True),
        sa.Column("reviewed_by", sa.UUID(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_by", sa.UUID(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_to", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["case_id"], ["cases.id"]),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["reviewed_by"], ["people.id"]),
        sa.ForeignKeyConstraint(["sent_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_generated_documents_case_id", "generated_documents", ["case_id"]
    )
    op.create_index(
        "ix_generated_documents_person_id", "generated_documents", ["person_id"]
    )
    op.create_index("ix_generated_documents_status", "generated_documents", ["status"])

    op.create_table(
        "document_deliveries",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("sent_by", sa.UUID(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("success", "failed", name="deliverystatus"),
            nullable=False,
        ),
        sa.Column("dev_mode", sa.Boolean(), nullable=True),
        sa.Column("attachment_names", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["generated_documents.id"]),
        sa.ForeignKeyConstraint(["sent_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_deliveries_document_id", "document_deliveries", ["document_id"]
    )

    # --- Notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("person_id", sa.UUID(), nullable=True),
        sa.Column(
            "type",
            sa.Enum(
                "document_review",
                "new_application",
                "subscription_change",
                "case_update",
                "deadline",
                name="notificationtype",
            ),
            nullable=False,
        ),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "critical", name="notificationpriority"),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("unread", "read", "archived", name="notificationstatus"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_type", sa.String(length=80), nullable=True),
        sa.Column("related_id", sa.String(length=36), nullable=True),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("action_label", sa.String(length=80), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_person_id", "notifications", ["person_id"])
    op.create_index("ix_notifications_status", "notifications", ["status"])
    op.create_index(
        "ix_notifications_related", "notifications", ["related_type", "related_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_related", table_name="notifications")
    op.drop_index("ix_notifications_status", table_name="notifications")
    op.drop_index("ix_notifications_person_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(
        "ix_document_deliveries_document_id", table_name="document_deliveries"
    )
    op.drop_table("document_deliveries")

    op.drop_index("ix_generated_documents_status", table_name="generated_documents")
    op.drop_index("ix_generated_documents_person_id", table_name="generated_documents")
    op.drop_index("ix_generated_documents_case_id", table_name="generated_documents")
    op.drop_table("generated_documents")

    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_table("applications")
    op.drop_index("ix_cases_deadline_date", table_name="cases")
    op.drop_index("ix_cases_person_id", table_name="cases")
    op.drop_table("cases")
    op.drop_table("people")

    bind = op.get_bind()
    for enum_name in (
        "notificationstatus",
        "notificationpriority",
        "notificationtype",
        "deliverystatus",
        "reviewstatus",
        "documentkind",
        "applicationstatus",
        "casestatus",
        "urgency",
        "issuetype",
        "personrole",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
