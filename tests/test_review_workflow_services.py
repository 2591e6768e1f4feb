import smtplib
from datetime import date

import pytest

from app.errors import (
    AuthorizationDenied,
    DeliveryFailure,
    InvalidContent,
    InvalidTransition,
)
from app.models.person import PersonRole
from app.models.strategy import (
    DeliveryStatus,
    DocumentDelivery,
    DocumentKind,
    ReviewStatus,
)
from app.schemas.content import CaseIntake
from app.services.auth_dependencies import Principal
from app.services.content_generator import fallback_content
from app.services.review_workflow import TRANSITIONS, transition


@pytest.fixture()
def admin_principal(admin):
    return Principal(user_id=admin.id, role=PersonRole.admin)


@pytest.fixture()
def client_principal(person):
    return Principal(user_id=person.id, role=PersonRole.client)


@pytest.fixture()
def document(db_session, document_store, renderer, case, intake_payload):
    intake = CaseIntake(**intake_payload)
    content = fallback_content(intake)
    return document_store.persist(
        db_session,
        renderer.render(content, issued_on=date(2026, 10, 19)),
        case_id=case.id,
        user_id=case.person_id,
        kind=DocumentKind.strategy_pack,
        title="Strategy Pack - Unpaid invoice",
        content=content,
        intake=intake,
    )


def _send(workflow, db_session, document, principal, **overrides):
    kwargs = dict(
        to="client@example.com",
        subject="Your strategy pack",
        body="Hi,\nYour pack is attached.",
    )
    kwargs.update(overrides)
    return workflow.send(db_session, document.id, principal, **kwargs)


class TestTransitionTable:
    def test_forward_moves(self):
        assert transition(ReviewStatus.draft, ReviewStatus.reviewed) == ReviewStatus.reviewed
        assert transition(ReviewStatus.reviewed, ReviewStatus.sent) == ReviewStatus.sent

    @pytest.mark.parametrize(
        "current,target",
        [
            (ReviewStatus.draft, ReviewStatus.sent),
            (ReviewStatus.reviewed, ReviewStatus.draft),
            (ReviewStatus.sent, ReviewStatus.reviewed),
            (ReviewStatus.sent, ReviewStatus.draft),
        ],
    )
    def test_rejected_moves(self, current, target):
        with pytest.raises(InvalidTransition):
            transition(current, target)

    def test_sent_is_terminal(self):
        assert TRANSITIONS[ReviewStatus.sent] == frozenset()


class TestUpdate:
    def test_mark_reviewed_records_reviewer(
        self, db_session, workflow, document, admin_principal
    ):
        updated = workflow.mark_reviewed(db_session, document.id, admin_principal)
        assert updated.status == ReviewStatus.reviewed
        assert updated.reviewed_by == admin_principal.user_id
        assert updated.reviewed_at is not None

    def test_client_cannot_review(
        self, db_session, workflow, document, client_principal
    ):
        with pytest.raises(AuthorizationDenied):
            workflow.mark_reviewed(db_session, document.id, client_principal)

    def test_status_sent_via_update_rejected(
        self, db_session, workflow, document, admin_principal
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        with pytest.raises(InvalidTransition):
            workflow.update(db_session, document.id, admin_principal, status="sent")

    def test_unknown_status_rejected(
        self, db_session, workflow, document, admin_principal
    ):
        with pytest.raises(InvalidTransition):
            workflow.update(db_session, document.id, admin_principal, status="approved")

    def test_backward_move_rejected(
        self, db_session, workflow, document, admin_principal
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        with pytest.raises(InvalidTransition):
            workflow.update(db_session, document.id, admin_principal, status="draft")

    def test_edit_content_replaces_and_rerenders(
        self, db_session, workflow, document, admin_principal, s3_client
    ):
        old_key = document.pdf_storage_key
        content = dict(document.content)
        content["legal_analysis"] = "Revised analysis from the reviewer."
        updated = workflow.edit_content(db_session, document.id, admin_principal, content)
        assert updated.content["legal_analysis"] == "Revised analysis from the reviewer."
        assert updated.title == "Strategy Pack - Unpaid invoice for bathroom renovation"
        assert updated.status == ReviewStatus.draft
        assert updated.pdf_storage_key != old_key
        assert old_key not in s3_client.objects
        assert updated.pdf_storage_key in s3_client.objects

    def test_invalid_content_rejected(
        self, db_session, workflow, document, admin_principal
    ):
        content = dict(document.content)
        content["recommended_actions"] = [{"step": 0, "title": ""}]
        with pytest.raises(InvalidContent) as exc:
            workflow.edit_content(db_session, document.id, admin_principal, content)
        assert exc.value.details

    def test_unknown_content_key_rejected(
        self, db_session, workflow, document, admin_principal
    ):
        content = dict(document.content, surprise="x")
        with pytest.raises(InvalidContent):
            workflow.edit_content(db_session, document.id, admin_principal, content)

    def test_edit_and_review_in_one_update(
        self, db_session, workflow, document, admin_principal
    ):
        content = dict(document.content, next_steps="Call us tomorrow.")
        updated = workflow.update(
            db_session, document.id, admin_principal, content=content, status="reviewed"
        )
        assert updated.status == ReviewStatus.reviewed
        assert updated.content["next_steps"] == "Call us tomorrow."

    def test_list_pending_orders_newest_first(
        self, db_session, workflow, document_store, renderer, document, case,
        intake_payload, admin_principal,
    ):
        intake = CaseIntake(**intake_payload)
        content = fallback_content(intake)
        second = document_store.persist(
            db_session,
            renderer.render(content, include_word=False),
            case_id=case.id,
            user_id=case.person_id,
            kind=DocumentKind.demand_letter,
            title="Letter of Demand - Unpaid invoice",
            content=content,
            intake=intake,
        )
        result = workflow.list_pending(db_session, admin_principal)
        ids = [d.id for d in result["items"]]
        assert set(ids) == {document.id, second.id}
        created = [d.created_at for d in result["items"]]
        assert created == sorted(created, reverse=True)
        assert result["count"] == 2


class TestSend:
    def test_send_requires_reviewed(
        self, db_session, workflow, document, admin_principal
    ):
        with pytest.raises(InvalidTransition):
            _send(workflow, db_session, document, admin_principal)
        db_session.refresh(document)
        assert document.status == ReviewStatus.draft

    def test_send_requires_admin(
        self, db_session, workflow, document, admin_principal, client_principal
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        with pytest.raises(AuthorizationDenied):
            _send(workflow, db_session, document, client_principal)

    def test_successful_send(
        self, db_session, workflow, document, admin_principal, transport
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        outcome = _send(workflow, db_session, document, admin_principal)
        assert outcome.document.status == ReviewStatus.sent
        assert outcome.document.sent_to == "client@example.com"
        assert outcome.document.sent_at is not None
        assert outcome.delivery.status == DeliveryStatus.success
        assert len(transport.sent) == 1
        message = transport.sent[0]
        filenames = [p.get_filename() for p in message.walk() if p.get_filename()]
        assert filenames == [document.pdf_file_name, document.word_file_name]

    def test_sent_document_cannot_be_edited_or_resent(
        self, db_session, workflow, document, admin_principal
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        _send(workflow, db_session, document, admin_principal)
        with pytest.raises(InvalidTransition):
            workflow.edit_content(
                db_session, document.id, admin_principal, dict(document.content)
            )
        with pytest.raises(InvalidTransition):
            _send(workflow, db_session, document, admin_principal)

    def test_failed_send_keeps_reviewed(
        self, db_session, workflow, document, admin_principal, transport
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        transport.error = smtplib.SMTPServerDisconnected("connection lost")
        with pytest.raises(DeliveryFailure):
            _send(workflow, db_session, document, admin_principal)
        db_session.refresh(document)
        assert document.status == ReviewStatus.reviewed
        assert document.sent_at is None
        deliveries = db_session.query(DocumentDelivery).all()
        assert len(deliveries) == 1
        assert deliveries[0].status == DeliveryStatus.failed
        assert "connection lost" in deliveries[0].error

    def test_retry_after_failure(
        self, db_session, workflow, document, admin_principal, transport
    ):
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        transport.error = OSError("network unreachable")
        with pytest.raises(DeliveryFailure):
            _send(workflow, db_session, document, admin_principal)
        transport.error = None
        outcome = _send(workflow, db_session, document, admin_principal)
        assert outcome.document.status == ReviewStatus.sent
        history = workflow.list_deliveries(db_session, document.id, admin_principal)
        assert [d.status for d in history] == [
            DeliveryStatus.failed,
            DeliveryStatus.success,
        ]

    def test_oversized_attachments_become_link(
        self, db_session, workflow, document, admin_principal, transport
    ):
        workflow.max_attachment_bytes = 10
        workflow.mark_reviewed(db_session, document.id, admin_principal)
        outcome = _send(workflow, db_session, document, admin_principal)
        assert outcome.delivery.attachment_names == []
        message = transport.sent[0]
        assert not [p for p in message.walk() if p.get_filename()]
        plain = next(
            p for p in message.walk() if p.get_content_type() == "text/plain"
        )
        text = plain.get_payload(decode=True).decode()
        # A presigned storage link opens without the API bearer token.
        assert (
            f"https://s3.test/test-bucket/{document.pdf_storage_key}?expires=86400"
            in text
        )
        assert "/strategy-documents/" not in text
