import uuid
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import AuthorizationDenied, NotFound, PersistenceFailure
from app.models.person import PersonRole
from app.models.strategy import DocumentKind, GeneratedDocument, ReviewStatus
from app.schemas.content import CaseIntake
from app.services.auth_dependencies import Principal
from app.services.content_generator import fallback_content


def _principal(person, role=PersonRole.client):
    return Principal(user_id=person.id, role=role)


@pytest.fixture()
def intake(intake_payload):
    return CaseIntake(**intake_payload)


@pytest.fixture()
def rendered(renderer, intake):
    return renderer.render(fallback_content(intake), issued_on=date(2026, 10, 19))


def _persist(document_store, db_session, rendered, case, intake):
    return document_store.persist(
        db_session,
        rendered,
        case_id=case.id,
        user_id=case.person_id,
        kind=DocumentKind.strategy_pack,
        title="Strategy Pack - Unpaid invoice",
        content=fallback_content(intake),
        intake=intake,
        is_fallback=True,
        metadata={"model": None},
    )


class TestPersist:
    def test_creates_draft_with_blobs(
        self, db_session, document_store, s3_client, rendered, case, intake
    ):
        document = _persist(document_store, db_session, rendered, case, intake)
        assert document.status == ReviewStatus.draft
        assert document.is_fallback is True
        assert document.pdf_storage_key.startswith(
            f"generated/{case.person_id}/{case.id}/"
        )
        assert s3_client.objects[document.pdf_storage_key] == rendered.pdf_bytes
        assert s3_client.objects[document.word_storage_key] == rendered.word_bytes
        assert document.pdf_file_size == len(rendered.pdf_bytes)
        assert document.intake_data["issue_type"] == "payment_dispute"

    def test_row_failure_removes_blobs(
        self, db_session, document_store, s3_client, rendered, case, intake
    ):
        with patch.object(
            db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception())
        ):
            with pytest.raises(PersistenceFailure):
                _persist(document_store, db_session, rendered, case, intake)
        assert s3_client.objects == {}
        assert db_session.query(GeneratedDocument).count() == 0

    def test_upload_failure_leaves_nothing(
        self, db_session, document_store, s3_client, rendered, case, intake
    ):
        s3_client.fail_put = True
        with pytest.raises(PersistenceFailure):
            _persist(document_store, db_session, rendered, case, intake)
        assert db_session.query(GeneratedDocument).count() == 0


class TestAccess:
    @pytest.fixture()
    def document(self, db_session, document_store, rendered, case, intake):
        return _persist(document_store, db_session, rendered, case, intake)

    def _mark_reviewed(self, db_session, document):
        document.status = ReviewStatus.reviewed
        db_session.commit()

    def test_admin_sees_draft(self, db_session, document_store, document, admin):
        fetched = document_store.fetch(
            db_session, document.id, _principal(admin, PersonRole.admin)
        )
        assert fetched.id == document.id

    def test_owner_cannot_see_draft(self, db_session, document_store, document, person):
        with pytest.raises(AuthorizationDenied):
            document_store.fetch(db_session, document.id, _principal(person))

    def test_owner_sees_reviewed(self, db_session, document_store, document, person):
        self._mark_reviewed(db_session, document)
        fetched = document_store.fetch(db_session, document.id, _principal(person))
        assert fetched.id == document.id

    def test_other_user_denied(
        self, db_session, document_store, document, other_person
    ):
        self._mark_reviewed(db_session, document)
        with pytest.raises(AuthorizationDenied):
            document_store.fetch(db_session, document.id, _principal(other_person))

    def test_missing_is_denied_for_clients(self, db_session, document_store, person):
        with pytest.raises(AuthorizationDenied):
            document_store.fetch(db_session, uuid.uuid4(), _principal(person))

    def test_missing_is_not_found_for_admins(self, db_session, document_store, admin):
        with pytest.raises(NotFound):
            document_store.fetch(
                db_session, uuid.uuid4(), _principal(admin, PersonRole.admin)
            )

    def test_malformed_id_for_admin(self, db_session, document_store, admin):
        with pytest.raises(NotFound):
            document_store.fetch(db_session, "nope", _principal(admin, PersonRole.admin))

    def test_denied_and_missing_log_differently(
        self, db_session, document_store, document, other_person, caplog
    ):
        self._mark_reviewed(db_session, document)
        caplog.set_level("INFO", logger="app.services.document_store")
        with pytest.raises(AuthorizationDenied):
            document_store.fetch(db_session, document.id, _principal(other_person))
        with pytest.raises(AuthorizationDenied):
            document_store.fetch(db_session, uuid.uuid4(), _principal(other_person))
        messages = [r.getMessage() for r in caplog.records]
        assert any("denied access" in m for m in messages)
        assert any("not found" in m for m in messages)

    def test_soft_delete(self, db_session, document_store, document, person, admin):
        self._mark_reviewed(db_session, document)
        document_store.delete(db_session, document.id, _principal(person))
        db_session.refresh(document)
        assert document.is_active is False
        with pytest.raises(NotFound):
            document_store.fetch(
                db_session, document.id, _principal(admin, PersonRole.admin)
            )

    def test_download_formats(
        self, db_session, document_store, document, person, rendered
    ):
        self._mark_reviewed(db_session, document)
        pdf = document_store.download(db_session, document.id, _principal(person), "pdf")
        docx = document_store.download(
            db_session, document.id, _principal(person), "docx"
        )
        assert pdf.data == rendered.pdf_bytes
        assert pdf.mime_type == "application/pdf"
        assert docx.file_name.endswith(".docx")

    def test_download_requires_ownership(
        self, db_session, document_store, document, other_person
    ):
        self._mark_reviewed(db_session, document)
        with pytest.raises(AuthorizationDenied):
            document_store.download(
                db_session, document.id, _principal(other_person), "pdf"
            )
