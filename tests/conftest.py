import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASS"] = ""
os.environ["S3_ENDPOINT_URL"] = ""

import uuid  # noqa: E402
from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db import Base  # noqa: E402
from app.models import Case, IssueType, Person, PersonRole  # noqa: E402
from app.services.auth_dependencies import sign_token  # noqa: E402
from app.services.blob_storage import StorageService  # noqa: E402
from app.services.content_generator import ContentGenerator  # noqa: E402
from app.services.delivery import DeliveryNotifier  # noqa: E402
from app.services.document_renderer import DocumentRenderer  # noqa: E402
from app.services.document_store import DocumentStore  # noqa: E402
from app.services.review_workflow import ReviewWorkflow  # noqa: E402
from app.services.strategy_pipeline import StrategyPipeline  # noqa: E402
from mocks import FakeS3Client, FakeTransport  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def _make_person(db_session, role: PersonRole, first_name: str) -> Person:
    p = Person(
        first_name=first_name,
        last_name="Test",
        email=f"{first_name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
        role=role,
    )
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture()
def person(db_session):
    return _make_person(db_session, PersonRole.client, "Jamie")


@pytest.fixture()
def other_person(db_session):
    return _make_person(db_session, PersonRole.client, "Robin")


@pytest.fixture()
def admin(db_session):
    return _make_person(db_session, PersonRole.admin, "Alex")


@pytest.fixture()
def case(db_session, person):
    c = Case(
        person_id=person.id,
        case_number=f"RES-{uuid.uuid4().hex[:6].upper()}",
        title="Unpaid invoice for bathroom renovation",
        issue_type=IssueType.payment_dispute,
        description="Builder has not paid the final progress claim.",
        amount=Decimal("15000"),
        deadline_date=date.today() + timedelta(days=20),
    )
    db_session.add(c)
    db_session.commit()
    db_session.refresh(c)
    return c


@pytest.fixture()
def intake_payload(person):
    return {
        "client_name": person.full_name,
        "client_email": person.email,
        "client_phone": "0400 000 000",
        "case_title": "Unpaid invoice for bathroom renovation",
        "issue_type": "payment_dispute",
        "description": "Builder has not paid the final progress claim of $15,000.",
        "amount": "15000",
        "urgency": "high",
    }


# ---------------------------------------------------------------------------
# Services wired to fakes
# ---------------------------------------------------------------------------


@pytest.fixture()
def s3_client():
    return FakeS3Client()


@pytest.fixture()
def storage(s3_client):
    return StorageService(s3_client, "test-bucket")


@pytest.fixture()
def generator():
    return ContentGenerator(None)


@pytest.fixture()
def renderer():
    return DocumentRenderer()


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def notifier(transport):
    return DeliveryNotifier(transport, "Resolve <hello@example.com>")


@pytest.fixture()
def document_store(storage):
    return DocumentStore(storage)


@pytest.fixture()
def workflow(document_store, renderer, notifier):
    return ReviewWorkflow(
        document_store,
        renderer,
        notifier,
        link_expiry=86400,
    )


@pytest.fixture()
def pipeline(generator, renderer, document_store):
    return StrategyPipeline(generator, renderer, document_store)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(db_session, storage, generator, renderer, notifier):
    from app.api import deps
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_content_generator] = lambda: generator
    app.dependency_overrides[deps.get_renderer] = lambda: renderer
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(person):
    return {"Authorization": f"Bearer {sign_token(person.id, 'client')}"}


@pytest.fixture()
def other_headers(other_person):
    return {"Authorization": f"Bearer {sign_token(other_person.id, 'client')}"}


@pytest.fixture()
def admin_headers(admin):
    return {"Authorization": f"Bearer {sign_token(admin.id, 'admin')}"}
