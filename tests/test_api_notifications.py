import uuid
from datetime import date, timedelta

import pytest

from app.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


def _add(db_session, person_id, **overrides):
    data = dict(
        person_id=person_id,
        type=NotificationType.case_update,
        priority=NotificationPriority.low,
        title="Case update",
        message="Something changed on your case",
    )
    data.update(overrides)
    n = Notification(**data)
    db_session.add(n)
    db_session.commit()
    db_session.refresh(n)
    return n


@pytest.fixture()
def notification(db_session, person):
    return _add(db_session, person.id)


@pytest.fixture()
def notifications_batch(db_session, person):
    return [
        _add(db_session, person.id, title=f"Notification {i}") for i in range(3)
    ]


class TestNotificationEndpoints:
    def test_get(self, client, auth_headers, notification) -> None:
        resp = client.get(f"/notifications/{notification.id}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["id"] == str(notification.id)

    def test_get_not_found(self, client, auth_headers) -> None:
        resp = client.get(f"/notifications/{uuid.uuid4()}", headers=auth_headers)
        assert resp.status_code == 404

    def test_get_other_users(self, client, other_headers, notification) -> None:
        resp = client.get(f"/notifications/{notification.id}", headers=other_headers)
        assert resp.status_code == 404

    def test_list(self, client, auth_headers, notifications_batch) -> None:
        resp = client.get("/notifications", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 3
        assert data["limit"] == 25

    def test_list_filter_status(
        self, client, auth_headers, db_session, person, notifications_batch
    ) -> None:
        _add(db_session, person.id, status=NotificationStatus.read)
        resp = client.get("/notifications?status=read", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_list_filter_type(self, client, auth_headers, db_session, person) -> None:
        _add(db_session, person.id, type=NotificationType.deadline)
        _add(db_session, person.id)
        resp = client.get("/notifications?type=deadline", headers=auth_headers)
        assert [n["type"] for n in resp.json()["items"]] == ["deadline"]

    def test_list_rejects_unknown_type(self, client, auth_headers) -> None:
        resp = client.get("/notifications?type=bogus", headers=auth_headers)
        assert resp.status_code == 422

    def test_unread_count(self, client, auth_headers, notifications_batch) -> None:
        resp = client.get("/notifications/unread-count", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {"count": 3}

    def test_summary(self, client, auth_headers, db_session, person) -> None:
        _add(db_session, person.id, priority=NotificationPriority.critical)
        resp = client.get("/notifications/summary", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["critical"] == 1

    def test_mark_read(self, client, auth_headers, notifications_batch) -> None:
        ids = [str(n.id) for n in notifications_batch[:2]]
        resp = client.post(
            "/notifications/mark-read",
            json={"notification_ids": ids},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {"marked": 2}
        count = client.get("/notifications/unread-count", headers=auth_headers)
        assert count.json() == {"count": 1}

    def test_mark_all_read(self, client, auth_headers, notifications_batch) -> None:
        resp = client.post("/notifications/mark-all-read", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {"marked": 3}

    def test_archive(self, client, auth_headers, notification) -> None:
        resp = client.post(
            f"/notifications/{notification.id}/archive", headers=auth_headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "archived"
        listed = client.get("/notifications", headers=auth_headers)
        assert listed.json()["count"] == 0

    def test_delete(self, client, auth_headers, notification) -> None:
        resp = client.delete(f"/notifications/{notification.id}", headers=auth_headers)
        assert resp.status_code == 204
        resp = client.get(f"/notifications/{notification.id}", headers=auth_headers)
        assert resp.status_code == 404

    def test_api_v1_prefix(self, client, auth_headers, notification) -> None:
        resp = client.get("/api/v1/notifications", headers=auth_headers)
        assert resp.status_code == 200

    def test_requires_auth(self, client) -> None:
        resp = client.get("/notifications")
        assert resp.status_code == 401


class TestSweepEndpoints:
    def test_deadline_sweep(self, client, admin_headers, db_session, case) -> None:
        case.deadline_date = date.today() + timedelta(days=1)
        db_session.commit()
        resp = client.post("/notifications/sweeps/deadlines", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"created": 1}

    def test_admin_alert_sweep(self, client, admin_headers) -> None:
        resp = client.post("/notifications/sweeps/admin-alerts", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"created": 0}

    def test_sweeps_are_admin_only(self, client, auth_headers) -> None:
        resp = client.post("/notifications/sweeps/deadlines", headers=auth_headers)
        assert resp.status_code == 403
