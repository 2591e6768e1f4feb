from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from app.errors import NotFound
from app.metrics import NOTIFICATIONS_CREATED
from app.models.cases import Application, ApplicationStatus, Case, CaseStatus
from app.models.notification import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from app.models.strategy import GeneratedDocument, ReviewStatus
from app.services.auth_dependencies import Principal
from app.services.common import apply_pagination, try_coerce_uuid
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

SUPPRESSION_WINDOW = timedelta(hours=24)
IDLE_CASE_AGE = timedelta(days=7)
IDLE_NOTIFICATION_TTL = timedelta(days=7)
OPEN_CASE_STATUSES = (CaseStatus.pending, CaseStatus.in_progress)

_PRIORITY_RANK = case(
    (Notification.priority == NotificationPriority.critical, 0),
    (Notification.priority == NotificationPriority.high, 1),
    (Notification.priority == NotificationPriority.medium, 2),
    else_=3,
)


def deadline_priority(days_until: int) -> NotificationPriority | None:
    """Reminder priority for a deadline ``days_until`` days away, if any."""
    if days_until <= 1:
        return NotificationPriority.critical
    if days_until <= 3:
        return NotificationPriority.high
    if days_until <= 7:
        return NotificationPriority.medium
    return None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _visible_to(query, principal: Principal):
    if principal.is_admin:
        return query.filter(
            or_(
                Notification.person_id == principal.user_id,
                Notification.person_id.is_(None),
            )
        )
    return query.filter(Notification.person_id == principal.user_id)


def _not_expired(query, now: datetime):
    return query.filter(
        or_(Notification.expires_at.is_(None), Notification.expires_at > now)
    )


class Notifications(ListResponseMixin):
    @staticmethod
    def get(db: Session, notification_id: str, principal: Principal) -> Notification:
        notification = None
        nid = try_coerce_uuid(notification_id)
        if nid is not None:
            notification = _visible_to(
                db.query(Notification).filter(Notification.id == nid), principal
            ).first()
        if not notification:
            raise NotFound("Notification not found")
        return notification

    @staticmethod
    def _active(db: Session, principal: Principal, now: datetime | None = None):
        now = now or datetime.now(timezone.utc)
        query = _visible_to(db.query(Notification), principal)
        return _not_expired(query, now)

    @staticmethod
    def list(
        db: Session,
        principal: Principal,
        status: str | None,
        notification_type: str | None,
        limit: int,
        offset: int,
    ) -> List[Notification]:
        query = Notifications._active(db, principal)
        if status is not None:
            query = query.filter(Notification.status == NotificationStatus(status))
        else:
            query = query.filter(Notification.status != NotificationStatus.archived)
        if notification_type is not None:
            query = query.filter(
                Notification.type == NotificationType(notification_type)
            )
        query = query.order_by(_PRIORITY_RANK, Notification.created_at.desc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def summary(db: Session, principal: Principal) -> dict:
        query = Notifications._active(db, principal).filter(
            Notification.status != NotificationStatus.archived
        )
        rows = (
            query.with_entities(
                Notification.type,
                Notification.priority,
                Notification.status,
                func.count(Notification.id),
            )
            .group_by(Notification.type, Notification.priority, Notification.status)
            .all()
        )
        summary = {"total": 0, "unread": 0, "critical": 0, "high": 0, "by_type": {}}
        for n_type, priority, n_status, count in rows:
            summary["total"] += count
            if n_status == NotificationStatus.unread:
                summary["unread"] += count
            if priority == NotificationPriority.critical:
                summary["critical"] += count
            elif priority == NotificationPriority.high:
                summary["high"] += count
            summary["by_type"][n_type.value] = summary["by_type"].get(n_type.value, 0) + count
        return summary

    @staticmethod
    def unread_count(db: Session, principal: Principal) -> int:
        return (
            Notifications._active(db, principal)
            .filter(Notification.status == NotificationStatus.unread)
            .count()
        )

    @staticmethod
    def mark_read(db: Session, principal: Principal, notification_ids: List[str]) -> int:
        ids = [nid for nid in (try_coerce_uuid(v) for v in notification_ids) if nid]
        if not ids:
            return 0
        now = datetime.now(timezone.utc)
        notifications = (
            _visible_to(db.query(Notification), principal)
            .filter(
                Notification.id.in_(ids),
                Notification.status == NotificationStatus.unread,
            )
            .all()
        )
        for notification in notifications:
            notification.status = NotificationStatus.read
            notification.read_at = now
        db.commit()
        logger.info(
            "Marked %d notifications as read for %s", len(notifications), principal.user_id
        )
        return len(notifications)

    @staticmethod
    def mark_all_read(db: Session, principal: Principal) -> int:
        now = datetime.now(timezone.utc)
        notifications = (
            Notifications._active(db, principal, now)
            .filter(Notification.status == NotificationStatus.unread)
            .all()
        )
        for notification in notifications:
            notification.status = NotificationStatus.read
            notification.read_at = now
        db.commit()
        logger.info(
            "Marked all %d notifications as read for %s",
            len(notifications),
            principal.user_id,
        )
        return len(notifications)

    @staticmethod
    def archive(db: Session, notification_id: str, principal: Principal) -> Notification:
        notification = Notifications.get(db, notification_id, principal)
        notification.status = NotificationStatus.archived
        notification.archived_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
        logger.info("Archived notification %s", notification.id)
        return notification

    @staticmethod
    def delete(db: Session, notification_id: str, principal: Principal) -> None:
        notification = Notifications.get(db, notification_id, principal)
        db.delete(notification)
        db.commit()
        logger.info("Deleted notification %s", notification_id)

    # ------------------------------------------------------------------
    # Creation and sweeps
    # ------------------------------------------------------------------

    @staticmethod
    def recently_notified(
        db: Session,
        notification_type: NotificationType,
        related_type: str,
        related_id,
        now: datetime,
    ) -> bool:
        return (
            db.query(Notification.id)
            .filter(
                Notification.type == notification_type,
                Notification.related_type == related_type,
                Notification.related_id == str(related_id),
                Notification.created_at >= now - SUPPRESSION_WINDOW,
            )
            .first()
            is not None
        )

    @staticmethod
    def create(
        db: Session,
        *,
        notification_type: NotificationType,
        priority: NotificationPriority,
        title: str,
        message: str,
        person_id=None,
        related_type: str | None = None,
        related_id=None,
        action_url: str | None = None,
        action_label: str | None = None,
        expires_at: datetime | None = None,
        metadata: dict | None = None,
        now: datetime | None = None,
    ) -> Notification:
        now = now or datetime.now(timezone.utc)
        notification = Notification(
            person_id=person_id,
            type=notification_type,
            priority=priority,
            title=title,
            message=message,
            related_type=related_type,
            related_id=str(related_id) if related_id is not None else None,
            action_url=action_url,
            action_label=action_label,
            expires_at=expires_at,
            metadata_=metadata,
            created_at=now,
            updated_at=now,
        )
        db.add(notification)
        NOTIFICATIONS_CREATED.labels(type=notification_type.value).inc()
        return notification

    @staticmethod
    def notify_document_review(
        db: Session, document: GeneratedDocument, now: datetime | None = None
    ) -> Notification | None:
        """Admin alert for a draft awaiting review; flushes, caller commits."""
        now = now or datetime.now(timezone.utc)
        if Notifications.recently_notified(
            db, NotificationType.document_review, "generated_document", document.id, now
        ):
            return None
        notification = Notifications.create(
            db,
            notification_type=NotificationType.document_review,
            priority=NotificationPriority.high,
            title="Document ready for review",
            message=f"'{document.title}' is waiting for admin review before it can be sent.",
            related_type="generated_document",
            related_id=document.id,
            action_url=f"/admin/strategy-documents/{document.id}",
            action_label="Review document",
            metadata={"is_fallback": bool(document.is_fallback)},
            now=now,
        )
        db.flush()
        return notification

    @staticmethod
    def create_deadline_reminders(db: Session, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        today = now.date()
        cases = (
            db.query(Case)
            .filter(
                Case.is_active.is_(True),
                Case.status.in_(OPEN_CASE_STATUSES),
                Case.deadline_date.is_not(None),
                Case.deadline_date <= today + timedelta(days=7),
            )
            .all()
        )
        created = 0
        for item in cases:
            days = (item.deadline_date - today).days
            priority = deadline_priority(days)
            if priority is None:
                continue
            if Notifications.recently_notified(
                db, NotificationType.deadline, "case", item.id, now
            ):
                logger.debug("Deadline reminder for case %s already sent", item.id)
                continue
            Notifications.create(
                db,
                person_id=item.person_id,
                notification_type=NotificationType.deadline,
                priority=priority,
                title=(
                    f"Deadline passed: {item.title}"
                    if days < 0
                    else f"Deadline approaching: {item.title}"
                ),
                message=_deadline_message(item, days),
                related_type="case",
                related_id=item.id,
                action_url=f"/cases/{item.id}",
                action_label="View case",
                expires_at=_end_of_day(max(item.deadline_date, today)),
                metadata={"days_until_deadline": days},
                now=now,
            )
            created += 1
        db.commit()
        logger.info("Created %d deadline reminders", created)
        return created

    @staticmethod
    def create_admin_alerts(db: Session, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        created = 0
        drafts = (
            db.query(GeneratedDocument)
            .filter(
                GeneratedDocument.status == ReviewStatus.draft,
                GeneratedDocument.is_active.is_(True),
            )
            .all()
        )
        for document in drafts:
            if Notifications.notify_document_review(db, document, now) is not None:
                created += 1

        applications = (
            db.query(Application)
            .filter(
                Application.status == ApplicationStatus.pending,
                Application.created_at >= now - SUPPRESSION_WINDOW,
            )
            .all()
        )
        for application in applications:
            if Notifications.recently_notified(
                db, NotificationType.new_application, "application", application.id, now
            ):
                continue
            Notifications.create(
                db,
                notification_type=NotificationType.new_application,
                priority=NotificationPriority.medium,
                title="New application received",
                message=(
                    f"{application.full_name} applied about a "
                    f"{application.issue_type.label} matter."
                ),
                related_type="application",
                related_id=application.id,
                action_url="/admin/applications",
                action_label="Review application",
                now=now,
            )
            created += 1
        db.commit()
        logger.info("Created %d admin alerts", created)
        return created

    @staticmethod
    def create_idle_case_notifications(db: Session, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        cases = (
            db.query(Case)
            .filter(
                Case.is_active.is_(True),
                Case.status.in_(OPEN_CASE_STATUSES),
                Case.created_at <= now - IDLE_CASE_AGE,
            )
            .all()
        )
        created = 0
        for item in cases:
            if Notifications.recently_notified(
                db, NotificationType.case_update, "case", item.id, now
            ):
                continue
            days_open = (now - _as_utc(item.created_at)).days
            Notifications.create(
                db,
                person_id=item.person_id,
                notification_type=NotificationType.case_update,
                priority=NotificationPriority.medium,
                title=f"Update on {item.title}",
                message=(
                    f"Your case has been open for {days_open} days. Add any new "
                    "evidence or updates so we can keep it moving."
                ),
                related_type="case",
                related_id=item.id,
                action_url=f"/cases/{item.id}",
                action_label="Update case",
                expires_at=now + IDLE_NOTIFICATION_TTL,
                now=now,
            )
            created += 1
        db.commit()
        logger.info("Created %d idle case notifications", created)
        return created

    @staticmethod
    def purge_expired(db: Session, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        count = (
            db.query(Notification)
            .filter(Notification.expires_at.is_not(None), Notification.expires_at <= now)
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("Purged %d expired notifications", count)
        return count


def _end_of_day(day: date) -> datetime:
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=timezone.utc)


def _deadline_message(item: Case, days: int) -> str:
    if days < 0:
        overdue = -days
        return (
            f"The deadline for case {item.case_number} passed {overdue} "
            f"day{'s' if overdue != 1 else ''} ago "
            f"({item.deadline_date.strftime('%d %B %Y')}) and is now overdue."
        )
    if days == 0:
        when = "today"
    elif days == 1:
        when = "tomorrow"
    else:
        when = f"in {days} days"
    return (
        f"The deadline for case {item.case_number} is {when} "
        f"({item.deadline_date.strftime('%d %B %Y')})."
    )


notifications = Notifications()
