import logging
from datetime import datetime, timezone

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_sweep(sweep_name: str, now: datetime | None = None) -> int:
    """Open a session, run one ``Notifications`` sweep and return its count."""
    from app.db import SessionLocal
    from app.services.notification import notifications

    sweep = getattr(notifications, sweep_name)
    db = SessionLocal()
    try:
        return sweep(db, now or datetime.now(timezone.utc))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _run_task(sweep_name: str) -> None:
    try:
        count = _run_sweep(sweep_name)
        logger.info("Sweep %s finished (%d rows)", sweep_name, count)
    except Exception as e:
        logger.exception("Sweep %s failed: %s", sweep_name, e)


@celery_app.task(
    name="app.tasks.notifications.create_deadline_reminders", ignore_result=True
)
def create_deadline_reminders() -> None:
    """Deadline reminders for open cases due within seven days."""
    _run_task("create_deadline_reminders")


@celery_app.task(name="app.tasks.notifications.create_admin_alerts", ignore_result=True)
def create_admin_alerts() -> None:
    """Admin alerts for draft documents and new applications."""
    _run_task("create_admin_alerts")


@celery_app.task(
    name="app.tasks.notifications.create_idle_case_notifications", ignore_result=True
)
def create_idle_case_notifications() -> None:
    _run_task("create_idle_case_notifications")


@celery_app.task(
    name="app.tasks.notifications.purge_expired_notifications", ignore_result=True
)
def purge_expired_notifications() -> None:
    _run_task("purge_expired")
