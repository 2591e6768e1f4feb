from celery import Celery

from app.config import settings
from app.logging import configure_logging

configure_logging()

celery_app = Celery(
    "resolve",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.notifications"],
)

_sweep_seconds = settings.notification_sweep_minutes * 60

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "deadline-reminders": {
            "task": "app.tasks.notifications.create_deadline_reminders",
            "schedule": _sweep_seconds,
        },
        "admin-alerts": {
            "task": "app.tasks.notifications.create_admin_alerts",
            "schedule": _sweep_seconds,
        },
        "idle-case-notifications": {
            "task": "app.tasks.notifications.create_idle_case_notifications",
            "schedule": 24 * 60 * 60,
        },
        "purge-expired-notifications": {
            "task": "app.tasks.notifications.purge_expired_notifications",
            "schedule": 24 * 60 * 60,
        },
    },
)
