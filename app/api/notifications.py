from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Principal, get_db, require_admin, require_user_auth
from app.schemas.common import ListResponse
from app.schemas.notification import (
    MarkReadRequest,
    NotificationRead,
    NotificationSummary,
    SweepResponse,
    UnreadCountResponse,
)
from app.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return {"count": notifications.unread_count(db, principal)}


@router.get("/summary", response_model=NotificationSummary)
def notification_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return notifications.summary(db, principal)


@router.get("", response_model=ListResponse[NotificationRead])
def list_notifications(
    status_filter: str | None = Query(
        default=None, alias="status", pattern="^(unread|read|archived)$"
    ),
    notification_type: str | None = Query(
        default=None,
        alias="type",
        pattern="^(document_review|new_application|subscription_change|case_update|deadline)$",
    ),
    limit: int = Query(default=25, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return notifications.list_response(
        db, principal, status_filter, notification_type, limit, offset
    )


@router.post("/mark-read")
def mark_read(
    payload: MarkReadRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    count = notifications.mark_read(
        db, principal, [str(nid) for nid in payload.notification_ids]
    )
    return {"marked": count}


@router.post("/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return {"marked": notifications.mark_all_read(db, principal)}


@router.post("/sweeps/deadlines", response_model=SweepResponse)
def run_deadline_sweep(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    return {"created": notifications.create_deadline_reminders(db)}


@router.post("/sweeps/admin-alerts", response_model=SweepResponse)
def run_admin_alert_sweep(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    return {"created": notifications.create_admin_alerts(db)}


@router.get("/{notification_id}", response_model=NotificationRead)
def get_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return notifications.get(db, notification_id, principal)


@router.post("/{notification_id}/archive", response_model=NotificationRead)
def archive_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    return notifications.archive(db, notification_id, principal)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
):
    notifications.delete(db, notification_id, principal)
