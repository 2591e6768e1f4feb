from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.notification import (
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    person_id: UUID | None = None
    type: NotificationType
    priority: NotificationPriority
    status: NotificationStatus
    title: str
    message: str
    related_type: str | None = None
    related_id: str | None = None
    action_url: str | None = None
    action_label: str | None = None
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")
    expires_at: datetime | None = None
    read_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MarkReadRequest(BaseModel):
    notification_ids: list[UUID]


class UnreadCountResponse(BaseModel):
    count: int


class NotificationSummary(BaseModel):
    total: int
    unread: int
    critical: int
    high: int
    by_type: dict[str, int]


class SweepResponse(BaseModel):
    created: int
