# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from app.models.enums import NotificationPriority, NotificationType


class NotificationResponse(BaseModel):
    """A notification delivered to one user."""

    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    related_request_id: uuid.UUID | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None


class NotificationListResponse(BaseModel):
    """A page of notifications plus the unread counter."""

    items: list[NotificationResponse]
    total: int
    unread_count: int


class NotificationStatsResponse(BaseModel):
    """Notification counters for the current user."""

    total: int
    unread_count: int
