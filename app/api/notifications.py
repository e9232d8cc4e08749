# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from app.api.deps import AuthDep
from app.exceptions import NotFound
from app.schemas.notification import (
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
)
from app.services.notification import Notification, get_notification_inbox

notifications_router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


def _build_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        related_request_id=notification.related_request_id,
        is_read=notification.is_read,
        created_at=notification.created_at,
        read_at=notification.read_at,
    )


@notifications_router.get("", response_model=NotificationListResponse)
async def list_notifications(
    auth: AuthDep,
    unread_only: bool = Query(default=False),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    inbox = get_notification_inbox()
    items, total = inbox.list_notifications(auth.user_id, unread_only, offset, limit)
    return NotificationListResponse(
        items=[_build_notification_response(n) for n in items],
        total=total,
        unread_count=inbox.unread_count(auth.user_id),
    )


@notifications_router.get("/stats", response_model=NotificationStatsResponse)
async def notification_stats(auth: AuthDep) -> NotificationStatsResponse:
    """Total and unread counts for the caller."""
    inbox = get_notification_inbox()
    return NotificationStatsResponse(
        total=inbox.total_count(auth.user_id),
        unread_count=inbox.unread_count(auth.user_id),
    )


@notifications_router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    auth: AuthDep,
) -> NotificationResponse:
    """Mark one of the caller's notifications as read."""
    notification = get_notification_inbox().mark_as_read(auth.user_id, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    return _build_notification_response(notification)


@notifications_router.delete(
    "/{notification_id}",
    status_code=204,
)
async def delete_notification(
    notification_id: uuid.UUID,
    auth: AuthDep,
) -> None:
    """Delete one of the caller's notifications."""
    if not get_notification_inbox().delete(auth.user_id, notification_id):
        raise NotFound("Notification not found")


@notifications_router.post("/read-all", response_model=NotificationStatsResponse)
async def mark_all_notifications_read(auth: AuthDep) -> NotificationStatsResponse:
    """Mark all of the caller's notifications as read."""
    inbox = get_notification_inbox()
    inbox.mark_all_as_read(auth.user_id)
    return NotificationStatsResponse(total=inbox.total_count(auth.user_id), unread_count=0)
