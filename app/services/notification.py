# ruff: noqa: TC003
"""Notification fan-out for workflow transitions.

Dispatch is best-effort: the workflow commits first and calls
``dispatch_best_effort`` afterwards, which logs and swallows any failure so a
notification outage never blocks an approval.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from app.models.base import now_utc
from app.models.enums import LeaveStatus, NotificationPriority, NotificationType, Trigger

logger = logging.getLogger(__name__)


class WorkflowEvent(BaseModel):
    """Structured description of one workflow transition."""

    request_id: uuid.UUID
    employee_id: uuid.UUID
    category_name: str
    days: int
    trigger: Trigger
    actor_id: uuid.UUID | None
    previous_status: LeaveStatus | None
    new_status: LeaveStatus
    notes: str | None = None


class Notification(BaseModel):
    """A rendered notification stored in a user's inbox."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    related_request_id: uuid.UUID | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=now_utc)
    read_at: datetime | None = None


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Interface consumed by the workflow engine."""

    async def notify(self, recipient_ids: set[uuid.UUID], event: WorkflowEvent) -> None:
        """Deliver the event to every recipient."""
        ...


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _day_label(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def _with_reason(message: str, notes: str | None) -> str:
    return f"{message} Reason: {notes}" if notes else message


def render_notification(recipient_id: uuid.UUID, event: WorkflowEvent) -> Notification:
    """Build the notification a recipient sees for an event.

    The employee who owns the request gets a message about "your" leave;
    everyone else (manager, HR) gets an approver-facing message.
    """
    for_employee = recipient_id == event.employee_id
    what = f"{event.category_name} ({_day_label(event.days)})"

    if event.new_status == LeaveStatus.PENDING_MANAGER:
        kind, priority = NotificationType.LEAVE_PENDING, NotificationPriority.MEDIUM
        title = "New Leave Request"
        message = f"A request for {what} is awaiting your approval."
    elif event.new_status == LeaveStatus.PENDING_HR and for_employee:
        kind, priority = NotificationType.LEAVE_PENDING, NotificationPriority.MEDIUM
        title = "Manager Approved Your Leave"
        message = f"Your {what} request was approved by your manager. Waiting for HR final approval."
    elif event.new_status == LeaveStatus.PENDING_HR:
        kind, priority = NotificationType.LEAVE_PENDING, NotificationPriority.MEDIUM
        title = "Leave Request Needs HR Approval"
        message = f"A request for {what} is awaiting HR review."
    elif event.new_status in (LeaveStatus.APPROVED, LeaveStatus.HR_APPROVED) and for_employee:
        kind, priority = NotificationType.LEAVE_APPROVED, NotificationPriority.HIGH
        title = "Leave Fully Approved"
        message = f"Your {what} request has been fully approved. Enjoy your time off."
    elif event.new_status in (LeaveStatus.APPROVED, LeaveStatus.HR_APPROVED):
        kind, priority = NotificationType.LEAVE_APPROVED, NotificationPriority.LOW
        title = "Leave Approved by HR"
        message = f"A team request for {what} was approved by HR."
    elif event.new_status == LeaveStatus.REJECTED and for_employee:
        kind, priority = NotificationType.LEAVE_REJECTED, NotificationPriority.HIGH
        if event.trigger == Trigger.HR_REJECT:
            title = "Leave Request Finally Rejected"
            message = _with_reason(f"HR has rejected your {what} request.", event.notes)
        else:
            title = "Leave Request Rejected"
            message = _with_reason(f"Your {what} request was rejected by your manager.", event.notes)
    elif event.new_status == LeaveStatus.REJECTED:
        kind, priority = NotificationType.LEAVE_REJECTED, NotificationPriority.LOW
        title = "Leave Request Rejected by HR"
        message = _with_reason(f"A team request for {what} was rejected by HR.", event.notes)
    else:
        kind, priority = NotificationType.LEAVE_CANCELLED, NotificationPriority.LOW
        title = "Leave Request Cancelled"
        message = f"A request for {what} was withdrawn by the employee."

    return Notification(
        user_id=recipient_id,
        type=kind,
        title=title,
        message=message,
        priority=priority,
        related_request_id=event.request_id,
    )


# ---------------------------------------------------------------------------
# Dispatchers
# ---------------------------------------------------------------------------


class InMemoryNotificationDispatcher:
    """In-memory inbox per user. Development and test implementation."""

    def __init__(self) -> None:
        self._inboxes: dict[uuid.UUID, list[Notification]] = defaultdict(list)

    async def notify(self, recipient_ids: set[uuid.UUID], event: WorkflowEvent) -> None:
        for recipient_id in recipient_ids:
            self._inboxes[recipient_id].append(render_notification(recipient_id, event))

    def list_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Notification], int]:
        """Return a newest-first page of the user's notifications and the match count."""
        items = [n for n in self._inboxes.get(user_id, []) if not (unread_only and n.is_read)]
        items.reverse()
        return items[offset : offset + limit], len(items)

    def unread_count(self, user_id: uuid.UUID) -> int:
        return sum(1 for n in self._inboxes.get(user_id, []) if not n.is_read)

    def total_count(self, user_id: uuid.UUID) -> int:
        return len(self._inboxes.get(user_id, []))

    def mark_as_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification | None:
        """Mark one of the user's notifications read. Returns None if the user has no such notification."""
        for notification in self._inboxes.get(user_id, []):
            if notification.id == notification_id:
                if not notification.is_read:
                    notification.is_read = True
                    notification.read_at = now_utc()
                return notification
        return None

    def delete(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> bool:
        """Remove one of the user's notifications. Returns False if the user has no such notification."""
        inbox = self._inboxes.get(user_id, [])
        for index, notification in enumerate(inbox):
            if notification.id == notification_id:
                del inbox[index]
                return True
        return False

    def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification read and return how many changed."""
        changed = 0
        now = now_utc()
        for notification in self._inboxes.get(user_id, []):
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = now
                changed += 1
        return changed


class QueuedNotificationDispatcher:
    """Defers delivery to a background task draining an asyncio queue.

    Delivery is at-most-once: a failed delivery is logged and dropped,
    never retried.
    """

    def __init__(self, inner: NotificationDispatcher) -> None:
        self._inner = inner
        self._queue: asyncio.Queue[tuple[set[uuid.UUID], WorkflowEvent]] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    async def notify(self, recipient_ids: set[uuid.UUID], event: WorkflowEvent) -> None:
        await self._queue.put((set(recipient_ids), event))

    def start(self) -> None:
        """Start draining the queue in the background."""
        if self._task is None:
            self._task = asyncio.create_task(self._drain())

    async def stop(self) -> None:
        """Flush pending events, then stop the background task."""
        if self._task is None:
            return
        await self._queue.join()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _drain(self) -> None:
        while True:
            recipient_ids, event = await self._queue.get()
            try:
                await self._inner.notify(recipient_ids, event)
            except Exception:
                logger.exception("Queued notification delivery failed for request %s", event.request_id)
            finally:
                self._queue.task_done()


_inbox = InMemoryNotificationDispatcher()
_dispatcher: NotificationDispatcher = _inbox


def get_notification_inbox() -> InMemoryNotificationDispatcher:
    """Return the inbox the notifications API reads from."""
    return _inbox


def set_notification_inbox(inbox: InMemoryNotificationDispatcher) -> None:
    """Replace the inbox and route dispatch straight to it."""
    global _inbox, _dispatcher
    _inbox = inbox
    _dispatcher = inbox


def get_notification_dispatcher() -> NotificationDispatcher:
    """Return the active Notification Dispatcher."""
    return _dispatcher


def set_notification_dispatcher(dispatcher: NotificationDispatcher) -> None:
    """Override the dispatcher (for testing or production wiring)."""
    global _dispatcher
    _dispatcher = dispatcher


async def dispatch_best_effort(recipient_ids: set[uuid.UUID], event: WorkflowEvent) -> None:
    """Notify recipients, excluding the actor. Never raises."""
    recipients = {r for r in recipient_ids if r != event.actor_id}
    if not recipients:
        return
    try:
        await get_notification_dispatcher().notify(recipients, event)
    except Exception:
        logger.exception(
            "Notification dispatch failed for request %s (%s -> %s)",
            event.request_id,
            event.previous_status,
            event.new_status,
        )
