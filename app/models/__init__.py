from sqlmodel import SQLModel

from app.models.audit import AuditLog
from app.models.balance import LeaveBalance
from app.models.base import TimestampMixin, UUIDBase
from app.models.enums import (
    Approver,
    AuditAction,
    AuditEntityType,
    LeaveStatus,
    NotificationPriority,
    NotificationType,
    Trigger,
    UserRole,
)
from app.models.request import LeaveRequest

__all__ = [
    "Approver",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "NotificationPriority",
    "NotificationType",
    "SQLModel",
    "TimestampMixin",
    "Trigger",
    "UUIDBase",
    "UserRole",
]
