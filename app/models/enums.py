from __future__ import annotations

import enum


class LeaveStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING_MANAGER = "PENDING_MANAGER"
    PENDING_HR = "PENDING_HR"
    APPROVED = "APPROVED"
    HR_APPROVED = "HR_APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


PENDING_STATUSES = frozenset({LeaveStatus.PENDING_MANAGER, LeaveStatus.PENDING_HR})
TERMINAL_STATUSES = frozenset(
    {LeaveStatus.APPROVED, LeaveStatus.HR_APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}
)
# Statuses that occupy the calendar for overlap checks.
ACTIVE_STATUSES = frozenset(
    {LeaveStatus.PENDING_MANAGER, LeaveStatus.PENDING_HR, LeaveStatus.APPROVED, LeaveStatus.HR_APPROVED}
)


class Approver(enum.StrEnum):
    """Who the request is currently waiting on."""

    MANAGER = "MANAGER"
    HR = "HR"
    SYSTEM = "SYSTEM"


class Trigger(enum.StrEnum):
    """Workflow triggers that move a request between states."""

    SUBMIT = "SUBMIT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    HR_APPROVE = "HR_APPROVE"
    HR_REJECT = "HR_REJECT"
    CANCEL = "CANCEL"


class UserRole(enum.StrEnum):
    """Roles known to the user directory."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR_ADMIN = "HR_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class NotificationType(enum.StrEnum):
    """Kind of notification emitted for a workflow event."""

    LEAVE_PENDING = "LEAVE_PENDING"
    LEAVE_APPROVED = "LEAVE_APPROVED"
    LEAVE_REJECTED = "LEAVE_REJECTED"
    LEAVE_CANCELLED = "LEAVE_CANCELLED"


class NotificationPriority(enum.StrEnum):
    """Delivery priority of a notification."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE_REQUEST = "LEAVE_REQUEST"
    LEAVE_BALANCE = "LEAVE_BALANCE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    SUBMIT = "SUBMIT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    HR_APPROVE = "HR_APPROVE"
    HR_REJECT = "HR_REJECT"
    CANCEL = "CANCEL"
    AUTO_APPROVE = "AUTO_APPROVE"
    DEBIT = "DEBIT"
