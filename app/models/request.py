# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase, utc_timestamp_field
from app.models.enums import LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request and the decisions taken on it."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_employee_dates", "employee_id", "start_date", "end_date"),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_request_date_order"),
        sa.CheckConstraint("days > 0", name="ck_leave_request_days_positive"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_category_id: uuid.UUID = Field(index=True)
    start_date: date
    end_date: date
    days: int
    reason: str = Field(max_length=500)
    status: str = Field(
        default=LeaveStatus.PENDING_MANAGER,
        max_length=50,
        index=True,
        sa_column_kwargs={"server_default": LeaveStatus.PENDING_MANAGER.value},
    )
    applied_at: datetime = utc_timestamp_field()

    # Routing captured at submission; guards and routing never re-read it.
    manager_id: uuid.UUID | None = Field(default=None, index=True)
    requires_hr_approval: bool
    balance_year: int

    manager_approved: bool | None = None
    manager_decided_by: uuid.UUID | None = None
    manager_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    manager_notes: str | None = None

    hr_approved: bool | None = None
    hr_decided_by: uuid.UUID | None = None
    hr_decided_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    hr_notes: str | None = None

    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
