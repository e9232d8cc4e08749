# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from app.models.enums import Approver, LeaveStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a new leave request.

    Fields are optional at the schema level so that missing values are
    reported by the submission validator alongside the other field errors.
    """

    leave_category_id: uuid.UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    reason: str | None = None


class DecisionPayload(BaseModel):
    """Request body for manager and HR decisions."""

    approve: bool
    notes: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class DecisionResponse(BaseModel):
    """A manager or HR decision recorded on a request."""

    approved_by: uuid.UUID
    approved_at: datetime
    notes: str | None
    approved: bool


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_category_id: uuid.UUID
    start_date: date
    end_date: date
    days: int
    reason: str
    status: LeaveStatus
    current_approver: Approver
    applied_at: datetime
    manager_id: uuid.UUID | None
    requires_hr_approval: bool
    balance_year: int
    manager_decision: DecisionResponse | None
    hr_decision: DecisionResponse | None
    cancelled_at: datetime | None


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
