# ruff: noqa: TC003
"""Pre-transition gate for new leave requests.

Read-only with respect to the ledger and the catalog: it reports what is
wrong and what the workflow would need to do (e.g. create a missing ledger
row), but never writes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from app.exceptions import BusinessRuleError, FieldError, NotFound, ValidationError
from app.models.enums import ACTIVE_STATUSES
from app.models.request import LeaveRequest
from app.services.balance import get_ledger_entry, insufficient_balance_error
from app.services.catalog import get_leave_category_catalog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models.balance import LeaveBalance
    from app.schemas.request import SubmitLeavePayload
    from app.services.catalog import LeaveCategory

MIN_REASON_LENGTH = 10
MAX_REASON_LENGTH = 500


@dataclass(frozen=True)
class ValidatedSubmission:
    """Submission fields that passed every check."""

    category: LeaveCategory
    start_date: date
    end_date: date
    reason: str
    days: int
    balance_year: int


@dataclass
class SubmissionCheck:
    """Outcome of validating a submission."""

    field_errors: list[FieldError] = field(default_factory=list)
    business_error: BusinessRuleError | None = None
    days: int = 0
    balance_year: int = 0
    category: LeaveCategory | None = None
    ledger_entry: LeaveBalance | None = None
    ledger_missing: bool = False
    submission: ValidatedSubmission | None = None

    @property
    def is_valid(self) -> bool:
        return not self.field_errors and self.business_error is None

    def raise_for_errors(self) -> ValidatedSubmission:
        """Raise ValidationError carrying every collected error, else return the validated fields."""
        if not self.is_valid or self.submission is None:
            raise ValidationError(field_errors=self.field_errors, business_error=self.business_error)
        return self.submission


def count_leave_days(start_date: date, end_date: date) -> int:
    """Inclusive calendar-day count; same-day leave is one day."""
    return max((end_date - start_date).days + 1, 1)


def _check_fields(payload: SubmitLeavePayload, today: date) -> list[FieldError]:
    errors: list[FieldError] = []

    if payload.leave_category_id is None:
        errors.append(FieldError(field="leave_category_id", message="Leave category is required"))

    if payload.start_date is None:
        errors.append(FieldError(field="start_date", message="Start date is required"))
    elif payload.start_date < today:
        errors.append(FieldError(field="start_date", message="Start date cannot be in the past"))

    if payload.end_date is None:
        errors.append(FieldError(field="end_date", message="End date is required"))
    elif payload.start_date is not None and payload.end_date < payload.start_date:
        errors.append(FieldError(field="end_date", message="End date cannot be before start date"))

    reason = (payload.reason or "").strip()
    if not MIN_REASON_LENGTH <= len(reason) <= MAX_REASON_LENGTH:
        errors.append(
            FieldError(
                field="reason",
                message=f"Reason must be between {MIN_REASON_LENGTH} and {MAX_REASON_LENGTH} characters",
            )
        )

    return errors


async def find_overlapping_requests(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_request_id: uuid.UUID | None = None,
) -> list[uuid.UUID]:
    """Return ids of the employee's active requests whose inclusive range intersects [start, end]."""
    query = select(col(LeaveRequest.id)).where(
        col(LeaveRequest.employee_id) == employee_id,
        col(LeaveRequest.status).in_([s.value for s in ACTIVE_STATUSES]),
        col(LeaveRequest.start_date) <= end_date,
        col(LeaveRequest.end_date) >= start_date,
    )
    if exclude_request_id is not None:
        query = query.where(col(LeaveRequest.id) != exclude_request_id)

    result = await session.execute(query.order_by(col(LeaveRequest.start_date)))
    return list(result.scalars().all())


async def validate_submission(
    session: AsyncSession,
    employee_id: uuid.UUID,
    payload: SubmitLeavePayload,
    today: date | None = None,
) -> SubmissionCheck:
    """Validate a new request.

    Flow:
    1. Field checks (all collected; stop here if any failed)
    2. Resolve the category (404 if unknown, field error if inactive)
    3. Day count
    4. Balance against the current-year ledger row, or the category
       maximum when no row exists yet
    5. Category maximum
    6. Overlap with the employee's pending or approved requests

    Rules 4-6 are all evaluated and folded into one business-rule error.
    """
    today = today or date.today()
    check = SubmissionCheck(balance_year=today.year)

    # 1. Field checks.
    check.field_errors = _check_fields(payload, today)
    category_id, start_date, end_date = payload.leave_category_id, payload.start_date, payload.end_date
    if check.field_errors or category_id is None or start_date is None or end_date is None:
        return check

    # 2. Category.
    category = await get_leave_category_catalog().get(category_id)
    if category is None:
        raise NotFound("Leave category not found")
    if not category.is_active:
        check.field_errors.append(FieldError(field="leave_category_id", message="Leave category is not active"))
        return check
    check.category = category

    # 3. Day count.
    days = count_leave_days(start_date, end_date)
    check.days = days

    failures: list[BusinessRuleError] = []

    # 4. Balance.
    entry = await get_ledger_entry(session, employee_id, category.id, check.balance_year)
    check.ledger_entry = entry
    if entry is None:
        check.ledger_missing = True
        available = category.max_days
    else:
        available = entry.remaining_days
    if days > available:
        failures.append(insufficient_balance_error(available, days))

    # 5. Category maximum.
    if days > category.max_days:
        failures.append(
            BusinessRuleError(
                rules=["max_days"],
                message=f"{category.name} allows at most {category.max_days} days per request, {days} requested",
                context={"max_days": category.max_days, "requested_days": days},
            )
        )

    # 6. Overlap.
    overlapping = await find_overlapping_requests(session, employee_id, start_date, end_date)
    if overlapping:
        failures.append(
            BusinessRuleError(
                rules=["overlap"],
                message="Request overlaps with an existing pending or approved leave request",
                context={"overlapping_request_ids": [str(r) for r in overlapping]},
            )
        )

    if failures:
        context: dict[str, Any] = {}
        for failure in failures:
            context.update(failure.context)
        check.business_error = BusinessRuleError(
            rules=[rule for failure in failures for rule in failure.rules],
            message="; ".join(failure.message for failure in failures),
            context=context,
        )
    else:
        check.submission = ValidatedSubmission(
            category=category,
            start_date=start_date,
            end_date=end_date,
            reason=(payload.reason or "").strip(),
            days=days,
            balance_year=check.balance_year,
        )

    return check
