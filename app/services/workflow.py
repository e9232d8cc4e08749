# ruff: noqa: TC003
"""Approval workflow state machine for leave requests.

Every trigger runs as one transaction: lock the request row, check the
guard, check the state, write the new status, debit the ledger on the
terminal approval, audit, commit. Notifications go out after the commit.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from app.exceptions import AppError, ConsistencyFault, InvalidTransition, NotFound, Unauthorized
from app.models.balance import LeaveBalance
from app.models.base import now_utc
from app.models.enums import (
    Approver,
    AuditAction,
    AuditEntityType,
    LeaveStatus,
    Trigger,
    UserRole,
)
from app.models.request import LeaveRequest
from app.schemas.request import DecisionResponse, LeaveRequestListResponse, LeaveRequestResponse
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.balance import debit, ensure_initialized, get_ledger_entry
from app.services.catalog import get_leave_category_catalog
from app.services.directory import get_user_directory
from app.services.notification import WorkflowEvent, dispatch_best_effort
from app.services.validation import validate_submission

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.request import DecisionPayload, SubmitLeavePayload

logger = logging.getLogger(__name__)

APPROVED_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.HR_APPROVED})

# Triggers each non-terminal state admits. Terminal states admit nothing.
ALLOWED_TRIGGERS: dict[LeaveStatus, frozenset[Trigger]] = {
    LeaveStatus.PENDING_MANAGER: frozenset({Trigger.MANAGER_APPROVE, Trigger.MANAGER_REJECT, Trigger.CANCEL}),
    LeaveStatus.PENDING_HR: frozenset({Trigger.HR_APPROVE, Trigger.HR_REJECT, Trigger.CANCEL}),
}

_AUDIT_ACTIONS: dict[Trigger, AuditAction] = {
    Trigger.MANAGER_APPROVE: AuditAction.MANAGER_APPROVE,
    Trigger.MANAGER_REJECT: AuditAction.MANAGER_REJECT,
    Trigger.HR_APPROVE: AuditAction.HR_APPROVE,
    Trigger.HR_REJECT: AuditAction.HR_REJECT,
    Trigger.CANCEL: AuditAction.CANCEL,
}


# ---------------------------------------------------------------------------
# Pure state-machine functions
# ---------------------------------------------------------------------------


def initial_status(has_manager: bool, requires_hr_approval: bool) -> LeaveStatus:
    """Status a freshly submitted request enters.

    A manager always reviews first when there is one. Without a manager the
    first stage is HR, unless the category has no HR stage, in which case
    the request is approved by the system straight away.
    """
    if has_manager:
        return LeaveStatus.PENDING_MANAGER
    if requires_hr_approval:
        return LeaveStatus.PENDING_HR
    return LeaveStatus.APPROVED


def next_status(current: LeaveStatus, trigger: Trigger, requires_hr_approval: bool) -> LeaveStatus:
    """Target of applying ``trigger`` in state ``current``. Raises InvalidTransition."""
    if trigger not in ALLOWED_TRIGGERS.get(current, frozenset()):
        raise InvalidTransition(f"Cannot apply {trigger.value} to a request that is {current.value}")

    if trigger == Trigger.MANAGER_APPROVE:
        return LeaveStatus.PENDING_HR if requires_hr_approval else LeaveStatus.APPROVED
    if trigger == Trigger.HR_APPROVE:
        return LeaveStatus.HR_APPROVED
    if trigger in (Trigger.MANAGER_REJECT, Trigger.HR_REJECT):
        return LeaveStatus.REJECTED
    return LeaveStatus.CANCELLED


def derive_current_approver(status: LeaveStatus) -> Approver:
    """Who the request is waiting on; terminal requests wait on nobody but the system."""
    if status == LeaveStatus.PENDING_MANAGER:
        return Approver.MANAGER
    if status == LeaveStatus.PENDING_HR:
        return Approver.HR
    return Approver.SYSTEM


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    status = LeaveStatus(request.status)
    manager_decision = None
    if request.manager_approved is not None and request.manager_decided_by and request.manager_decided_at:
        manager_decision = DecisionResponse(
            approved_by=request.manager_decided_by,
            approved_at=request.manager_decided_at,
            notes=request.manager_notes,
            approved=request.manager_approved,
        )
    hr_decision = None
    if request.hr_approved is not None and request.hr_decided_by and request.hr_decided_at:
        hr_decision = DecisionResponse(
            approved_by=request.hr_decided_by,
            approved_at=request.hr_decided_at,
            notes=request.hr_notes,
            approved=request.hr_approved,
        )
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_category_id=request.leave_category_id,
        start_date=request.start_date,
        end_date=request.end_date,
        days=request.days,
        reason=request.reason,
        status=status,
        current_approver=derive_current_approver(status),
        applied_at=request.applied_at,
        manager_id=request.manager_id,
        requires_hr_approval=request.requires_hr_approval,
        balance_year=request.balance_year,
        manager_decision=manager_decision,
        hr_decision=hr_decision,
        cancelled_at=request.cancelled_at,
    )


async def _get_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Leave request not found")
    return request


def _is_request_manager(request: LeaveRequest, actor_id: uuid.UUID) -> bool:
    return request.manager_id is not None and request.manager_id == actor_id


async def _is_hr(actor_id: uuid.UUID) -> bool:
    return await get_user_directory().has_role(actor_id, UserRole.HR_ADMIN)


async def _check_guard(request: LeaveRequest, trigger: Trigger, actor_id: uuid.UUID) -> None:
    """Raise Unauthorized unless the actor may fire the trigger on this request."""
    if trigger in (Trigger.MANAGER_APPROVE, Trigger.MANAGER_REJECT):
        if not _is_request_manager(request, actor_id):
            raise Unauthorized("Only the employee's manager can decide on this request")
    elif trigger in (Trigger.HR_APPROVE, Trigger.HR_REJECT):
        if not await _is_hr(actor_id):
            raise Unauthorized("HR role required to decide on this request")
        if request.employee_id == actor_id:
            raise Unauthorized("HR cannot decide on their own leave request")
    elif trigger == Trigger.CANCEL and request.employee_id != actor_id:
        raise Unauthorized("Only the employee who submitted the request can cancel it")


async def _recipients(
    request: LeaveRequest,
    trigger: Trigger,
    previous: LeaveStatus | None,
    target: LeaveStatus,
) -> set[uuid.UUID]:
    """Who hears about a transition."""
    employee = {request.employee_id}
    manager = {request.manager_id} if request.manager_id is not None else set()

    if trigger == Trigger.SUBMIT:
        if target == LeaveStatus.PENDING_MANAGER:
            return manager
        if target == LeaveStatus.PENDING_HR:
            return await get_user_directory().list_by_role(UserRole.HR_ADMIN)
        return employee
    if trigger == Trigger.MANAGER_APPROVE:
        if target == LeaveStatus.PENDING_HR:
            return employee | await get_user_directory().list_by_role(UserRole.HR_ADMIN)
        return employee
    if trigger == Trigger.MANAGER_REJECT:
        return employee
    if trigger in (Trigger.HR_APPROVE, Trigger.HR_REJECT):
        return employee | manager
    # Cancel: whoever the request was waiting on, plus a manager who already forwarded it.
    if previous == LeaveStatus.PENDING_MANAGER:
        return manager
    return manager | await get_user_directory().list_by_role(UserRole.HR_ADMIN)


async def _debit_for_request(session: AsyncSession, request: LeaveRequest, actor_id: uuid.UUID | None) -> int:
    """Debit the request's days, creating the ledger row first if it is missing.

    Returns the row's used_days after the debit.
    """
    entry = await get_ledger_entry(
        session, request.employee_id, request.leave_category_id, request.balance_year, for_update=True
    )
    if entry is None:
        category = await get_leave_category_catalog().get(request.leave_category_id)
        if category is None:
            raise NotFound("Leave category not found")
        await ensure_initialized(
            session,
            request.employee_id,
            request.leave_category_id,
            request.balance_year,
            category.max_days,
            actor_id=actor_id,
        )
    entry = await debit(
        session,
        request.employee_id,
        request.leave_category_id,
        request.balance_year,
        request.days,
        actor_id=actor_id,
        request_id=request.id,
    )
    return entry.used_days


async def _verify_persisted(
    session: AsyncSession,
    request: LeaveRequest,
    expected_status: LeaveStatus,
    expected_used_days: int | None,
) -> None:
    """Re-read the flushed rows from storage and refuse to commit a half-applied write.

    Column selects bypass the identity map, so this sees what the database
    actually holds inside the transaction.
    """
    stored_status = await session.scalar(select(col(LeaveRequest.status)).where(col(LeaveRequest.id) == request.id))
    if stored_status != expected_status.value:
        raise ConsistencyFault(
            f"Request {request.id} status not persisted: expected {expected_status.value}, found {stored_status}"
        )
    if expected_used_days is None:
        return
    row = (
        await session.execute(
            select(
                col(LeaveBalance.total_days),
                col(LeaveBalance.used_days),
                col(LeaveBalance.remaining_days),
            ).where(
                col(LeaveBalance.user_id) == request.employee_id,
                col(LeaveBalance.leave_category_id) == request.leave_category_id,
                col(LeaveBalance.year) == request.balance_year,
            )
        )
    ).one_or_none()
    if row is None or row.used_days != expected_used_days or row.remaining_days != row.total_days - row.used_days:
        raise ConsistencyFault(f"Ledger debit for request {request.id} not persisted atomically with its approval")


async def _commit(
    session: AsyncSession,
    request: LeaveRequest,
    target: LeaveStatus,
    expected_used_days: int | None,
) -> None:
    """Verify and commit the transition's unit of work."""
    try:
        await _verify_persisted(session, request, target, expected_used_days)
        await session.commit()
    except ConsistencyFault:
        await session.rollback()
        logger.critical("Refused to commit request %s -> %s", request.id, target.value)
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.critical("Commit failed for request %s -> %s", request.id, target.value, exc_info=True)
        if expected_used_days is not None:
            raise ConsistencyFault(f"Terminal approval of request {request.id} could not be committed") from exc
        raise


def _event(
    request: LeaveRequest,
    category_name: str,
    trigger: Trigger,
    actor_id: uuid.UUID | None,
    previous: LeaveStatus | None,
    target: LeaveStatus,
    notes: str | None = None,
) -> WorkflowEvent:
    return WorkflowEvent(
        request_id=request.id,
        employee_id=request.employee_id,
        category_name=category_name,
        days=request.days,
        trigger=trigger,
        actor_id=actor_id,
        previous_status=previous,
        new_status=target,
        notes=notes,
    )


async def _category_name(leave_category_id: uuid.UUID) -> str:
    category = await get_leave_category_catalog().get(leave_category_id)
    return category.name if category is not None else "Leave"


async def _notify_best_effort(
    request: LeaveRequest,
    trigger: Trigger,
    actor_id: uuid.UUID | None,
    previous: LeaveStatus | None,
    target: LeaveStatus,
    notes: str | None = None,
) -> None:
    """Resolve recipients and dispatch after commit. Never raises."""
    try:
        event = _event(
            request, await _category_name(request.leave_category_id), trigger, actor_id, previous, target, notes
        )
        recipients = await _recipients(request, trigger, previous, target)
    except Exception:
        logger.exception("Could not resolve notifications for request %s -> %s", request.id, target.value)
        return
    await dispatch_best_effort(recipients, event)


async def _apply_transition(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    trigger: Trigger,
    notes: str | None = None,
) -> LeaveRequestResponse:
    """Run one trigger as a single unit of work.

    1. Lock the request row (404 if missing).
    2. Authorization guard (403, nothing written).
    3. State check against the transition table (409 if stale).
    4. Record the decision and write the new status.
    5. Debit the ledger on terminal approval.
    6. Audit log, verify, commit.
    7. Best-effort notifications.
    """
    actor_id = auth.user_id
    try:
        request = await _get_request(session, request_id, for_update=True)
        await _check_guard(request, trigger, actor_id)
        previous = LeaveStatus(request.status)
        target = next_status(previous, trigger, request.requires_hr_approval)

        before_dict = model_to_audit_dict(request)
        now = now_utc()

        if trigger in (Trigger.MANAGER_APPROVE, Trigger.MANAGER_REJECT):
            request.manager_approved = trigger == Trigger.MANAGER_APPROVE
            request.manager_decided_by = actor_id
            request.manager_decided_at = now
            request.manager_notes = notes
        elif trigger in (Trigger.HR_APPROVE, Trigger.HR_REJECT):
            request.hr_approved = trigger == Trigger.HR_APPROVE
            request.hr_decided_by = actor_id
            request.hr_decided_at = now
            request.hr_notes = notes
        else:
            request.cancelled_at = now
        request.status = target.value

        await session.flush()

        expected_used_days = None
        if target in APPROVED_STATUSES:
            expected_used_days = await _debit_for_request(session, request, actor_id)

        write_audit_log(
            session,
            actor_id=actor_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_key=request.id,
            action=_AUDIT_ACTIONS[trigger],
            before_json=before_dict,
            after_json=model_to_audit_dict(request),
        )
        await session.flush()
    except AppError:
        await session.rollback()
        raise

    await _commit(session, request, target, expected_used_days)
    logger.info("Request %s %s -> %s by %s", request.id, previous.value, target.value, actor_id)

    await _notify_best_effort(request, trigger, actor_id, previous, target, notes)
    return _build_request_response(request)


# ---------------------------------------------------------------------------
# Public API: triggers
# ---------------------------------------------------------------------------


async def submit_leave_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeavePayload,
    today: date | None = None,
) -> LeaveRequestResponse:
    """Validate and submit a leave request for the authenticated employee.

    Flow:
    1. Employee must exist in the directory
    2. Submission validator (field errors, balance, max days, overlap)
    3. Route: manager first if any, else HR if required, else auto-approve
    4. Create the ledger row lazily if the validator found none
    5. Create the request
    6. Debit immediately when auto-approved
    7. Audit log, commit, notify
    """
    employee_id = auth.user_id
    directory = get_user_directory()

    # 1. Employee.
    if await directory.get_user(employee_id) is None:
        raise NotFound("Employee not found")

    # 2. Validate.
    check = await validate_submission(session, employee_id, payload, today)
    submission = check.raise_for_errors()
    category = submission.category

    # 3. Route.
    manager_id = await directory.get_manager_of(employee_id)
    target = initial_status(manager_id is not None, category.requires_hr_approval)

    try:
        # 4. Lazy ledger row.
        if check.ledger_missing:
            await ensure_initialized(
                session, employee_id, category.id, submission.balance_year, category.max_days, actor_id=employee_id
            )

        # 5. Create request.
        request = LeaveRequest(
            employee_id=employee_id,
            leave_category_id=category.id,
            start_date=submission.start_date,
            end_date=submission.end_date,
            days=submission.days,
            reason=submission.reason,
            status=target.value,
            manager_id=manager_id,
            requires_hr_approval=category.requires_hr_approval,
            balance_year=submission.balance_year,
        )
        session.add(request)
        await session.flush()

        # 6. Auto-approval debits now; the system is the approver.
        expected_used_days = None
        if target in APPROVED_STATUSES:
            expected_used_days = await _debit_for_request(session, request, None)

        # 7. Audit.
        write_audit_log(
            session,
            actor_id=employee_id,
            entity_type=AuditEntityType.LEAVE_REQUEST,
            entity_key=request.id,
            action=AuditAction.AUTO_APPROVE if target in APPROVED_STATUSES else AuditAction.SUBMIT,
            after_json=model_to_audit_dict(request),
        )
        await session.flush()
    except AppError:
        await session.rollback()
        raise

    await _commit(session, request, target, expected_used_days)
    logger.info("Request %s submitted by %s -> %s (%d days)", request.id, employee_id, target.value, request.days)

    actor_id = None if target in APPROVED_STATUSES else employee_id
    await _notify_best_effort(request, Trigger.SUBMIT, actor_id, None, target)
    return _build_request_response(request)


async def manager_decide(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload,
) -> LeaveRequestResponse:
    """Manager approves (forward to HR or approve outright) or rejects a request."""
    trigger = Trigger.MANAGER_APPROVE if payload.approve else Trigger.MANAGER_REJECT
    return await _apply_transition(session, auth, request_id, trigger, payload.notes)


async def hr_decide(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload,
) -> LeaveRequestResponse:
    """HR gives the final approval or rejects a request waiting on HR."""
    trigger = Trigger.HR_APPROVE if payload.approve else Trigger.HR_REJECT
    return await _apply_transition(session, auth, request_id, trigger, payload.notes)


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Employee withdraws a still-pending request."""
    return await _apply_transition(session, auth, request_id, Trigger.CANCEL)


# ---------------------------------------------------------------------------
# Public API: reads
# ---------------------------------------------------------------------------


async def get_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single request visible to the caller (owner, its manager, HR, or admin)."""
    request = await _get_request(session, request_id)
    if not (
        auth.is_admin
        or request.employee_id == auth.user_id
        or _is_request_manager(request, auth.user_id)
        or await _is_hr(auth.user_id)
    ):
        raise Unauthorized("Not allowed to view this request")
    return _build_request_response(request)


async def _list(
    session: AsyncSession,
    filters: list,
    offset: int,
    limit: int,
    *,
    oldest_first: bool = False,
) -> LeaveRequestListResponse:
    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    order = col(LeaveRequest.applied_at).asc() if oldest_first else col(LeaveRequest.applied_at).desc()
    result = await session.execute(select(LeaveRequest).where(*filters).order_by(order).offset(offset).limit(limit))
    requests = list(result.scalars().all())
    return LeaveRequestListResponse(items=[_build_request_response(r) for r in requests], total=total)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    employee_id: uuid.UUID | None = None,
    status_filter: LeaveStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List an employee's requests, newest first. Defaults to the caller's own."""
    employee_id = employee_id or auth.user_id
    if employee_id != auth.user_id and not (auth.is_admin or await _is_hr(auth.user_id)):
        raise Unauthorized("Not allowed to list another employee's requests")

    filters = [col(LeaveRequest.employee_id) == employee_id]
    if status_filter is not None:
        filters.append(col(LeaveRequest.status) == status_filter.value)
    return await _list(session, filters, offset, limit)


async def list_manager_pending(
    session: AsyncSession,
    auth: AuthContext,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Requests waiting on the caller as manager, oldest first."""
    filters = [
        col(LeaveRequest.manager_id) == auth.user_id,
        col(LeaveRequest.status) == LeaveStatus.PENDING_MANAGER.value,
    ]
    return await _list(session, filters, offset, limit, oldest_first=True)


async def list_hr_pending(
    session: AsyncSession,
    auth: AuthContext,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Requests waiting on HR, oldest first. HR only."""
    if not await _is_hr(auth.user_id):
        raise Unauthorized("HR role required")
    filters = [col(LeaveRequest.status) == LeaveStatus.PENDING_HR.value]
    return await _list(session, filters, offset, limit, oldest_first=True)
