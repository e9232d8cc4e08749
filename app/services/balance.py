# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from app.exceptions import BusinessRuleError, ConsistencyFault, NotFound, ValidationError
from app.models.balance import LeaveBalance
from app.models.base import now_utc
from app.models.enums import AuditAction, AuditEntityType
from app.schemas.balance import BalanceListResponse, BalanceResponse
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.catalog import get_leave_category_catalog
from app.services.directory import get_user_directory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.balance import InitializeBalanceRequest
    from app.services.catalog import LeaveCategory

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def ledger_key(user_id: uuid.UUID, leave_category_id: uuid.UUID, year: int) -> str:
    """Audit-log key of a ledger row."""
    return f"{user_id}:{leave_category_id}:{year}"


def insufficient_balance_error(remaining_days: int, requested_days: int) -> BusinessRuleError:
    """Business-rule error for a request larger than the remaining balance."""
    return BusinessRuleError(
        rules=["balance"],
        message=f"Insufficient leave balance: {remaining_days} remaining, {requested_days} requested",
        context={"remaining_days": remaining_days, "requested_days": requested_days},
    )


def _build_balance_response(entry: LeaveBalance) -> BalanceResponse:
    """Map a ledger row to its response schema."""
    return BalanceResponse(
        user_id=entry.user_id,
        leave_category_id=entry.leave_category_id,
        year=entry.year,
        total_days=entry.total_days,
        used_days=entry.used_days,
        remaining_days=entry.remaining_days,
        updated_at=entry.updated_at,
    )


async def get_ledger_entry(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_category_id: uuid.UUID,
    year: int,
    *,
    for_update: bool = False,
) -> LeaveBalance | None:
    """Fetch a ledger row, optionally locking it for the rest of the transaction."""
    query = select(LeaveBalance).where(
        col(LeaveBalance.user_id) == user_id,
        col(LeaveBalance.leave_category_id) == leave_category_id,
        col(LeaveBalance.year) == year,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


def verify_ledger_invariants(entry: LeaveBalance) -> None:
    """Raise ConsistencyFault if the row's counts disagree or went negative."""
    if entry.remaining_days != entry.total_days - entry.used_days or entry.remaining_days < 0:
        raise ConsistencyFault(
            f"Ledger {ledger_key(entry.user_id, entry.leave_category_id, entry.year)} is inconsistent: "
            f"total={entry.total_days} used={entry.used_days} remaining={entry.remaining_days}"
        )


# ---------------------------------------------------------------------------
# Ledger operations (run inside the caller's transaction, never commit)
# ---------------------------------------------------------------------------


async def ensure_initialized(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_category_id: uuid.UUID,
    year: int,
    total_days: int,
    *,
    actor_id: uuid.UUID | None = None,
) -> LeaveBalance:
    """Create the ledger row with nothing used if it does not exist yet.

    Idempotent: an existing row is returned untouched, whatever its total.
    """
    existing = await get_ledger_entry(session, user_id, leave_category_id, year, for_update=True)
    if existing is not None:
        return existing

    entry = LeaveBalance(
        user_id=user_id,
        leave_category_id=leave_category_id,
        year=year,
        total_days=total_days,
        used_days=0,
        remaining_days=total_days,
        version=1,
    )
    session.add(entry)
    await session.flush()

    write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_key=ledger_key(user_id, leave_category_id, year),
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(entry),
    )
    logger.info("Initialized ledger %s with %d days", ledger_key(user_id, leave_category_id, year), total_days)
    return entry


async def debit(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_category_id: uuid.UUID,
    year: int,
    days: int,
    *,
    actor_id: uuid.UUID | None = None,
    request_id: uuid.UUID | None = None,
) -> LeaveBalance:
    """Move ``days`` from remaining to used on a locked ledger row.

    Raises NotFound when the row does not exist and ValidationError when
    the remaining balance no longer covers the request.
    """
    if days <= 0:
        msg = f"debit amount must be positive, got {days}"
        raise ValueError(msg)

    entry = await get_ledger_entry(session, user_id, leave_category_id, year, for_update=True)
    if entry is None:
        raise NotFound("Leave balance not found")

    if entry.remaining_days < days:
        raise ValidationError(
            "Leave balance no longer covers this request",
            business_error=insufficient_balance_error(entry.remaining_days, days),
        )

    before_dict = model_to_audit_dict(entry)

    entry.used_days += days
    entry.remaining_days -= days
    entry.version += 1
    entry.updated_at = now_utc()
    verify_ledger_invariants(entry)

    await session.flush()

    after_dict = model_to_audit_dict(entry)
    if request_id is not None:
        after_dict["request_id"] = str(request_id)
    write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.LEAVE_BALANCE,
        entity_key=ledger_key(user_id, leave_category_id, year),
        action=AuditAction.DEBIT,
        before_json=before_dict,
        after_json=after_dict,
    )
    return entry


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(
    session: AsyncSession,
    user_id: uuid.UUID,
    leave_category_id: uuid.UUID,
    year: int,
) -> BalanceResponse:
    """Get one ledger row. Raises 404 if not found."""
    entry = await get_ledger_entry(session, user_id, leave_category_id, year)
    if entry is None:
        raise NotFound("Leave balance not found")
    return _build_balance_response(entry)


async def list_balances(
    session: AsyncSession,
    user_id: uuid.UUID,
    year: int,
) -> BalanceListResponse:
    """List every ledger row of a user for a year."""
    result = await session.execute(
        select(LeaveBalance)
        .where(
            col(LeaveBalance.user_id) == user_id,
            col(LeaveBalance.year) == year,
        )
        .order_by(col(LeaveBalance.leave_category_id))
    )
    entries = list(result.scalars().all())
    return BalanceListResponse(items=[_build_balance_response(e) for e in entries], total=len(entries))


# ---------------------------------------------------------------------------
# Write path: provisioning
# ---------------------------------------------------------------------------


async def initialize_balance(
    session: AsyncSession,
    auth: AuthContext,
    payload: InitializeBalanceRequest,
) -> BalanceResponse:
    """Ensure a ledger row exists for the given key and commit."""
    entry = await ensure_initialized(
        session,
        payload.user_id,
        payload.leave_category_id,
        payload.year,
        payload.total_days,
        actor_id=auth.user_id,
    )
    await session.commit()
    return _build_balance_response(entry)


async def provision_user_balances(
    session: AsyncSession,
    user_id: uuid.UUID,
    year: int,
    *,
    actor_id: uuid.UUID | None = None,
) -> BalanceListResponse:
    """Give a newly provisioned user a row for every active category."""
    categories = await get_leave_category_catalog().list_categories()
    entries = [
        await ensure_initialized(session, user_id, category.id, year, category.max_days, actor_id=actor_id)
        for category in categories
        if category.is_active
    ]
    await session.commit()
    return BalanceListResponse(items=[_build_balance_response(e) for e in entries], total=len(entries))


async def provision_category_balances(
    session: AsyncSession,
    category: LeaveCategory,
    year: int,
    *,
    actor_id: uuid.UUID | None = None,
) -> int:
    """Give every known user a row for a newly introduced category. Returns the user count."""
    if not category.is_active:
        return 0
    users = await get_user_directory().list_users()
    for user in users:
        await ensure_initialized(session, user.id, category.id, year, category.max_days, actor_id=actor_id)
    await session.commit()
    return len(users)
