from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import AuditLog, LeaveBalance, LeaveRequest, SQLModel
from app.models.enums import ACTIVE_STATUSES, PENDING_STATUSES, TERMINAL_STATUSES, LeaveStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

EXPECTED_TABLES = {"audit_log", "leave_balance", "leave_request"}


def test_all_tables_registered() -> None:
    assert EXPECTED_TABLES.issubset(set(SQLModel.metadata.tables.keys()))


def test_leave_balance_primary_key() -> None:
    table = SQLModel.metadata.tables["leave_balance"]
    assert [c.name for c in table.primary_key.columns] == ["user_id", "leave_category_id", "year"]


def test_leave_request_defaults() -> None:
    request = LeaveRequest(
        employee_id=uuid.uuid4(),
        leave_category_id=uuid.uuid4(),
        start_date=date(2026, 5, 4),
        end_date=date(2026, 5, 6),
        days=3,
        reason="Conference travel",
        requires_hr_approval=True,
        balance_year=2026,
    )
    assert request.id is not None
    assert request.status == LeaveStatus.PENDING_MANAGER
    assert request.manager_id is None
    assert request.manager_approved is None
    assert request.applied_at is not None


def test_audit_log_instantiation() -> None:
    entry = AuditLog(entity_type="LEAVE_REQUEST", entity_key="abc", action="SUBMIT", after_json={"days": 3})
    assert entry.actor_id is None
    assert entry.before_json is None


def test_status_groups_partition() -> None:
    assert PENDING_STATUSES.isdisjoint(TERMINAL_STATUSES)
    assert PENDING_STATUSES | TERMINAL_STATUSES == set(LeaveStatus)
    assert LeaveStatus.REJECTED not in ACTIVE_STATUSES
    assert LeaveStatus.CANCELLED not in ACTIVE_STATUSES


@pytest.mark.parametrize(
    ("total", "used", "remaining"),
    [
        (10, 4, 7),  # remaining disagrees with total - used
        (2, 4, -2),  # overdrawn
    ],
)
async def test_balance_check_constraints(db_session: AsyncSession, total: int, used: int, remaining: int) -> None:
    db_session.add(
        LeaveBalance(
            user_id=uuid.uuid4(),
            leave_category_id=uuid.uuid4(),
            year=2026,
            total_days=total,
            used_days=used,
            remaining_days=remaining,
        )
    )
    with pytest.raises(IntegrityError):
        await db_session.commit()


async def test_request_date_order_constraint(db_session: AsyncSession) -> None:
    db_session.add(
        LeaveRequest(
            employee_id=uuid.uuid4(),
            leave_category_id=uuid.uuid4(),
            start_date=date(2026, 5, 6),
            end_date=date(2026, 5, 4),
            days=1,
            reason="Backwards dates",
            requires_hr_approval=False,
            balance_year=2026,
        )
    )
    with pytest.raises(IntegrityError):
        await db_session.commit()
