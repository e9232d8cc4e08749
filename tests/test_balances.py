"""Tests for the balance ledger: lazy creation, debits, invariants, provisioning and the API."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlmodel import col

from app.exceptions import ConsistencyFault, NotFound, ValidationError
from app.models.audit import AuditLog
from app.models.balance import LeaveBalance
from app.models.enums import AuditAction, AuditEntityType
from app.services.balance import (
    debit,
    ensure_initialized,
    get_ledger_entry,
    ledger_key,
    provision_category_balances,
    provision_user_balances,
    verify_ledger_invariants,
)
from app.services.catalog import DEFAULT_CATEGORIES, LeaveCategory, _category_id

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from conftest import People

YEAR = date.today().year
USER_ID = uuid.uuid4()
ANNUAL = _category_id("annual")
SICK = _category_id("sick")
ADMIN_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "admin"}


async def _balance_audits(session: AsyncSession, action: AuditAction) -> list[AuditLog]:
    result = await session.execute(
        select(AuditLog).where(
            col(AuditLog.entity_type) == AuditEntityType.LEAVE_BALANCE.value,
            col(AuditLog.action) == action.value,
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# ensure_initialized
# ---------------------------------------------------------------------------


async def test_ensure_initialized_creates_row(db_session: AsyncSession) -> None:
    entry = await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 30)
    await db_session.commit()

    assert entry.total_days == 30
    assert entry.used_days == 0
    assert entry.remaining_days == 30
    assert entry.version == 1

    audits = await _balance_audits(db_session, AuditAction.CREATE)
    assert len(audits) == 1
    assert audits[0].entity_key == ledger_key(USER_ID, ANNUAL, YEAR)


async def test_ensure_initialized_is_idempotent(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 30)
    await db_session.commit()
    again = await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 99)
    await db_session.commit()

    assert again.total_days == 30
    result = await db_session.execute(select(LeaveBalance))
    assert len(result.scalars().all()) == 1
    assert len(await _balance_audits(db_session, AuditAction.CREATE)) == 1


async def test_rows_are_keyed_by_year(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 30)
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR + 1, 25)
    await db_session.commit()

    this_year = await get_ledger_entry(db_session, USER_ID, ANNUAL, YEAR)
    next_year = await get_ledger_entry(db_session, USER_ID, ANNUAL, YEAR + 1)
    assert this_year is not None
    assert next_year is not None
    assert (this_year.total_days, next_year.total_days) == (30, 25)


# ---------------------------------------------------------------------------
# debit
# ---------------------------------------------------------------------------


async def test_debit_moves_days_to_used(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 30)
    request_id = uuid.uuid4()
    entry = await debit(db_session, USER_ID, ANNUAL, YEAR, 5, actor_id=USER_ID, request_id=request_id)
    await db_session.commit()

    assert entry.used_days == 5
    assert entry.remaining_days == 25
    assert entry.remaining_days == entry.total_days - entry.used_days
    assert entry.version == 2

    audits = await _balance_audits(db_session, AuditAction.DEBIT)
    assert len(audits) == 1
    assert audits[0].before_json is not None
    assert audits[0].after_json is not None
    assert audits[0].before_json["remaining_days"] == 30
    assert audits[0].after_json["remaining_days"] == 25
    assert audits[0].after_json["request_id"] == str(request_id)


async def test_debit_can_exhaust_balance(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, SICK, YEAR, 3)
    entry = await debit(db_session, USER_ID, SICK, YEAR, 3)
    assert entry.remaining_days == 0


async def test_debit_insufficient_leaves_row_untouched(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 5)
    await db_session.commit()

    with pytest.raises(ValidationError) as exc_info:
        await debit(db_session, USER_ID, ANNUAL, YEAR, 8)
    business_error = exc_info.value.business_error
    assert business_error is not None
    assert business_error.message == "Insufficient leave balance: 5 remaining, 8 requested"

    await db_session.rollback()
    entry = await get_ledger_entry(db_session, USER_ID, ANNUAL, YEAR)
    assert entry is not None
    assert (entry.used_days, entry.remaining_days, entry.version) == (0, 5, 1)


async def test_debit_missing_row(db_session: AsyncSession) -> None:
    with pytest.raises(NotFound):
        await debit(db_session, USER_ID, ANNUAL, YEAR, 1)


@pytest.mark.parametrize("days", [0, -3])
async def test_debit_rejects_non_positive(db_session: AsyncSession, days: int) -> None:
    with pytest.raises(ValueError, match="positive"):
        await debit(db_session, USER_ID, ANNUAL, YEAR, days)


def test_verify_ledger_invariants() -> None:
    good = LeaveBalance(user_id=USER_ID, leave_category_id=ANNUAL, year=YEAR, total_days=10, used_days=4, remaining_days=6)
    verify_ledger_invariants(good)

    drifted = LeaveBalance(
        user_id=USER_ID, leave_category_id=ANNUAL, year=YEAR, total_days=10, used_days=4, remaining_days=7
    )
    with pytest.raises(ConsistencyFault):
        verify_ledger_invariants(drifted)

    overdrawn = LeaveBalance(
        user_id=USER_ID, leave_category_id=ANNUAL, year=YEAR, total_days=2, used_days=4, remaining_days=-2
    )
    with pytest.raises(ConsistencyFault):
        verify_ledger_invariants(overdrawn)


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


async def test_provision_user_balances_covers_active_categories(db_session: AsyncSession) -> None:
    result = await provision_user_balances(db_session, USER_ID, YEAR)
    assert result.total == len(DEFAULT_CATEGORIES)
    by_category = {item.leave_category_id: item for item in result.items}
    assert by_category[ANNUAL].total_days == 30
    assert by_category[SICK].remaining_days == 15


async def test_provision_user_balances_keeps_existing_rows(db_session: AsyncSession) -> None:
    await ensure_initialized(db_session, USER_ID, ANNUAL, YEAR, 30)
    await debit(db_session, USER_ID, ANNUAL, YEAR, 4)
    await db_session.commit()

    await provision_user_balances(db_session, USER_ID, YEAR)
    entry = await get_ledger_entry(db_session, USER_ID, ANNUAL, YEAR)
    assert entry is not None
    assert entry.used_days == 4


async def test_provision_category_balances(db_session: AsyncSession, people: People) -> None:
    category = LeaveCategory(id=uuid.uuid4(), name="Sabbatical", max_days=60)
    count = await provision_category_balances(db_session, category, YEAR)
    assert count == 5

    entry = await get_ledger_entry(db_session, people.employee.id, category.id, YEAR)
    assert entry is not None
    assert entry.remaining_days == 60


async def test_provision_inactive_category_is_noop(db_session: AsyncSession, people: People) -> None:
    category = LeaveCategory(id=uuid.uuid4(), name="Retired", max_days=10, is_active=False)
    assert await provision_category_balances(db_session, category, YEAR) == 0
    assert await get_ledger_entry(db_session, people.employee.id, category.id, YEAR) is None


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


async def test_initialize_balance_endpoint(async_client: AsyncClient) -> None:
    body = {"user_id": str(USER_ID), "leave_category_id": str(ANNUAL), "year": YEAR, "total_days": 20}
    resp = await async_client.post("/balances", json=body, headers=ADMIN_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["total_days"] == 20
    assert data["remaining_days"] == 20

    # Existing rows are returned unchanged.
    resp = await async_client.post("/balances", json={**body, "total_days": 5}, headers=ADMIN_HEADERS)
    assert resp.status_code == 201
    assert resp.json()["total_days"] == 20


async def test_initialize_balance_requires_admin(async_client: AsyncClient) -> None:
    body = {"user_id": str(USER_ID), "leave_category_id": str(ANNUAL), "year": YEAR, "total_days": 20}
    resp = await async_client.post("/balances", json=body, headers={"X-User-Id": str(USER_ID)})
    assert resp.status_code == 403


async def test_list_own_balances(async_client: AsyncClient, db_session: AsyncSession, people: People) -> None:
    await provision_user_balances(db_session, people.employee.id, YEAR)

    resp = await async_client.get(f"/users/{people.employee.id}/balances", headers=people.headers(people.employee))
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == len(DEFAULT_CATEGORIES)
    assert all(item["year"] == YEAR for item in data["items"])


async def test_list_balances_for_other_year_is_empty(
    async_client: AsyncClient, db_session: AsyncSession, people: People
) -> None:
    await provision_user_balances(db_session, people.employee.id, YEAR)
    resp = await async_client.get(
        f"/users/{people.employee.id}/balances",
        params={"year": YEAR - 1},
        headers=people.headers(people.employee),
    )
    assert resp.status_code == 200
    assert resp.json()["total"] == 0


async def test_get_single_balance(async_client: AsyncClient, db_session: AsyncSession, people: People) -> None:
    await ensure_initialized(db_session, people.employee.id, SICK, YEAR, 15)
    await db_session.commit()

    resp = await async_client.get(
        f"/users/{people.employee.id}/balances/{SICK}", headers=people.headers(people.employee)
    )
    assert resp.status_code == 200
    assert resp.json()["remaining_days"] == 15

    resp = await async_client.get(
        f"/users/{people.employee.id}/balances/{ANNUAL}", headers=people.headers(people.employee)
    )
    assert resp.status_code == 404


async def test_balance_readers(async_client: AsyncClient, people: People) -> None:
    url = f"/users/{people.employee.id}/balances"
    assert (await async_client.get(url, headers=people.headers(people.manager))).status_code == 200
    assert (await async_client.get(url, headers=people.headers(people.hr))).status_code == 200
    assert (await async_client.get(url, headers=ADMIN_HEADERS)).status_code == 200
    assert (await async_client.get(url, headers=people.headers(people.peer))).status_code == 403
    assert (await async_client.get(url, headers=people.headers(people.solo))).status_code == 403
