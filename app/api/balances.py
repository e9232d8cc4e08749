# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from app.api.deps import AdminDep, AuthDep
from app.db import SessionDep
from app.exceptions import Unauthorized
from app.models.enums import UserRole
from app.schemas.balance import BalanceListResponse, BalanceResponse, InitializeBalanceRequest
from app.services import balance as balance_service
from app.services.directory import get_user_directory

user_balances_router = APIRouter(
    prefix="/users/{user_id}/balances",
    tags=["balances"],
)

balances_router = APIRouter(
    prefix="/balances",
    tags=["balances"],
)


async def _require_balance_reader(auth: AuthDep, user_id: uuid.UUID) -> None:
    """Users read their own balances; their manager, HR, and admins read anyone's."""
    if auth.user_id == user_id or auth.is_admin:
        return
    directory = get_user_directory()
    if await directory.get_manager_of(user_id) == auth.user_id:
        return
    if await directory.has_role(auth.user_id, UserRole.HR_ADMIN):
        return
    raise Unauthorized("Not allowed to view this user's balances")


@user_balances_router.get("", response_model=BalanceListResponse)
async def list_user_balances(
    user_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> BalanceListResponse:
    """List a user's balances for a year (current year by default)."""
    await _require_balance_reader(auth, user_id)
    return await balance_service.list_balances(session, user_id, year or date.today().year)


@user_balances_router.get("/{leave_category_id}", response_model=BalanceResponse)
async def get_user_balance(
    user_id: uuid.UUID,
    leave_category_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> BalanceResponse:
    """Get a user's balance for one category and year."""
    await _require_balance_reader(auth, user_id)
    return await balance_service.get_balance(session, user_id, leave_category_id, year or date.today().year)


@balances_router.post("", response_model=BalanceResponse, status_code=status.HTTP_201_CREATED)
async def initialize_balance(
    payload: InitializeBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Create a ledger row if none exists (admin only). Existing rows are returned unchanged."""
    return await balance_service.initialize_balance(session, auth, payload)
