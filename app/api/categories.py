# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter

from app.api.deps import AdminDep, AuthDep
from app.db import SessionDep
from app.schemas.directory import LeaveCategoryListResponse, LeaveCategoryResponse, UpsertLeaveCategoryRequest
from app.services.balance import provision_category_balances
from app.services.catalog import LeaveCategory, get_leave_category_catalog

categories_router = APIRouter(
    prefix="/leave-categories",
    tags=["leave-categories"],
)


def _build_category_response(category: LeaveCategory) -> LeaveCategoryResponse:
    return LeaveCategoryResponse(
        id=category.id,
        name=category.name,
        max_days=category.max_days,
        requires_hr_approval=category.requires_hr_approval,
        carry_over=category.carry_over,
        is_active=category.is_active,
        description=category.description,
    )


@categories_router.get("", response_model=LeaveCategoryListResponse)
async def list_categories(auth: AuthDep) -> LeaveCategoryListResponse:
    """List all leave categories."""
    categories = await get_leave_category_catalog().list_categories()
    return LeaveCategoryListResponse(
        items=[_build_category_response(c) for c in categories],
        total=len(categories),
    )


@categories_router.put("/{leave_category_id}", response_model=LeaveCategoryResponse)
async def upsert_category(
    leave_category_id: uuid.UUID,
    payload: UpsertLeaveCategoryRequest,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveCategoryResponse:
    """Create or update a category in the stub catalog and provision balances for known users (admin only)."""
    category = LeaveCategory(
        id=leave_category_id,
        name=payload.name,
        max_days=payload.max_days,
        requires_hr_approval=payload.requires_hr_approval,
        carry_over=payload.carry_over,
        is_active=payload.is_active,
        description=payload.description,
    )
    get_leave_category_catalog().seed(category)  # ty: ignore[unresolved-attribute]
    await provision_category_balances(session, category, date.today().year, actor_id=auth.user_id)
    return _build_category_response(category)
