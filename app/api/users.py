# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter

from app.api.deps import AdminDep, AuthDep
from app.db import SessionDep
from app.exceptions import FieldError, NotFound, ValidationError
from app.schemas.directory import UpsertUserRequest, UserResponse
from app.services.balance import provision_user_balances
from app.services.directory import UserInfo, get_user_directory

users_router = APIRouter(
    prefix="/users",
    tags=["users"],
)


def _build_user_response(user: UserInfo) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        department=user.department,
        manager_id=user.manager_id,
    )


@users_router.put("/{user_id}", response_model=UserResponse)
async def upsert_user(
    user_id: uuid.UUID,
    payload: UpsertUserRequest,
    session: SessionDep,
    auth: AdminDep,
) -> UserResponse:
    """Create or update a user in the stub directory and provision their balances (admin only)."""
    directory = get_user_directory()
    if payload.manager_id == user_id:
        raise ValidationError(
            "User cannot be their own manager",
            field_errors=[FieldError(field="manager_id", message="User cannot be their own manager")],
        )
    if payload.manager_id is not None and await directory.get_user(payload.manager_id) is None:
        raise NotFound("Manager not found")
    user = UserInfo(
        id=user_id,
        name=payload.name,
        email=payload.email,
        role=payload.role,
        department=payload.department,
        manager_id=payload.manager_id,
    )
    directory.seed(user)  # ty: ignore[unresolved-attribute]
    await provision_user_balances(session, user_id, date.today().year, actor_id=auth.user_id)
    return _build_user_response(user)


@users_router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    auth: AuthDep,
) -> UserResponse:
    """Get a user from the stub directory."""
    user = await get_user_directory().get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return _build_user_response(user)
