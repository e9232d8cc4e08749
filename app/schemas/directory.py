# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from app.models.enums import UserRole


class UpsertUserRequest(BaseModel):
    """Request body for upserting a user in the directory stub."""

    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.EMPLOYEE
    department: str | None = Field(default=None, max_length=100)
    manager_id: uuid.UUID | None = None


class UserResponse(BaseModel):
    """Response schema for a directory user."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    department: str | None
    manager_id: uuid.UUID | None


class UpsertLeaveCategoryRequest(BaseModel):
    """Request body for upserting a leave category in the catalog stub."""

    name: str = Field(min_length=1, max_length=100)
    max_days: int = Field(ge=1, le=366)
    requires_hr_approval: bool = True
    carry_over: bool = False
    is_active: bool = True
    description: str | None = Field(default=None, max_length=500)


class LeaveCategoryResponse(BaseModel):
    """Response schema for a leave category."""

    id: uuid.UUID
    name: str
    max_days: int
    requires_hr_approval: bool
    carry_over: bool
    is_active: bool
    description: str | None


class LeaveCategoryListResponse(BaseModel):
    """List of leave categories."""

    items: list[LeaveCategoryResponse]
    total: int
