# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class BalanceResponse(BaseModel):
    """Day counts for one (user, category, year) ledger row."""

    user_id: uuid.UUID
    leave_category_id: uuid.UUID
    year: int
    total_days: int
    used_days: int
    remaining_days: int
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """All ledger rows of a user for a year."""

    items: list[BalanceResponse]
    total: int


class InitializeBalanceRequest(BaseModel):
    """Request body for creating a ledger row if none exists."""

    user_id: uuid.UUID
    leave_category_id: uuid.UUID
    year: int = Field(ge=2000, le=2100)
    total_days: int = Field(ge=0)
