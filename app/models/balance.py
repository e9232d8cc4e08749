# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from app.models.base import utc_timestamp_field


class LeaveBalance(SQLModel, table=True):
    """Per (user, category, year) day counts, debited once per approved request."""

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.CheckConstraint("remaining_days >= 0", name="ck_leave_balance_remaining_non_negative"),
        sa.CheckConstraint(
            "remaining_days = total_days - used_days", name="ck_leave_balance_remaining_matches_usage"
        ),
    )

    user_id: uuid.UUID = Field(primary_key=True, sa_type=sa.Uuid)
    leave_category_id: uuid.UUID = Field(primary_key=True, sa_type=sa.Uuid, index=True)
    year: int = Field(primary_key=True)
    total_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    used_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    remaining_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    updated_at: datetime = utc_timestamp_field()
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
