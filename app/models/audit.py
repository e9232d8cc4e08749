# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import UUIDBase, utc_timestamp_field


class AuditLog(UUIDBase, table=True):
    """Immutable record of every workflow and ledger mutation."""

    __tablename__ = "audit_log"
    __table_args__ = (sa.Index("ix_audit_entity", "entity_type", "entity_key"),)

    actor_id: uuid.UUID | None = None
    entity_type: str = Field(max_length=50)
    # Requests are keyed by UUID; ledger rows by "user:category:year".
    entity_key: str = Field(max_length=255)
    action: str = Field(max_length=50)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = utc_timestamp_field(index=True)
