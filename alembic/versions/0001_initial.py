"""leave_request, leave_balance and audit_log

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_category_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=50), server_default="PENDING_MANAGER", nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=True),
        sa.Column("requires_hr_approval", sa.Boolean(), nullable=False),
        sa.Column("balance_year", sa.Integer(), nullable=False),
        sa.Column("manager_approved", sa.Boolean(), nullable=True),
        sa.Column("manager_decided_by", sa.Uuid(), nullable=True),
        sa.Column("manager_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_notes", sa.String(), nullable=True),
        sa.Column("hr_approved", sa.Boolean(), nullable=True),
        sa.Column("hr_decided_by", sa.Uuid(), nullable=True),
        sa.Column("hr_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hr_notes", sa.String(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("start_date <= end_date", name="ck_leave_request_date_order"),
        sa.CheckConstraint("days > 0", name="ck_leave_request_days_positive"),
    )
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_leave_category_id", "leave_request", ["leave_category_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_manager_id", "leave_request", ["manager_id"])
    op.create_index("ix_leave_request_employee_dates", "leave_request", ["employee_id", "start_date", "end_date"])

    op.create_table(
        "leave_balance",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("leave_category_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("used_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("remaining_days", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("user_id", "leave_category_id", "year"),
        sa.CheckConstraint("remaining_days >= 0", name="ck_leave_balance_remaining_non_negative"),
        sa.CheckConstraint("remaining_days = total_days - used_days", name="ck_leave_balance_remaining_matches_usage"),
    )
    op.create_index("ix_leave_balance_leave_category_id", "leave_balance", ["leave_category_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_key", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.current_timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_key"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("leave_balance")
    op.drop_table("leave_request")
