"""Initial schema: accounts, chargers, bookings, booking_requests with slot constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(10), nullable=False, server_default=sa.text("'driver'")),
        sa.Column("green_score", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("estimated_co2_saved", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_charging_time", sa.Float(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('driver', 'owner')", name="check_account_role"),
        sa.CheckConstraint("total_sessions >= 0", name="check_total_sessions_non_negative"),
    )
    op.create_index("ix_accounts_id", "accounts", ["id"])
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "chargers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("charger_type", sa.String(20), nullable=False, server_default=sa.text("'Level 2'")),
        sa.Column("price_per_hour", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("4.5")),
        sa.Column("total_slots", sa.Integer(), nullable=False, server_default=sa.text("4")),
        sa.Column("available_slots", sa.Integer(), nullable=False, server_default=sa.text("4")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("total_slots > 0", name="check_total_slots_positive"),
        # SLOT BOUNDS: the last line of defense behind the conditional updates
        # in reserve_slot/release_slot. A bug that tries to over-commit a
        # charger fails here instead of silently double-booking.
        sa.CheckConstraint("available_slots >= 0", name="check_available_slots_non_negative"),
        sa.CheckConstraint("available_slots <= total_slots", name="check_available_lte_total"),
        sa.CheckConstraint("charger_type IN ('DC Fast', 'Level 2', 'Level 1')", name="check_charger_type"),
        sa.CheckConstraint("price_per_hour >= 0", name="check_price_non_negative"),
    )
    op.create_index("ix_chargers_id", "chargers", ["id"])
    op.create_index("ix_chargers_owner_id", "chargers", ["owner_id"])
    op.create_index("ix_chargers_available", "chargers", ["available_slots"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("charger_id", sa.Integer(), sa.ForeignKey("chargers.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_hours", sa.Float(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("green_points_earned", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("duration_hours >= 0.5 AND duration_hours <= 1.5", name="check_booking_duration"),
        sa.CheckConstraint("status IN ('active', 'completed', 'cancelled')", name="check_booking_status"),
        sa.CheckConstraint("green_points_earned >= 0", name="check_green_points_non_negative"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_charger_id", "bookings", ["charger_id"])

    op.create_table(
        "booking_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("charger_id", sa.Integer(), sa.ForeignKey("chargers.id"), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_hours", sa.Float(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=True),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_ended_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("duration_hours >= 0.5 AND duration_hours <= 1.5", name="check_request_duration"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'session_active', "
            "'session_ended', 'session_cancelled', 'cancelled')",
            name="check_request_status",
        ),
    )
    op.create_index("ix_booking_requests_id", "booking_requests", ["id"])
    op.create_index("ix_booking_requests_user_id", "booking_requests", ["user_id"])
    op.create_index("ix_booking_requests_charger_id", "booking_requests", ["charger_id"])
    # Owner dashboard: "pending requests for my chargers"
    op.create_index("ix_booking_requests_owner_status", "booking_requests", ["owner_id", "status"])


def downgrade() -> None:
    op.drop_table("booking_requests")
    op.drop_table("bookings")
    op.drop_table("chargers")
    op.drop_table("accounts")
