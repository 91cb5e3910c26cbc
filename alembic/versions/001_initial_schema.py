"""Initial schema: resources and bookings with lifecycle constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "resources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(20), nullable=True),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="check_resource_capacity_positive"),
        sa.CheckConstraint("end_time > start_time", name="check_resource_end_after_start"),
        sa.CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="check_resource_price_non_negative"),
    )
    op.create_index("ix_resources_id", "resources", ["id"])
    op.create_index("ix_resources_owner_id", "resources", ["owner_id"])
    # Listing order for published resources
    op.create_index("ix_resources_start_time", "resources", ["start_time"])
    # Lifecycle sweep: WHERE status = 'published' AND end_time < now()
    op.create_index("ix_resources_status_end_time", "resources", ["status", "end_time"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("resource_id", sa.Integer(), sa.ForeignKey("resources.id"), nullable=False),
        sa.Column("requester_id", sa.Integer(), nullable=False),
        sa.Column("units", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("note", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # Authority for booking code uniqueness
        sa.UniqueConstraint("code", name="uq_bookings_code"),
        sa.CheckConstraint("units > 0", name="check_booking_units_positive"),
        sa.CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_resource_id", "bookings", ["resource_id"])
    op.create_index("ix_bookings_requester_id", "bookings", ["requester_id"])
    # Ledger reconstruction: SUM(units) WHERE resource_id = ? AND status != 'cancelled'
    op.create_index("ix_bookings_resource_status", "bookings", ["resource_id", "status"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("resources")
