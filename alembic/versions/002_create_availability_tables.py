"""Create availability_patterns and availability_overrides tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-05 00:10:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

BOTH_TYPES = sa.text("ARRAY['virtual', 'in-person']::text[]")


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "availability_patterns",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column(
            "slot_duration_minutes", sa.Integer(), server_default=sa.text("30"), nullable=False
        ),
        sa.Column(
            "allowed_types", postgresql.ARRAY(sa.Text()), server_default=BOTH_TYPES, nullable=False
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="availability_patterns_day_check"),
        sa.CheckConstraint("start_time < end_time", name="availability_patterns_range_check"),
        sa.CheckConstraint(
            "slot_duration_minutes > 0", name="availability_patterns_duration_check"
        ),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "doctor_id",
            "day_of_week",
            "start_time",
            name="availability_patterns_doctor_day_start_key",
        ),
    )

    op.create_table(
        "availability_overrides",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("override_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "allowed_types", postgresql.ARRAY(sa.Text()), server_default=BOTH_TYPES, nullable=False
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("start_time < end_time", name="availability_overrides_range_check"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "doctor_id",
            "override_date",
            "start_time",
            name="availability_overrides_doctor_date_start_key",
        ),
    )
    op.create_index(
        "ix_availability_overrides_doctor_date",
        "availability_overrides",
        ["doctor_id", "override_date"],
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_availability_overrides_doctor_date", table_name="availability_overrides")
    op.drop_table("availability_overrides")
    op.drop_table("availability_patterns")
