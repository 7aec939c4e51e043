"""Create identity tables - users, doctors and patients.

Revision ID: 001
Revises:
Create Date: 2026-10-05 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # gen_random_uuid()
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "users",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), server_default=sa.text("'patient'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="users_role_check"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "doctors",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("specialty", sa.String(length=100), nullable=True),
        sa.Column(
            "virtual_available", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column(
            "in_person_available", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column(
            "verification_status",
            sa.Text(),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("verified_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'approved', 'denied')",
            name="doctors_verification_status_check",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_doctors_user_id", "doctors", ["user_id"])
    op.create_index("ix_doctors_verification_status", "doctors", ["verification_status"])

    op.create_table(
        "patients",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_patients_user_id", "patients", ["user_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_patients_user_id", table_name="patients")
    op.drop_table("patients")
    op.drop_index("ix_doctors_verification_status", table_name="doctors")
    op.drop_index("ix_doctors_user_id", table_name="doctors")
    op.drop_table("doctors")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
