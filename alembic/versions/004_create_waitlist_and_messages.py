"""Create waitlist_entries and messages tables.

Revision ID: 004
Revises: 003
Create Date: 2026-10-05 00:30:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: str | None = "003"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("desired_date", sa.Date(), nullable=False),
        sa.Column("desired_start_time", sa.Time(), nullable=False),
        sa.Column("desired_end_time", sa.Time(), nullable=False),
        sa.Column("appointment_type", sa.Text(), nullable=False),
        sa.Column(
            "notification_preference",
            sa.Text(),
            server_default=sa.text("'in-app'"),
            nullable=False,
        ),
        sa.Column("status", sa.Text(), server_default=sa.text("'active'"), nullable=False),
        sa.Column("last_notified_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
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
        sa.CheckConstraint(
            "status IN ('active', 'notified', 'booked', 'removed')",
            name="waitlist_entries_status_check",
        ),
        sa.CheckConstraint(
            "appointment_type IN ('virtual', 'in-person')",
            name="waitlist_entries_type_check",
        ),
        sa.CheckConstraint(
            "notification_preference IN ('email', 'sms', 'both', 'in-app')",
            name="waitlist_entries_preference_check",
        ),
        sa.CheckConstraint(
            "desired_start_time < desired_end_time",
            name="waitlist_entries_range_check",
        ),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "patient_id",
            "doctor_id",
            "desired_date",
            "desired_start_time",
            "desired_end_time",
            "appointment_type",
            name="waitlist_entries_unique_patient_doctor_slot_type",
        ),
    )
    op.create_index(
        "ix_waitlist_entries_slot_status",
        "waitlist_entries",
        ["doctor_id", "desired_date", "desired_start_time", "appointment_type", "status"],
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("sender_id", postgresql.UUID(), nullable=False),
        sa.Column("receiver_id", postgresql.UUID(), nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("read_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["receiver_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_messages_receiver_id", table_name="messages")
    op.drop_index("ix_messages_sender_id", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_waitlist_entries_slot_status", table_name="waitlist_entries")
    op.drop_table("waitlist_entries")
