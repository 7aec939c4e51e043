"""Waitlist entries: patients queued for a currently occupied slot."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.base import metadata

waitlist_entries = Table(
    "waitlist_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Desired slot tuple
    Column("desired_date", Date, nullable=False),
    Column("desired_start_time", Time, nullable=False),
    Column("desired_end_time", Time, nullable=False),
    Column("appointment_type", Text, nullable=False),
    Column("notification_preference", Text, nullable=False, server_default=text("'in-app'")),
    Column("status", Text, nullable=False, server_default=text("'active'")),
    Column("last_notified_at", TIMESTAMP(timezone=True), nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    UniqueConstraint(
        "patient_id",
        "doctor_id",
        "desired_date",
        "desired_start_time",
        "desired_end_time",
        "appointment_type",
        name="waitlist_entries_unique_patient_doctor_slot_type",
    ),
    CheckConstraint(
        "status IN ('active', 'notified', 'booked', 'removed')",
        name="waitlist_entries_status_check",
    ),
    CheckConstraint(
        "appointment_type IN ('virtual', 'in-person')",
        name="waitlist_entries_type_check",
    ),
    CheckConstraint(
        "notification_preference IN ('email', 'sms', 'both', 'in-app')",
        name="waitlist_entries_preference_check",
    ),
    CheckConstraint(
        "desired_start_time < desired_end_time",
        name="waitlist_entries_range_check",
    ),
    Index(
        "ix_waitlist_entries_slot_status",
        "doctor_id",
        "desired_date",
        "desired_start_time",
        "appointment_type",
        "status",
    ),
)
