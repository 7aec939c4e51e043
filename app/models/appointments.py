"""Appointments table model using SQLAlchemy Core."""

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
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID

from app.models.base import metadata

# Statuses that keep a slot occupied for overlap purposes
OCCUPYING_STATUSES = ("scheduled", "confirmed", "completed", "no-show")

appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Ownership / references
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
    Column(
        "override_id",
        Integer,
        ForeignKey("availability_overrides.id", ondelete="SET NULL"),
        nullable=True,
    ),
    # Slot
    Column("appointment_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("appointment_type", Text, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default=text("'scheduled'")),
    # Details
    Column("reason", Text, nullable=False),
    Column("notes", Text, nullable=True),
    Column("accessibility_needs", ARRAY(Text), nullable=False, server_default=text("'{}'")),
    # Cancellation metadata
    Column("cancelled_at", TIMESTAMP(timezone=True), nullable=True),
    Column("cancelled_by", UUID(as_uuid=True), nullable=True),
    Column("cancellation_reason", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no-show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "appointment_type IN ('virtual', 'in-person')",
        name="appointments_type_check",
    ),
    CheckConstraint("start_time < end_time", name="appointments_range_check"),
    Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
    Index("ix_appointments_patient_id", "patient_id"),
)
