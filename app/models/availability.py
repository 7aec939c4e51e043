"""Availability tables: recurring weekly patterns and date-specific overrides."""

from sqlalchemy import (
    Boolean,
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
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID

from app.models.base import metadata

BOTH_TYPES_DEFAULT = text("ARRAY['virtual', 'in-person']::text[]")

# Recurring weekly template
availability_patterns = Table(
    "availability_patterns",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # 0 = Sunday ... 6 = Saturday
    Column("day_of_week", Integer, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("slot_duration_minutes", Integer, nullable=False, server_default=text("30")),
    Column("allowed_types", ARRAY(Text), nullable=False, server_default=BOTH_TYPES_DEFAULT),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    UniqueConstraint(
        "doctor_id",
        "day_of_week",
        "start_time",
        name="availability_patterns_doctor_day_start_key",
    ),
    CheckConstraint("day_of_week BETWEEN 0 AND 6", name="availability_patterns_day_check"),
    CheckConstraint("start_time < end_time", name="availability_patterns_range_check"),
    CheckConstraint("slot_duration_minutes > 0", name="availability_patterns_duration_check"),
)

# Date-specific exceptions to the weekly template
availability_overrides = Table(
    "availability_overrides",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("override_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # false removes generated slots, true adds an extra bookable slot
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("allowed_types", ARRAY(Text), nullable=False, server_default=BOTH_TYPES_DEFAULT),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    UniqueConstraint(
        "doctor_id",
        "override_date",
        "start_time",
        name="availability_overrides_doctor_date_start_key",
    ),
    CheckConstraint("start_time < end_time", name="availability_overrides_range_check"),
    Index("ix_availability_overrides_doctor_date", "doctor_id", "override_date"),
)
