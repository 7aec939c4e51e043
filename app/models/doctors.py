"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    Column("full_name", Text, nullable=False),
    Column("specialty", String(100)),
    # Consultation modes the doctor accepts at all
    Column("virtual_available", Boolean, nullable=False, server_default=text("true")),
    Column("in_person_available", Boolean, nullable=False, server_default=text("true")),
    # Verification (managed by the admin workflow)
    Column(
        "verification_status",
        Text,
        nullable=False,
        server_default=text("'pending'"),
        index=True,
    ),
    Column("verified_at", DateTime(timezone=True)),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "verification_status IN ('pending', 'approved', 'denied')",
        name="doctors_verification_status_check",
    ),
)
