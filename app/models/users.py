"""User model definition using SQLAlchemy Core.

Rows are owned by the identity service; this service only reads them to
resolve a bearer token into a role.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import metadata

users = Table(
    "users",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("full_name", Text),
    Column("role", Text, nullable=False, server_default=text("'patient'")),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="users_role_check"),
)
