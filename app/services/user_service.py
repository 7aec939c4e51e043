"""Identity lookups for users and their role profiles.

The identity rows are owned by the identity service; this module only reads
them to turn an authenticated user id into a role scope.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.doctors import doctors
from app.models.patients import patients
from app.models.users import users


class UserService:
    """Service for user and profile lookups."""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        result = await db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    @staticmethod
    async def get_patient_by_user_id(db: AsyncSession, user_id: UUID) -> dict | None:
        """Get the patient profile linked to a user."""
        result = await db.execute(select(patients).where(patients.c.user_id == user_id))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    @staticmethod
    async def get_doctor_by_user_id(db: AsyncSession, user_id: UUID) -> dict | None:
        """Get the doctor profile linked to a user."""
        result = await db.execute(select(doctors).where(doctors.c.user_id == user_id))
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

