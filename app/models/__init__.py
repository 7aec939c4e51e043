"""Database models."""

from app.models.appointments import appointments
from app.models.availability import availability_overrides, availability_patterns
from app.models.base import metadata
from app.models.doctors import doctors
from app.models.messages import messages
from app.models.patients import patients
from app.models.users import users
from app.models.waitlist import waitlist_entries

__all__ = [
    "appointments",
    "availability_overrides",
    "availability_patterns",
    "doctors",
    "messages",
    "metadata",
    "patients",
    "users",
    "waitlist_entries",
]
