"""Seed a development database with one doctor, two patients and a weekly pattern.

Prints a bearer token for each seeded user so the API can be exercised
straight away. Running it twice is safe: existing rows are reused.
"""

import asyncio
from datetime import time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from app.core.security import create_access_token
from app.database import AsyncSessionLocal, engine
from app.models import availability_patterns, doctors, patients, users

DOCTOR_EMAIL = "doctor1@careslot.dev"
PATIENT_EMAILS = ("patient1@careslot.dev", "patient2@careslot.dev")

# Monday to Friday, 09:00-12:00 in 30 minute slots
WEEKDAYS = (1, 2, 3, 4, 5)


async def upsert_user(session, email: str, full_name: str, role: str) -> UUID:
    """Insert a user unless the email is taken, and return its id."""
    await session.execute(
        insert(users)
        .values(email=email, full_name=full_name, role=role)
        .on_conflict_do_nothing(index_elements=["email"])
    )
    result = await session.execute(select(users.c.id).where(users.c.email == email))
    return result.scalar_one()


async def seed() -> None:
    """Create the seed rows in one transaction."""
    async with AsyncSessionLocal() as session, session.begin():
        doctor_user_id = await upsert_user(session, DOCTOR_EMAIL, "Doctor 1", "doctor")
        await session.execute(
            insert(doctors)
            .values(
                user_id=doctor_user_id,
                full_name="Doctor 1",
                specialty="General Medicine",
                verification_status="approved",
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        doctor_id = (
            await session.execute(select(doctors.c.id).where(doctors.c.user_id == doctor_user_id))
        ).scalar_one()

        await session.execute(
            insert(availability_patterns)
            .values(
                [
                    {
                        "doctor_id": doctor_id,
                        "day_of_week": day,
                        "start_time": time(9, 0),
                        "end_time": time(12, 0),
                        "slot_duration_minutes": 30,
                    }
                    for day in WEEKDAYS
                ]
            )
            .on_conflict_do_nothing(constraint="availability_patterns_doctor_day_start_key")
        )

        tokens = {DOCTOR_EMAIL: create_access_token({"sub": str(doctor_user_id)})}
        for index, email in enumerate(PATIENT_EMAILS, start=1):
            user_id = await upsert_user(session, email, f"Patient {index}", "patient")
            await session.execute(
                insert(patients)
                .values(user_id=user_id, full_name=f"Patient {index}")
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            tokens[email] = create_access_token({"sub": str(user_id)})

    await engine.dispose()

    print(f"✓ Seeded doctor {doctor_id} with a Mon-Fri 09:00-12:00 pattern")
    for email, token in tokens.items():
        print(f"   {email}: {token}")


if __name__ == "__main__":
    asyncio.run(seed())
