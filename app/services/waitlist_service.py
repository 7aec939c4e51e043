"""Waitlist service: patients queueing for occupied slots."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
)
from app.core.scope import PatientScope
from app.core.timeutils import today_utc
from app.database import atomic
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.waitlist import waitlist_entries
from app.schemas.waitlist import (
    WaitlistEntryResponse,
    WaitlistJoin,
    WaitlistListResponse,
    WaitlistStatus,
)
from app.services.conflict_guard import ConflictGuard

logger = structlog.get_logger(__name__)

# A slot can only be queued for while one of these holds it
HELD_STATUSES = ("scheduled", "confirmed")


class WaitlistService:
    """Service for a patient's waitlist entries."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.guard = ConflictGuard(db)

    async def join(self, scope: PatientScope, data: WaitlistJoin) -> WaitlistEntryResponse:
        """
        Queue the patient for an occupied slot.

        An active entry for the same tuple only has its preference updated.
        A finished entry (notified, booked, removed) is replaced by a fresh
        one, which takes a new place at the back of the queue.

        Args:
            scope: Calling patient
            data: Desired slot tuple and notification preference

        Returns:
            The active waitlist entry

        Raises:
            BadRequestException: Desired date is in the past
            NotFoundException: Doctor missing or not approved
            ConflictException: Slot is free, or the patient already holds it
        """
        if data.desired_date < today_utc():
            raise BadRequestException("desired_date must be today or in the future.")

        tuple_conditions = [
            waitlist_entries.c.patient_id == scope.patient_id,
            waitlist_entries.c.doctor_id == data.doctor_id,
            waitlist_entries.c.desired_date == data.desired_date,
            waitlist_entries.c.desired_start_time == data.desired_start_time,
            waitlist_entries.c.desired_end_time == data.desired_end_time,
            waitlist_entries.c.appointment_type == data.appointment_type.value,
        ]

        try:
            async with atomic(self.db):
                # Serializes with cancel and decline, which free slots under the same lock
                doctor = await self.guard.lock_doctor(data.doctor_id)

                held_result = await self.db.execute(
                    select(appointments.c.id, appointments.c.patient_id).where(
                        appointments.c.doctor_id == data.doctor_id,
                        appointments.c.appointment_date == data.desired_date,
                        appointments.c.start_time == data.desired_start_time,
                        appointments.c.end_time == data.desired_end_time,
                        appointments.c.appointment_type == data.appointment_type.value,
                        appointments.c.status.in_(HELD_STATUSES),
                    )
                )
                holders = held_result.mappings().all()
                if not holders:
                    raise ConflictException(
                        "This time slot is currently available. "
                        "Please book it directly instead of joining waitlist."
                    )
                if any(h["patient_id"] == scope.patient_id for h in holders):
                    raise ConflictException("You already hold this appointment slot.")

                existing_result = await self.db.execute(
                    select(waitlist_entries).where(*tuple_conditions).with_for_update()
                )
                existing = existing_result.mappings().first()

                if existing and existing["status"] == WaitlistStatus.ACTIVE.value:
                    result = await self.db.execute(
                        update(waitlist_entries)
                        .where(waitlist_entries.c.id == existing["id"])
                        .values(
                            notification_preference=data.notification_preference.value,
                            updated_at=datetime.now(UTC),
                        )
                        .returning(waitlist_entries)
                    )
                else:
                    if existing:
                        await self.db.execute(
                            delete(waitlist_entries).where(waitlist_entries.c.id == existing["id"])
                        )
                    result = await self.db.execute(
                        insert(waitlist_entries)
                        .values(
                            patient_id=scope.patient_id,
                            doctor_id=data.doctor_id,
                            desired_date=data.desired_date,
                            desired_start_time=data.desired_start_time,
                            desired_end_time=data.desired_end_time,
                            appointment_type=data.appointment_type.value,
                            notification_preference=data.notification_preference.value,
                        )
                        .returning(waitlist_entries)
                    )
                row = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException("You are already on the waitlist for this slot.") from e

        logger.info(
            "waitlist_joined",
            waitlist_entry_id=row["id"],
            patient_id=str(scope.patient_id),
            doctor_id=str(data.doctor_id),
            date=data.desired_date.isoformat(),
            start_time=data.desired_start_time.isoformat(),
        )

        return WaitlistEntryResponse.model_validate({**row, "doctor_name": doctor["full_name"]})

    async def list_entries(self, scope: PatientScope) -> WaitlistListResponse:
        """
        List the patient's entries that were not removed.

        Returns:
            Entries ordered by desired date, newest first within a date
        """
        stmt = (
            select(waitlist_entries, doctors.c.full_name.label("doctor_name"))
            .join(doctors, doctors.c.id == waitlist_entries.c.doctor_id)
            .where(
                scope.owns(waitlist_entries),
                waitlist_entries.c.status != WaitlistStatus.REMOVED.value,
            )
            .order_by(
                waitlist_entries.c.desired_date.asc(),
                waitlist_entries.c.created_at.desc(),
            )
        )
        result = await self.db.execute(stmt)
        entries = [WaitlistEntryResponse.model_validate(dict(row)) for row in result.mappings()]
        return WaitlistListResponse(waitlist_entries=entries)

    async def remove(self, scope: PatientScope, entry_id: int) -> None:
        """
        Leave the waitlist.

        Raises:
            NotFoundException: Entry is not the patient's
            InvalidStateException: Entry is no longer active
        """
        async with atomic(self.db):
            result = await self.db.execute(
                select(waitlist_entries)
                .where(waitlist_entries.c.id == entry_id, scope.owns(waitlist_entries))
                .with_for_update()
            )
            entry = result.mappings().first()

            if not entry:
                raise NotFoundException("Waitlist entry not found.")

            if entry["status"] != WaitlistStatus.ACTIVE.value:
                raise InvalidStateException("Only active waitlist entries can be removed.")

            await self.db.execute(
                update(waitlist_entries)
                .where(waitlist_entries.c.id == entry_id)
                .values(status=WaitlistStatus.REMOVED.value, updated_at=datetime.now(UTC))
            )

        logger.info("waitlist_entry_removed", waitlist_entry_id=entry_id)
