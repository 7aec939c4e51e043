"""Booking checks that must run inside the writing transaction.

Lock order for anything that touches a doctor's schedule is always
doctor row, then appointment rows, then waitlist rows.
"""

from datetime import date, time
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.core.timeutils import today_utc
from app.models.appointments import OCCUPYING_STATUSES, appointments
from app.models.doctors import doctors
from app.services.slot_resolver import SlotResolver

logger = structlog.get_logger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "This time slot is no longer available for the selected appointment type."
SLOT_TAKEN_MESSAGE = "This slot was just booked by another patient. Please choose another time."


class ConflictGuard:
    """Doctor locking, slot-availability and overlap checks."""

    def __init__(self, db: AsyncSession, resolver: SlotResolver | None = None):
        """Initialize guard with database session."""
        self.db = db
        self.resolver = resolver or SlotResolver(db)

    async def lock_doctor(self, doctor_id: UUID, require_approved: bool = True) -> dict:
        """
        Take the row lock on a doctor and return the row.

        Every transaction that books, moves or frees one of the doctor's slots
        passes through this lock first, which serializes them.

        Raises:
            NotFoundException: If the doctor does not exist or is not approved
        """
        stmt = select(doctors).where(doctors.c.id == doctor_id).with_for_update()
        result = await self.db.execute(stmt)
        doctor = result.mappings().first()

        if not doctor or (require_approved and doctor["verification_status"] != "approved"):
            raise NotFoundException("Doctor not found or not verified.")

        return dict(doctor)

    async def ensure_slot_is_bookable(
        self,
        doctor: dict,
        appointment_date: date,
        start_time: time,
        end_time: time,
        appointment_type: str,
    ) -> int | None:
        """
        Require an exact resolved slot that accepts the requested type.

        Args:
            doctor: Locked doctor row
            appointment_date: Requested date
            start_time: Requested start
            end_time: Requested end
            appointment_type: "virtual" or "in-person"

        Returns:
            The matching slot's override id, if it came from an override

        Raises:
            BadRequestException: Past date or a type the doctor does not offer
            ConflictException: No matching slot
        """
        if appointment_date < today_utc():
            raise BadRequestException("Cannot book appointments in the past.")

        if appointment_type == "virtual" and not doctor["virtual_available"]:
            raise BadRequestException("Doctor is not accepting virtual appointments.")

        if appointment_type == "in-person" and not doctor["in_person_available"]:
            raise BadRequestException("Doctor is not accepting in-person appointments.")

        slots = await self.resolver.resolve(doctor["id"], appointment_date)
        for slot in slots:
            if (
                slot.start_time == start_time
                and slot.end_time == end_time
                and slot.allows(appointment_type)
            ):
                return slot.override_id

        logger.info(
            "slot_not_bookable",
            doctor_id=str(doctor["id"]),
            date=appointment_date.isoformat(),
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            appointment_type=appointment_type,
        )
        raise ConflictException(SLOT_UNAVAILABLE_MESSAGE)

    async def find_overlapping(
        self,
        doctor_id: UUID,
        appointment_date: date,
        start_time: time,
        end_time: time,
        exclude_appointment_id: int | None = None,
    ) -> list[dict]:
        """
        Lock and return occupying appointments intersecting ``[start, end)``.

        Returns:
            Intersecting appointment rows (locked ``FOR UPDATE``)
        """
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == appointment_date,
            appointments.c.status.in_(OCCUPYING_STATUSES),
            appointments.c.start_time < end_time,
            appointments.c.end_time > start_time,
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = (
            select(appointments)
            .where(*conditions)
            .order_by(appointments.c.start_time, appointments.c.id)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def ensure_no_overlap(
        self,
        doctor_id: UUID,
        appointment_date: date,
        start_time: time,
        end_time: time,
        exclude_appointment_id: int | None = None,
    ) -> None:
        """
        Fail if any occupying appointment intersects the requested range.

        Raises:
            ConflictException: If the range is taken
        """
        overlapping = await self.find_overlapping(
            doctor_id,
            appointment_date,
            start_time,
            end_time,
            exclude_appointment_id,
        )
        if overlapping:
            logger.info(
                "booking_overlap_detected",
                doctor_id=str(doctor_id),
                date=appointment_date.isoformat(),
                conflicting_appointment_id=overlapping[0]["id"],
            )
            raise ConflictException(SLOT_TAKEN_MESSAGE)
