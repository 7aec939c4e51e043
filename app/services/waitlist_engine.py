"""Waitlist fulfillment for freed appointment slots.

Two primitives; the caller decides which one a freed slot triggers:

- ``fulfill_waitlist_for_cancelled_appointment`` books the slot for at most
  one waitlisted patient (oldest first, skip-locked).
- ``notify_patients_for_cancellation`` tells every matching waitlisted
  patient the slot opened and books nothing.

Both run inside the caller's transaction and return the notices to deliver
once it commits.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.timeutils import duration_minutes
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.waitlist import waitlist_entries
from app.services.conflict_guard import ConflictGuard
from app.services.notification_service import (
    WAITLIST_AUTO_BOOKED_CONTENT,
    WAITLIST_SLOT_OPENED_CONTENT,
    Notice,
)

logger = structlog.get_logger(__name__)

WAITLIST_AUTO_BOOK_REASON = "Auto-booked from waitlist after slot cancellation."


@dataclass(frozen=True)
class FreedSlot:
    """The (doctor, date, start, end, type) tuple released by an appointment."""

    doctor_id: UUID
    appointment_date: date
    start_time: time
    end_time: time
    appointment_type: str
    appointment_id: int | None = None
    override_id: int | None = None

    @classmethod
    def from_appointment(cls, row: dict) -> "FreedSlot":
        """Build the tuple from an appointment row."""
        return cls(
            doctor_id=row["doctor_id"],
            appointment_date=row["appointment_date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            appointment_type=row["appointment_type"],
            appointment_id=row["id"],
            override_id=row.get("override_id"),
        )


@dataclass
class FulfillmentResult:
    """Outcome of an auto-booking attempt."""

    assigned: bool
    waitlist_entry_id: int | None = None
    appointment_id: int | None = None
    patient_id: UUID | None = None
    notices: list[Notice] = field(default_factory=list)


@dataclass
class BroadcastResult:
    """Outcome of a slot-opened broadcast."""

    notified_count: int = 0
    notices: list[Notice] = field(default_factory=list)


class WaitlistFulfillmentEngine:
    """Promotes or notifies waitlisted patients when a slot frees up."""

    def __init__(self, db: AsyncSession, guard: ConflictGuard | None = None):
        """Initialize engine with database session."""
        self.db = db
        self.guard = guard or ConflictGuard(db)

    @staticmethod
    def _matching(slot: FreedSlot) -> list:
        return [
            waitlist_entries.c.doctor_id == slot.doctor_id,
            waitlist_entries.c.desired_date == slot.appointment_date,
            waitlist_entries.c.desired_start_time == slot.start_time,
            waitlist_entries.c.desired_end_time == slot.end_time,
            waitlist_entries.c.appointment_type == slot.appointment_type,
            waitlist_entries.c.status == "active",
        ]

    async def _user_ids(self, doctor_id: UUID, patient_ids: set[UUID]) -> tuple[UUID | None, dict]:
        doctor_user = await self.db.execute(
            select(doctors.c.user_id).where(doctors.c.id == doctor_id)
        )
        patient_users = await self.db.execute(
            select(patients.c.id, patients.c.user_id).where(patients.c.id.in_(list(patient_ids)))
        )
        return doctor_user.scalar(), {row.id: row.user_id for row in patient_users}

    async def fulfill_waitlist_for_cancelled_appointment(
        self,
        slot: FreedSlot,
        cancelled_by_user_id: UUID | None = None,
    ) -> FulfillmentResult:
        """
        Book a freed slot for the oldest active matching waitlist entry.

        The entry is claimed with ``FOR UPDATE SKIP LOCKED`` so a concurrent
        fulfillment never claims the same entry, and the slot is re-checked
        under lock so a fresh direct booking wins over the waitlist.

        Args:
            slot: Tuple released by the cancelled appointment
            cancelled_by_user_id: Fallback sender for the notice

        Returns:
            Whether an appointment was created, and the notice to deliver
        """
        stmt = (
            select(waitlist_entries)
            .where(*self._matching(slot))
            .order_by(waitlist_entries.c.created_at.asc(), waitlist_entries.c.id.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        result = await self.db.execute(stmt)
        entry = result.mappings().first()

        if not entry:
            return FulfillmentResult(assigned=False)

        occupied = await self.guard.find_overlapping(
            slot.doctor_id,
            slot.appointment_date,
            slot.start_time,
            slot.end_time,
        )
        if occupied:
            logger.info(
                "waitlist_fulfillment_skipped_slot_occupied",
                waitlist_entry_id=entry["id"],
                occupying_appointment_id=occupied[0]["id"],
            )
            return FulfillmentResult(assigned=False)

        now = datetime.now(UTC)
        created = await self.db.execute(
            insert(appointments)
            .values(
                patient_id=entry["patient_id"],
                doctor_id=slot.doctor_id,
                override_id=slot.override_id,
                appointment_date=slot.appointment_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                appointment_type=slot.appointment_type,
                status="scheduled",
                duration_minutes=max(1, duration_minutes(slot.start_time, slot.end_time)),
                reason=WAITLIST_AUTO_BOOK_REASON,
            )
            .returning(appointments.c.id)
        )
        appointment_id = created.scalar_one()

        await self.db.execute(
            update(waitlist_entries)
            .where(waitlist_entries.c.id == entry["id"])
            .values(status="booked", last_notified_at=now, updated_at=now)
        )

        doctor_user_id, patient_user_ids = await self._user_ids(
            slot.doctor_id, {entry["patient_id"]}
        )
        sender_id = doctor_user_id or cancelled_by_user_id
        receiver_id = patient_user_ids.get(entry["patient_id"])

        notices = []
        if sender_id and receiver_id:
            notices.append(
                Notice(
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    appointment_id=appointment_id,
                    content=WAITLIST_AUTO_BOOKED_CONTENT,
                )
            )

        logger.info(
            "waitlist_entry_promoted",
            waitlist_entry_id=entry["id"],
            appointment_id=appointment_id,
            patient_id=str(entry["patient_id"]),
            freed_appointment_id=slot.appointment_id,
        )

        return FulfillmentResult(
            assigned=True,
            waitlist_entry_id=entry["id"],
            appointment_id=appointment_id,
            patient_id=entry["patient_id"],
            notices=notices,
        )

    async def notify_patients_for_cancellation(self, slot: FreedSlot) -> BroadcastResult:
        """
        Tell every active matching waitlist entry that the slot opened.

        No appointment is created; each entry moves to ``notified``.

        Args:
            slot: Tuple that became free

        Returns:
            Number of entries notified and the notices to deliver
        """
        stmt = (
            select(waitlist_entries)
            .where(*self._matching(slot))
            .order_by(waitlist_entries.c.created_at.asc(), waitlist_entries.c.id.asc())
            .with_for_update(skip_locked=True)
        )
        result = await self.db.execute(stmt)
        entries = [dict(row) for row in result.mappings().all()]

        if not entries:
            return BroadcastResult()

        now = datetime.now(UTC)
        await self.db.execute(
            update(waitlist_entries)
            .where(waitlist_entries.c.id.in_([e["id"] for e in entries]))
            .values(status="notified", last_notified_at=now, updated_at=now)
        )

        doctor_user_id, patient_user_ids = await self._user_ids(
            slot.doctor_id, {e["patient_id"] for e in entries}
        )

        notices = []
        for entry in entries:
            receiver_id = patient_user_ids.get(entry["patient_id"])
            if not doctor_user_id or not receiver_id:
                continue
            notices.append(
                Notice(
                    sender_id=doctor_user_id,
                    receiver_id=receiver_id,
                    appointment_id=slot.appointment_id,
                    content=WAITLIST_SLOT_OPENED_CONTENT,
                )
            )

        logger.info(
            "waitlist_slot_opened_broadcast",
            doctor_id=str(slot.doctor_id),
            date=slot.appointment_date.isoformat(),
            notified_count=len(entries),
        )

        return BroadcastResult(notified_count=len(entries), notices=notices)
