"""Booking service: appointment creation and status transitions."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidStateException, NotFoundException
from app.core.scope import DoctorScope, PatientScope, Scope
from app.core.timeutils import duration_minutes
from app.database import atomic
from app.models.appointments import appointments
from app.schemas.appointments import (
    CANCELLED_BY_PATIENT_REASON_PREFIX,
    DECLINED_BY_DOCTOR_REASON_PREFIX,
    AppointmentActionResponse,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentDecision,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    DecisionAction,
)
from app.services.conflict_guard import ConflictGuard
from app.services.notification_service import MessageNotifier, Notice, Notifier
from app.services.slot_resolver import SlotResolver
from app.services.waitlist_engine import FreedSlot, WaitlistFulfillmentEngine

logger = structlog.get_logger(__name__)

ACTIVE_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)

# action -> (allowed current statuses, resulting status, outcome message)
DECISION_TRANSITIONS = {
    DecisionAction.CONFIRM: (
        (AppointmentStatus.SCHEDULED.value,),
        AppointmentStatus.CONFIRMED.value,
        "Booking confirmed successfully.",
    ),
    DecisionAction.DECLINE: (
        (AppointmentStatus.SCHEDULED.value,),
        AppointmentStatus.CANCELLED.value,
        "Booking declined successfully.",
    ),
    DecisionAction.COMPLETE: (
        (AppointmentStatus.CONFIRMED.value,),
        AppointmentStatus.COMPLETED.value,
        "Appointment marked as completed.",
    ),
    DecisionAction.NO_SHOW: (
        (AppointmentStatus.CONFIRMED.value,),
        AppointmentStatus.NO_SHOW.value,
        "Appointment marked as no-show.",
    ),
}


def _with_detail(prefix: str, detail: str | None) -> str:
    detail = (detail or "").strip()
    return f"{prefix}: {detail}" if detail else prefix


class BookingService:
    """Service for booking, moving and resolving appointments."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier | None = None,
        auto_fulfill: bool | None = None,
    ):
        """
        Initialize service with database session.

        Args:
            db: Database session
            notifier: Receives notices after each commit (messages table by default)
            auto_fulfill: Auto-book freed slots from the waitlist instead of
                broadcasting; defaults to ``WAITLIST_AUTO_FULFILL``
        """
        self.db = db
        self.resolver = SlotResolver(db)
        self.guard = ConflictGuard(db, self.resolver)
        self.engine = WaitlistFulfillmentEngine(db, self.guard)
        self.notifier = notifier or MessageNotifier(db)
        self.auto_fulfill = (
            settings.waitlist_auto_fulfill if auto_fulfill is None else auto_fulfill
        )

    async def _find_owned(
        self,
        scope: Scope,
        appointment_id: int,
        lock: bool = False,
    ) -> dict:
        stmt = select(appointments).where(
            appointments.c.id == appointment_id,
            scope.owns(appointments),
        )
        if lock:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found.")
        return dict(row)

    async def _release(self, freed: FreedSlot, released_by: UUID) -> list[Notice]:
        """Hand a freed tuple to the configured waitlist primitive."""
        if self.auto_fulfill:
            outcome = await self.engine.fulfill_waitlist_for_cancelled_appointment(
                freed, cancelled_by_user_id=released_by
            )
        else:
            outcome = await self.engine.notify_patients_for_cancellation(freed)
        return outcome.notices

    async def create_booking(
        self,
        scope: PatientScope,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book a resolved slot for the calling patient.

        Args:
            scope: Calling patient
            data: Requested doctor and slot

        Returns:
            Created appointment in ``scheduled`` status

        Raises:
            NotFoundException: Doctor missing or not approved
            BadRequestException: Past date or disabled type
            ConflictException: Slot not offered or already taken
        """
        async with atomic(self.db):
            doctor = await self.guard.lock_doctor(data.doctor_id)
            override_id = await self.guard.ensure_slot_is_bookable(
                doctor,
                data.appointment_date,
                data.start_time,
                data.end_time,
                data.appointment_type.value,
            )
            await self.guard.ensure_no_overlap(
                doctor["id"],
                data.appointment_date,
                data.start_time,
                data.end_time,
            )

            stmt = (
                insert(appointments)
                .values(
                    patient_id=scope.patient_id,
                    doctor_id=doctor["id"],
                    override_id=override_id,
                    appointment_date=data.appointment_date,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    appointment_type=data.appointment_type.value,
                    duration_minutes=duration_minutes(data.start_time, data.end_time),
                    status=AppointmentStatus.SCHEDULED.value,
                    reason=data.reason,
                    notes=data.notes,
                    accessibility_needs=data.accessibility_needs,
                )
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            row = dict(result.mappings().one())

        logger.info(
            "appointment_booked",
            appointment_id=row["id"],
            doctor_id=str(row["doctor_id"]),
            patient_id=str(row["patient_id"]),
            date=row["appointment_date"].isoformat(),
            start_time=row["start_time"].isoformat(),
        )

        return AppointmentResponse.model_validate(row)

    async def cancel(
        self,
        scope: PatientScope,
        appointment_id: int,
        data: AppointmentCancel,
    ) -> AppointmentActionResponse:
        """
        Cancel one of the patient's pending or confirmed appointments.

        The freed slot goes to the waitlist in the same transaction.

        Raises:
            NotFoundException: Not the patient's appointment
            InvalidStateException: Appointment is already terminal
        """
        current = await self._find_owned(scope, appointment_id)

        async with atomic(self.db):
            await self.guard.lock_doctor(current["doctor_id"], require_approved=False)
            appointment = await self._find_owned(scope, appointment_id, lock=True)

            if appointment["status"] not in ACTIVE_STATUSES:
                raise InvalidStateException(
                    "Only pending or confirmed appointments can be cancelled."
                )

            now = datetime.now(UTC)
            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(
                    status=AppointmentStatus.CANCELLED.value,
                    cancelled_at=now,
                    cancelled_by=scope.user_id,
                    cancellation_reason=_with_detail(
                        CANCELLED_BY_PATIENT_REASON_PREFIX, data.reason
                    ),
                    updated_at=now,
                )
                .returning(appointments)
            )
            row = dict(result.mappings().one())

            notices = await self._release(FreedSlot.from_appointment(appointment), scope.user_id)

        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            cancelled_by=str(scope.user_id),
            previous_status=appointment["status"],
        )
        await self.notifier.deliver(notices)

        return AppointmentActionResponse(
            message="Appointment cancelled successfully.",
            appointment=AppointmentResponse.model_validate(row),
        )

    async def reschedule(
        self,
        scope: PatientScope,
        appointment_id: int,
        data: AppointmentReschedule,
    ) -> AppointmentActionResponse:
        """
        Move an appointment to another slot of the same doctor.

        The appointment returns to ``scheduled`` and awaits reconfirmation.
        Patients waiting on the vacated slot are told it opened.

        Raises:
            NotFoundException: Not the patient's appointment, or doctor not approved
            InvalidStateException: Appointment is already terminal
            BadRequestException: Past date or disabled type
            ConflictException: New slot not offered or already taken
        """
        current = await self._find_owned(scope, appointment_id)

        async with atomic(self.db):
            doctor = await self.guard.lock_doctor(current["doctor_id"])
            appointment = await self._find_owned(scope, appointment_id, lock=True)

            if appointment["status"] not in ACTIVE_STATUSES:
                raise InvalidStateException(
                    "Only pending or confirmed appointments can be rescheduled."
                )

            override_id = await self.guard.ensure_slot_is_bookable(
                doctor,
                data.appointment_date,
                data.start_time,
                data.end_time,
                data.appointment_type.value,
            )
            await self.guard.ensure_no_overlap(
                doctor["id"],
                data.appointment_date,
                data.start_time,
                data.end_time,
                exclude_appointment_id=appointment_id,
            )

            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(
                    override_id=override_id,
                    appointment_date=data.appointment_date,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    appointment_type=data.appointment_type.value,
                    duration_minutes=duration_minutes(data.start_time, data.end_time),
                    status=AppointmentStatus.SCHEDULED.value,
                    cancelled_at=None,
                    cancelled_by=None,
                    cancellation_reason=None,
                    updated_at=datetime.now(UTC),
                )
                .returning(appointments)
            )
            row = dict(result.mappings().one())

            vacated = FreedSlot.from_appointment(appointment)
            notices: list[Notice] = []
            if vacated != FreedSlot.from_appointment(row):
                broadcast = await self.engine.notify_patients_for_cancellation(vacated)
                notices = broadcast.notices

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            from_date=appointment["appointment_date"].isoformat(),
            from_start_time=appointment["start_time"].isoformat(),
            to_date=row["appointment_date"].isoformat(),
            to_start_time=row["start_time"].isoformat(),
        )
        await self.notifier.deliver(notices)

        return AppointmentActionResponse(
            message="Appointment rescheduled. Waiting for doctor reconfirmation.",
            appointment=AppointmentResponse.model_validate(row),
        )

    async def decide(
        self,
        scope: DoctorScope,
        appointment_id: int,
        data: AppointmentDecision,
    ) -> AppointmentActionResponse:
        """
        Apply a doctor's confirm, decline, complete or no-show action.

        Declining frees the slot for the waitlist in the same transaction.

        Raises:
            NotFoundException: Not the doctor's appointment
            InvalidStateException: Action not allowed from the current status
        """
        allowed, new_status, message = DECISION_TRANSITIONS[data.action]

        async with atomic(self.db):
            await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
            appointment = await self._find_owned(scope, appointment_id, lock=True)

            if appointment["status"] not in allowed:
                if data.action in (DecisionAction.CONFIRM, DecisionAction.DECLINE):
                    raise InvalidStateException(
                        "Only pending bookings can be confirmed or declined."
                    )
                raise InvalidStateException(
                    "Only confirmed appointments can be marked as completed or no-show."
                )

            now = datetime.now(UTC)
            values: dict = {"status": new_status, "updated_at": now}
            if data.action == DecisionAction.DECLINE:
                values.update(
                    cancelled_at=now,
                    cancelled_by=scope.user_id,
                    cancellation_reason=_with_detail(
                        DECLINED_BY_DOCTOR_REASON_PREFIX, data.reason
                    ),
                )

            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**values)
                .returning(appointments)
            )
            row = dict(result.mappings().one())

            notices: list[Notice] = []
            if data.action == DecisionAction.DECLINE:
                notices = await self._release(
                    FreedSlot.from_appointment(appointment), scope.user_id
                )

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            action=data.action.value,
            previous_status=appointment["status"],
            status=new_status,
        )
        await self.notifier.deliver(notices)

        return AppointmentActionResponse(
            message=message,
            appointment=AppointmentResponse.model_validate(row),
        )

    async def list_my(self, scope: Scope) -> AppointmentListResponse:
        """
        List the caller's appointments, earliest first.

        Args:
            scope: Calling patient or doctor

        Returns:
            All appointments owned by the caller
        """
        stmt = (
            select(appointments)
            .where(scope.owns(appointments))
            .order_by(
                appointments.c.appointment_date.asc(),
                appointments.c.start_time.asc(),
                appointments.c.id.asc(),
            )
        )
        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row)) for row in result.mappings()]
        return AppointmentListResponse(total=len(items), items=items)

    async def get(self, scope: Scope, appointment_id: int) -> AppointmentResponse:
        """
        Get one of the caller's appointments.

        Raises:
            NotFoundException: If the appointment is not the caller's
        """
        row = await self._find_owned(scope, appointment_id)
        return AppointmentResponse.model_validate(row)
