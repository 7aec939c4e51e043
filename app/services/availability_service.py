"""Availability service: a doctor's weekly patterns and date overrides."""

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from app.core.scope import DoctorScope
from app.core.timeutils import ranges_overlap
from app.database import atomic
from app.models.appointments import OCCUPYING_STATUSES, appointments
from app.models.availability import availability_overrides, availability_patterns
from app.models.doctors import doctors
from app.schemas.appointments import AppointmentType
from app.schemas.availability import (
    BookableSlot,
    BookableSlotsResponse,
    OverrideBatchCreate,
    OverrideListResponse,
    OverrideResponse,
    OverrideUpdate,
    PatternListResponse,
    PatternReplaceRequest,
    PatternResponse,
)
from app.services.conflict_guard import ConflictGuard
from app.services.slot_resolver import SlotResolver

logger = structlog.get_logger(__name__)

DUPLICATE_OVERRIDE_MESSAGE = "Slot already exists for this date and time"


def _type_values(types) -> list[str]:
    return [t.value for t in types]


class AvailabilityService:
    """Service for managing and resolving doctor availability."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.resolver = SlotResolver(db)
        self.guard = ConflictGuard(db, self.resolver)

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    async def list_patterns(self, scope: DoctorScope) -> PatternListResponse:
        """List the doctor's weekly patterns ordered by weekday and start."""
        stmt = (
            select(availability_patterns)
            .where(scope.owns(availability_patterns))
            .order_by(
                availability_patterns.c.day_of_week,
                availability_patterns.c.start_time,
            )
        )
        result = await self.db.execute(stmt)
        return PatternListResponse(
            patterns=[PatternResponse.model_validate(dict(row)) for row in result.mappings()]
        )

    async def replace_patterns(
        self,
        scope: DoctorScope,
        data: PatternReplaceRequest,
    ) -> PatternListResponse:
        """
        Replace the doctor's whole weekly template.

        Existing patterns are deleted and the new set inserted in one
        transaction, under the doctor lock.

        Args:
            scope: Calling doctor
            data: New complete set of patterns

        Returns:
            The stored patterns
        """
        async with atomic(self.db):
            await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
            await self.db.execute(
                delete(availability_patterns).where(scope.owns(availability_patterns))
            )

            if data.patterns:
                await self.db.execute(
                    insert(availability_patterns),
                    [
                        {
                            "doctor_id": scope.doctor_id,
                            "day_of_week": pattern.day_of_week,
                            "start_time": pattern.start_time,
                            "end_time": pattern.end_time,
                            "slot_duration_minutes": pattern.slot_duration_minutes,
                            "allowed_types": _type_values(pattern.allowed_types),
                            "is_active": pattern.is_active,
                        }
                        for pattern in data.patterns
                    ],
                )

        logger.info(
            "availability_patterns_replaced",
            doctor_id=str(scope.doctor_id),
            count=len(data.patterns),
        )
        return await self.list_patterns(scope)

    async def delete_pattern(self, scope: DoctorScope, pattern_id: int) -> None:
        """
        Delete one of the doctor's patterns.

        Raises:
            NotFoundException: If the pattern is not the doctor's
        """
        async with atomic(self.db):
            await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
            result = await self.db.execute(
                delete(availability_patterns)
                .where(
                    availability_patterns.c.id == pattern_id,
                    scope.owns(availability_patterns),
                )
                .returning(availability_patterns.c.id)
            )
            if result.scalar() is None:
                raise NotFoundException("Pattern not found")

        logger.info("availability_pattern_deleted", pattern_id=pattern_id)

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    async def list_overrides(
        self,
        scope: DoctorScope,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> OverrideListResponse:
        """
        List the doctor's overrides, optionally within a date range.

        Args:
            scope: Calling doctor
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound

        Returns:
            Overrides ordered by date and start time

        Raises:
            ValidationException: If the range is inverted
        """
        if start_date and end_date and start_date > end_date:
            raise ValidationException("start_date must not be after end_date")

        conditions = [scope.owns(availability_overrides)]
        if start_date:
            conditions.append(availability_overrides.c.override_date >= start_date)
        if end_date:
            conditions.append(availability_overrides.c.override_date <= end_date)

        stmt = (
            select(availability_overrides)
            .where(*conditions)
            .order_by(
                availability_overrides.c.override_date,
                availability_overrides.c.start_time,
            )
        )
        result = await self.db.execute(stmt)
        return OverrideListResponse(
            slots=[OverrideResponse.model_validate(dict(row)) for row in result.mappings()]
        )

    async def create_overrides(
        self,
        scope: DoctorScope,
        data: OverrideBatchCreate,
    ) -> OverrideListResponse:
        """
        Add a batch of date-specific overrides.

        Raises:
            ConflictException: An override already starts at the same date and time
        """
        try:
            async with atomic(self.db):
                await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
                result = await self.db.execute(
                    insert(availability_overrides).returning(availability_overrides),
                    [
                        {
                            "doctor_id": scope.doctor_id,
                            "override_date": slot.override_date,
                            "start_time": slot.start_time,
                            "end_time": slot.end_time,
                            "is_available": slot.is_available,
                            "allowed_types": _type_values(slot.allowed_types),
                        }
                        for slot in data.slots
                    ],
                )
                rows = [dict(row) for row in result.mappings().all()]
        except IntegrityError as e:
            raise ConflictException(DUPLICATE_OVERRIDE_MESSAGE) from e

        logger.info(
            "availability_overrides_created",
            doctor_id=str(scope.doctor_id),
            count=len(rows),
        )
        rows.sort(key=lambda r: (r["override_date"], r["start_time"]))
        return OverrideListResponse(slots=[OverrideResponse.model_validate(r) for r in rows])

    async def update_override(
        self,
        scope: DoctorScope,
        override_id: int,
        data: OverrideUpdate,
    ) -> OverrideResponse:
        """
        Partially update an override.

        Raises:
            NotFoundException: If the override is not the doctor's
            BadRequestException: If the merged range is empty
            ConflictException: If the new start collides with another override
        """
        # model_dump would render the times as strings
        changes = {
            name: getattr(data, name)
            for name in data.model_fields_set
            if getattr(data, name) is not None
        }
        if "allowed_types" in changes:
            changes["allowed_types"] = _type_values(data.allowed_types or [])

        try:
            async with atomic(self.db):
                await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
                result = await self.db.execute(
                    select(availability_overrides)
                    .where(
                        availability_overrides.c.id == override_id,
                        scope.owns(availability_overrides),
                    )
                    .with_for_update()
                )
                current = result.mappings().first()
                if not current:
                    raise NotFoundException("Slot not found")

                start = changes.get("start_time", current["start_time"])
                end = changes.get("end_time", current["end_time"])
                if start >= end:
                    raise BadRequestException("start_time must be earlier than end_time")

                if not changes:
                    row = dict(current)
                else:
                    updated = await self.db.execute(
                        update(availability_overrides)
                        .where(availability_overrides.c.id == override_id)
                        .values(**changes)
                        .returning(availability_overrides)
                    )
                    row = dict(updated.mappings().one())
        except IntegrityError as e:
            raise ConflictException(DUPLICATE_OVERRIDE_MESSAGE) from e

        logger.info("availability_override_updated", override_id=override_id)
        return OverrideResponse.model_validate(row)

    async def delete_override(self, scope: DoctorScope, override_id: int) -> None:
        """
        Delete an override. Appointments booked on it keep their slot.

        Raises:
            NotFoundException: If the override is not the doctor's
        """
        async with atomic(self.db):
            await self.guard.lock_doctor(scope.doctor_id, require_approved=False)
            result = await self.db.execute(
                delete(availability_overrides)
                .where(
                    availability_overrides.c.id == override_id,
                    scope.owns(availability_overrides),
                )
                .returning(availability_overrides.c.id)
            )
            if result.scalar() is None:
                raise NotFoundException("Slot not found")

        logger.info("availability_override_deleted", override_id=override_id)

    # ------------------------------------------------------------------
    # Public lookup
    # ------------------------------------------------------------------

    async def get_bookable_slots(
        self,
        doctor_id: UUID,
        target_date: date,
        appointment_type: AppointmentType | None = None,
    ) -> BookableSlotsResponse:
        """
        Resolved slots for a date minus those already taken.

        Args:
            doctor_id: Doctor to look up
            target_date: Date to resolve
            appointment_type: Keep only slots accepting this type

        Returns:
            Free slots ordered by start time

        Raises:
            NotFoundException: Doctor missing or not approved
        """
        doctor_result = await self.db.execute(
            select(doctors.c.verification_status).where(doctors.c.id == doctor_id)
        )
        verification_status = doctor_result.scalar()
        if verification_status != "approved":
            raise NotFoundException("Doctor not found")

        resolved = await self.resolver.resolve(
            doctor_id,
            target_date,
            appointment_type.value if appointment_type else None,
        )

        taken_result = await self.db.execute(
            select(appointments.c.start_time, appointments.c.end_time).where(
                appointments.c.doctor_id == doctor_id,
                appointments.c.appointment_date == target_date,
                appointments.c.status.in_(OCCUPYING_STATUSES),
            )
        )
        taken = taken_result.all()

        free = [
            BookableSlot(
                start_time=slot.start_time,
                end_time=slot.end_time,
                allowed_types=list(slot.allowed_types),
                override_id=slot.override_id,
            )
            for slot in resolved
            if not any(
                ranges_overlap(slot.start_time, slot.end_time, t.start_time, t.end_time)
                for t in taken
            )
        ]
        return BookableSlotsResponse(doctor_id=doctor_id, date=target_date, slots=free)
