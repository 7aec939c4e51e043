"""Slot resolution: weekly patterns merged with date-specific overrides.

``resolve_slots`` is pure and deterministic; ``SlotResolver`` only loads the
rows for one doctor and date and hands them to it.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, time
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.timeutils import day_of_week, minutes_to_time, ranges_overlap, time_to_minutes
from app.models.availability import availability_overrides, availability_patterns

APPOINTMENT_TYPES = ("virtual", "in-person")
DEFAULT_SLOT_DURATION_MINUTES = 30


@dataclass(frozen=True)
class ResolvedSlot:
    """A bookable window on one date."""

    start_time: time
    end_time: time
    allowed_types: tuple[str, ...]
    override_id: int | None = None

    @property
    def key(self) -> tuple[time, time]:
        return (self.start_time, self.end_time)

    def allows(self, appointment_type: str) -> bool:
        return appointment_type in self.allowed_types


def _canonical_types(types: Iterable[str] | None) -> tuple[str, ...]:
    if types is None:
        return APPOINTMENT_TYPES
    wanted = {str(getattr(t, "value", t)) for t in types}
    return tuple(t for t in APPOINTMENT_TYPES if t in wanted)


def generate_pattern_slots(
    start_time: time,
    end_time: time,
    slot_duration_minutes: int | None,
    allowed_types: Iterable[str] | None = None,
) -> list[ResolvedSlot]:
    """
    Cut ``[start_time, end_time)`` into consecutive slots of one duration.

    A trailing remainder shorter than one duration is dropped.

    Args:
        start_time: Window start
        end_time: Window end
        slot_duration_minutes: Step and length of each slot (30 when unset)
        allowed_types: Consultation modes the window accepts

    Returns:
        Slots in ascending order
    """
    duration = slot_duration_minutes or DEFAULT_SLOT_DURATION_MINUTES
    types = _canonical_types(allowed_types)
    end = time_to_minutes(end_time)

    slots = []
    current = time_to_minutes(start_time)
    while current + duration <= end:
        slots.append(
            ResolvedSlot(
                start_time=minutes_to_time(current),
                end_time=minutes_to_time(current + duration),
                allowed_types=types,
            )
        )
        current += duration
    return slots


def resolve_slots(
    patterns: Iterable[Mapping[str, Any]],
    overrides: Iterable[Mapping[str, Any]],
    appointment_type: str | None = None,
) -> list[ResolvedSlot]:
    """
    Merge pattern-generated slots with overrides for a single date.

    Unavailable overrides remove every generated slot they intersect.
    Available overrides are added as extra slots. Slots sharing the same
    ``(start, end)`` are merged: their types are unioned and the override's
    id wins.

    Args:
        patterns: Active pattern rows for the date's weekday
        overrides: All override rows for the doctor and date
        appointment_type: Keep only slots that accept this type

    Returns:
        Deduplicated slots ordered by ``(start, end)``
    """
    generated: list[ResolvedSlot] = []
    for pattern in patterns:
        generated.extend(
            generate_pattern_slots(
                pattern["start_time"],
                pattern["end_time"],
                pattern.get("slot_duration_minutes"),
                pattern.get("allowed_types"),
            )
        )

    overrides = list(overrides)
    unavailable = [
        (o["start_time"], o["end_time"]) for o in overrides if not o["is_available"]
    ]
    extras = [
        ResolvedSlot(
            start_time=o["start_time"],
            end_time=o["end_time"],
            allowed_types=_canonical_types(o.get("allowed_types")),
            override_id=o["id"],
        )
        for o in overrides
        if o["is_available"]
    ]

    kept = [
        slot
        for slot in generated
        if not any(
            ranges_overlap(slot.start_time, slot.end_time, range_start, range_end)
            for range_start, range_end in unavailable
        )
    ]

    merged: dict[tuple[time, time], ResolvedSlot] = {}
    for slot in kept + extras:
        existing = merged.get(slot.key)
        if existing is None:
            merged[slot.key] = slot
            continue
        merged[slot.key] = ResolvedSlot(
            start_time=slot.start_time,
            end_time=slot.end_time,
            allowed_types=_canonical_types(existing.allowed_types + slot.allowed_types),
            override_id=existing.override_id or slot.override_id,
        )

    resolved = sorted(merged.values(), key=lambda s: s.key)
    if appointment_type is not None:
        resolved = [slot for slot in resolved if slot.allows(appointment_type)]
    return resolved


class SlotResolver:
    """Loads availability rows and resolves them for one doctor and date."""

    def __init__(self, db: AsyncSession):
        """Initialize resolver with database session."""
        self.db = db

    async def load_patterns(self, doctor_id: UUID, target_date: date) -> list[dict]:
        """Active patterns for the weekday of ``target_date``."""
        stmt = (
            select(availability_patterns)
            .where(
                availability_patterns.c.doctor_id == doctor_id,
                availability_patterns.c.day_of_week == day_of_week(target_date),
                availability_patterns.c.is_active.is_(True),
            )
            .order_by(availability_patterns.c.start_time, availability_patterns.c.id)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def load_overrides(self, doctor_id: UUID, target_date: date) -> list[dict]:
        """All overrides on ``target_date``, available or not."""
        stmt = (
            select(availability_overrides)
            .where(
                availability_overrides.c.doctor_id == doctor_id,
                availability_overrides.c.override_date == target_date,
            )
            .order_by(availability_overrides.c.start_time, availability_overrides.c.id)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def resolve(
        self,
        doctor_id: UUID,
        target_date: date,
        appointment_type: str | None = None,
    ) -> list[ResolvedSlot]:
        """Bookable windows for a doctor on a date, before live bookings are applied."""
        patterns = await self.load_patterns(doctor_id, target_date)
        overrides = await self.load_overrides(doctor_id, target_date)
        return resolve_slots(patterns, overrides, appointment_type)
