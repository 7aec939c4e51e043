"""Availability schemas for patterns, overrides and resolved slots."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field, model_validator

from app.schemas.appointments import AppointmentType
from app.schemas.fields import CalendarDate, WallClockTime

ALL_TYPES = [AppointmentType.VIRTUAL, AppointmentType.IN_PERSON]


def _dedupe_types(v: list[AppointmentType]) -> list[AppointmentType]:
    """Keep canonical order and drop repeats."""
    if not v:
        raise ValueError("at least one appointment type is required")
    return [t for t in ALL_TYPES if t in v]


TypeList = Annotated[list[AppointmentType], AfterValidator(_dedupe_types)]


# ============================================================================
# Recurring patterns
# ============================================================================


class PatternCreate(BaseModel):
    """One weekly window."""

    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday ... 6=Saturday")
    start_time: WallClockTime
    end_time: WallClockTime
    slot_duration_minutes: int = Field(default=30, ge=5, le=480)
    allowed_types: TypeList = Field(default_factory=lambda: list(ALL_TYPES))
    is_active: bool = True

    @model_validator(mode="after")
    def validate_range(self) -> "PatternCreate":
        """Validate end time is after start time."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class PatternReplaceRequest(BaseModel):
    """Full replacement of a doctor's weekly template."""

    patterns: list[PatternCreate]

    @model_validator(mode="after")
    def validate_unique_windows(self) -> "PatternReplaceRequest":
        """Reject two patterns starting at the same time on the same weekday."""
        seen: set[tuple] = set()
        for pattern in self.patterns:
            key = (pattern.day_of_week, pattern.start_time)
            if key in seen:
                raise ValueError(
                    f"duplicate pattern for day {pattern.day_of_week} at {pattern.start_time}"
                )
            seen.add(key)
        return self


class PatternResponse(BaseModel):
    """Schema for pattern response."""

    id: int
    doctor_id: UUID
    day_of_week: int
    start_time: WallClockTime
    end_time: WallClockTime
    slot_duration_minutes: int
    allowed_types: list[AppointmentType]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PatternListResponse(BaseModel):
    """Schema for pattern list response."""

    patterns: list[PatternResponse]


# ============================================================================
# Date-specific overrides
# ============================================================================


class OverrideCreate(BaseModel):
    """One date-specific addition or removal."""

    override_date: CalendarDate
    start_time: WallClockTime
    end_time: WallClockTime
    is_available: bool = True
    allowed_types: TypeList = Field(default_factory=lambda: list(ALL_TYPES))

    @model_validator(mode="after")
    def validate_range(self) -> "OverrideCreate":
        """Validate end time is after start time."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class OverrideBatchCreate(BaseModel):
    """Batch of overrides to add."""

    slots: list[OverrideCreate] = Field(..., min_length=1)


class OverrideUpdate(BaseModel):
    """Partial override update; the merged range is checked by the service."""

    start_time: WallClockTime | None = None
    end_time: WallClockTime | None = None
    is_available: bool | None = None
    allowed_types: TypeList | None = None


class OverrideResponse(BaseModel):
    """Schema for override response."""

    id: int
    doctor_id: UUID
    override_date: CalendarDate
    start_time: WallClockTime
    end_time: WallClockTime
    is_available: bool
    allowed_types: list[AppointmentType]
    created_at: datetime

    model_config = {"from_attributes": True}


class OverrideListResponse(BaseModel):
    """Schema for override list response."""

    slots: list[OverrideResponse]


# ============================================================================
# Resolved slots
# ============================================================================


class BookableSlot(BaseModel):
    """A window a patient may book right now."""

    start_time: WallClockTime
    end_time: WallClockTime
    allowed_types: list[AppointmentType]
    override_id: int | None = None


class BookableSlotsResponse(BaseModel):
    """Bookable slots for one doctor on one date."""

    doctor_id: UUID
    date: CalendarDate
    slots: list[BookableSlot]
