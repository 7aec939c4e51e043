"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from app.schemas.fields import CalendarDate, WallClockTime

DECLINED_BY_DOCTOR_REASON_PREFIX = "Declined by doctor"
CANCELLED_BY_PATIENT_REASON_PREFIX = "Cancelled by patient"


class AppointmentType(str, Enum):
    """Consultation mode."""

    VIRTUAL = "virtual"
    IN_PERSON = "in-person"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class DecisionAction(str, Enum):
    """Doctor-side status actions."""

    CONFIRM = "confirm"
    DECLINE = "decline"
    COMPLETE = "complete"
    NO_SHOW = "no-show"


class SlotSelection(BaseModel):
    """A concrete (date, start, end, type) choice."""

    appointment_date: CalendarDate
    start_time: WallClockTime
    end_time: WallClockTime
    appointment_type: AppointmentType

    @model_validator(mode="after")
    def validate_range(self) -> "SlotSelection":
        """Validate end time is after start time."""
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        return self


class AppointmentCreate(SlotSelection):
    """Schema for creating a new appointment."""

    doctor_id: UUID
    reason: str = Field(..., max_length=1000)
    notes: str | None = Field(None, max_length=2000)
    accessibility_needs: list[str] = Field(default_factory=list)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Reason must not be blank."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("reason is required")
        return cleaned

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str | None) -> str | None:
        """Treat whitespace-only notes as absent."""
        if v is None:
            return None
        return v.strip() or None

    @field_validator("accessibility_needs")
    @classmethod
    def clean_accessibility_needs(cls, v: list[str]) -> list[str]:
        """Drop blank entries."""
        return [item.strip() for item in v if item.strip()]


class AppointmentReschedule(SlotSelection):
    """Schema for moving an appointment to another slot."""


class AppointmentCancel(BaseModel):
    """Schema for a patient cancellation."""

    reason: str | None = Field(None, max_length=1000)


class AppointmentDecision(BaseModel):
    """Schema for a doctor's status action."""

    action: DecisionAction
    reason: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: int
    patient_id: UUID
    doctor_id: UUID
    override_id: int | None = None
    appointment_date: CalendarDate
    start_time: WallClockTime
    end_time: WallClockTime
    appointment_type: AppointmentType
    status: AppointmentStatus
    duration_minutes: int
    reason: str
    notes: str | None = None
    accessibility_needs: list[str] = Field(default_factory=list)
    cancelled_at: datetime | None = None
    cancelled_by: UUID | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def declined_by_doctor(self) -> bool:
        """Whether the cancellation came from the doctor declining the booking."""
        return self.status == AppointmentStatus.CANCELLED and (
            self.cancellation_reason or ""
        ).startswith(DECLINED_BY_DOCTOR_REASON_PREFIX)


class AppointmentActionResponse(BaseModel):
    """Appointment plus a human-readable outcome message."""

    message: str
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""

    total: int
    items: list[AppointmentResponse]
