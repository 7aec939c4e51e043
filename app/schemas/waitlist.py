"""Waitlist schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, model_validator

from app.schemas.appointments import AppointmentType
from app.schemas.fields import CalendarDate, WallClockTime


class WaitlistStatus(str, Enum):
    """Waitlist entry status; only moves forward from ACTIVE."""

    ACTIVE = "active"
    NOTIFIED = "notified"
    BOOKED = "booked"
    REMOVED = "removed"


class NotificationPreference(str, Enum):
    """How the patient wants to hear about an opened slot."""

    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"
    IN_APP = "in-app"


class WaitlistJoin(BaseModel):
    """Request to queue for an occupied slot."""

    doctor_id: UUID
    desired_date: CalendarDate
    desired_start_time: WallClockTime
    desired_end_time: WallClockTime
    appointment_type: AppointmentType
    notification_preference: NotificationPreference = NotificationPreference.IN_APP

    @model_validator(mode="after")
    def validate_range(self) -> "WaitlistJoin":
        """Validate end time is after start time."""
        if self.desired_start_time >= self.desired_end_time:
            raise ValueError("desired_start_time must be earlier than desired_end_time")
        return self


class WaitlistEntryResponse(BaseModel):
    """Schema for waitlist entry response."""

    id: int
    patient_id: UUID
    doctor_id: UUID
    desired_date: CalendarDate
    desired_start_time: WallClockTime
    desired_end_time: WallClockTime
    appointment_type: AppointmentType
    notification_preference: NotificationPreference
    status: WaitlistStatus
    last_notified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    doctor_name: str | None = None

    model_config = {"from_attributes": True}


class WaitlistListResponse(BaseModel):
    """Schema for waitlist list response."""

    waitlist_entries: list[WaitlistEntryResponse]
