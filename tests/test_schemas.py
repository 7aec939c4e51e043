"""Tests for request payload validation."""

from datetime import date, time
from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentType,
)
from app.schemas.availability import OverrideCreate, PatternCreate, PatternReplaceRequest
from app.schemas.waitlist import NotificationPreference, WaitlistJoin


def booking(**overrides) -> dict:
    payload = {
        "doctor_id": str(uuid4()),
        "appointment_date": "2030-01-07",
        "start_time": "09:00",
        "end_time": "09:30",
        "appointment_type": "virtual",
        "reason": "  Annual check-up  ",
    }
    payload.update(overrides)
    return payload


def test_booking_normalizes_times_and_trims_reason() -> None:
    data = AppointmentCreate.model_validate(booking())

    assert data.appointment_date == date(2030, 1, 7)
    assert data.start_time == time(9, 0)
    assert data.reason == "Annual check-up"
    assert data.model_dump(mode="json")["start_time"] == "09:00:00"


@pytest.mark.parametrize(
    "field_overrides",
    [
        {"reason": "   "},
        {"appointment_type": "phone"},
        {"start_time": "9:00"},
        {"appointment_date": "2030-02-30"},
        {"appointment_date": "07/01/2030"},
        {"start_time": "10:00", "end_time": "10:00"},
        {"start_time": "11:00", "end_time": "10:00"},
    ],
)
def test_booking_rejects_invalid_payloads(field_overrides: dict) -> None:
    with pytest.raises(ValidationError):
        AppointmentCreate.model_validate(booking(**field_overrides))


def test_pattern_defaults_and_type_dedupe() -> None:
    data = PatternCreate.model_validate(
        {
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "12:00",
            "allowed_types": ["in-person", "virtual", "in-person"],
        }
    )

    assert data.slot_duration_minutes == 30
    assert data.allowed_types == [AppointmentType.VIRTUAL, AppointmentType.IN_PERSON]


def test_pattern_rejects_day_out_of_range_and_empty_types() -> None:
    with pytest.raises(ValidationError):
        PatternCreate.model_validate({"day_of_week": 7, "start_time": "09:00", "end_time": "10:00"})
    with pytest.raises(ValidationError):
        PatternCreate.model_validate(
            {"day_of_week": 1, "start_time": "09:00", "end_time": "10:00", "allowed_types": []}
        )


def test_pattern_replace_rejects_duplicate_day_and_start() -> None:
    window = {"day_of_week": 2, "start_time": "09:00", "end_time": "10:00"}

    with pytest.raises(ValidationError):
        PatternReplaceRequest.model_validate({"patterns": [window, {**window, "end_time": "11:00"}]})


def test_override_requires_ordered_range() -> None:
    with pytest.raises(ValidationError):
        OverrideCreate.model_validate(
            {"override_date": "2030-01-07", "start_time": "10:00", "end_time": "09:00"}
        )


def test_waitlist_join_defaults_to_in_app_notifications() -> None:
    data = WaitlistJoin.model_validate(
        {
            "doctor_id": str(uuid4()),
            "desired_date": "2030-01-07",
            "desired_start_time": "14:00",
            "desired_end_time": "14:30",
            "appointment_type": "in-person",
        }
    )

    assert data.notification_preference is NotificationPreference.IN_APP


def test_declined_by_doctor_is_derived_from_reason_prefix() -> None:
    base = {
        "id": 1,
        "patient_id": uuid4(),
        "doctor_id": uuid4(),
        "appointment_date": date(2030, 1, 7),
        "start_time": time(9),
        "end_time": time(9, 30),
        "appointment_type": "virtual",
        "duration_minutes": 30,
        "reason": "Check-up",
        "created_at": "2030-01-01T00:00:00Z",
        "updated_at": "2030-01-01T00:00:00Z",
    }

    declined = AppointmentResponse.model_validate(
        {**base, "status": "cancelled", "cancellation_reason": "Declined by doctor: on leave"}
    )
    cancelled = AppointmentResponse.model_validate(
        {**base, "status": "cancelled", "cancellation_reason": "Cancelled by patient"}
    )

    assert declined.declined_by_doctor is True
    assert cancelled.declined_by_doctor is False
    assert declined.model_dump(mode="json")["declined_by_doctor"] is True
