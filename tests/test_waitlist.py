"""Tests for waitlist endpoints and slot release."""

from datetime import time, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.scope import PatientScope
from app.models.appointments import appointments
from app.models.messages import messages
from app.models.waitlist import waitlist_entries
from app.schemas.appointments import AppointmentCancel
from app.services.booking_service import BookingService
from app.services.notification_service import (
    WAITLIST_AUTO_BOOKED_CONTENT,
    WAITLIST_SLOT_OPENED_CONTENT,
)
from app.services.waitlist_engine import (
    WAITLIST_AUTO_BOOK_REASON,
    FreedSlot,
    WaitlistFulfillmentEngine,
)

BASE = "/api/v1/waitlist"
APPOINTMENTS = "/api/v1/appointments"
SLOT_FIELDS = ("appointment_date", "start_time", "end_time", "appointment_type")


def waitlist_payload(booking: dict, **extra) -> dict:
    """Waitlist body for the same tuple as a booking body."""
    return {
        "doctor_id": booking["doctor_id"],
        "desired_date": booking["appointment_date"],
        "desired_start_time": booking["start_time"],
        "desired_end_time": booking["end_time"],
        "appointment_type": booking["appointment_type"],
        **extra,
    }


def slot_fields(payload: dict) -> dict:
    return {key: payload[key] for key in SLOT_FIELDS}


async def book(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post(APPOINTMENTS, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["appointment"]


async def join(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post(BASE, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def entry_status(db_session: AsyncSession, entry_id: int) -> str:
    result = await db_session.execute(
        select(waitlist_entries.c.status).where(waitlist_entries.c.id == entry_id)
    )
    return result.scalar_one()


async def appointments_for(db_session: AsyncSession, patient_id) -> list[dict]:
    result = await db_session.execute(
        select(appointments).where(appointments.c.patient_id == patient_id)
    )
    return [dict(row) for row in result.mappings().all()]


@pytest.mark.asyncio
async def test_join_waitlist_for_occupied_slot(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    await book(client, patient["headers"], booking_payload())

    entry = await join(
        client,
        other_patient["headers"],
        waitlist_payload(booking_payload(), notification_preference="email"),
    )

    assert entry["status"] == "active"
    assert entry["patient_id"] == str(other_patient["id"])
    assert entry["desired_start_time"] == "09:00:00"
    assert entry["notification_preference"] == "email"
    assert entry["doctor_name"] == "Dr. Ada Lovelace"
    assert entry["last_notified_at"] is None


@pytest.mark.asyncio
async def test_join_free_slot_is_rejected(
    client: AsyncClient,
    patient: dict,
    booking_payload,
) -> None:
    response = await client.post(
        BASE, json=waitlist_payload(booking_payload()), headers=patient["headers"]
    )

    assert response.status_code == 409
    assert "book it directly" in response.json()["message"]


@pytest.mark.asyncio
async def test_join_slot_with_other_type_is_rejected(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    """The held tuple includes the appointment type."""
    await book(client, patient["headers"], booking_payload())

    response = await client.post(
        BASE,
        json=waitlist_payload(booking_payload(appointment_type="in-person")),
        headers=other_patient["headers"],
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_join_own_slot_is_rejected(
    client: AsyncClient,
    patient: dict,
    booking_payload,
) -> None:
    await book(client, patient["headers"], booking_payload())

    response = await client.post(
        BASE, json=waitlist_payload(booking_payload()), headers=patient["headers"]
    )

    assert response.status_code == 409
    assert response.json()["message"] == "You already hold this appointment slot."


@pytest.mark.asyncio
async def test_join_past_date_is_rejected(
    client: AsyncClient,
    patient: dict,
    booking_payload,
    next_monday,
) -> None:
    payload = waitlist_payload(booking_payload())
    payload["desired_date"] = (next_monday - timedelta(days=28)).isoformat()

    response = await client.post(BASE, json=payload, headers=patient["headers"])

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_join_unverified_doctor_is_rejected(
    client: AsyncClient,
    patient: dict,
    make_doctor,
    booking_payload,
) -> None:
    pending = await make_doctor(full_name="Dr. Pending", verification_status="pending")
    payload = waitlist_payload(booking_payload())
    payload["doctor_id"] = str(pending["id"])

    response = await client.post(BASE, json=payload, headers=patient["headers"])

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_doctor_cannot_join(client: AsyncClient, doctor: dict, booking_payload) -> None:
    response = await client.post(
        BASE, json=waitlist_payload(booking_payload()), headers=doctor["headers"]
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_rejoining_active_entry_updates_preference(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    await book(client, patient["headers"], booking_payload())
    first = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))

    second = await join(
        client,
        other_patient["headers"],
        waitlist_payload(booking_payload(), notification_preference="sms"),
    )

    assert second["id"] == first["id"]
    assert second["notification_preference"] == "sms"
    assert second["created_at"] == first["created_at"]


@pytest.mark.asyncio
async def test_list_and_remove_entries(
    client: AsyncClient,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    await book(client, patient["headers"], booking_payload("09:00", "09:30"))
    await book(client, patient["headers"], booking_payload("10:00", "10:30"))
    first = await join(
        client, other_patient["headers"], waitlist_payload(booking_payload("09:00", "09:30"))
    )
    second = await join(
        client, other_patient["headers"], waitlist_payload(booking_payload("10:00", "10:30"))
    )

    listed = await client.get(BASE, headers=other_patient["headers"])
    assert listed.status_code == 200
    # Same date, newest first
    assert [e["id"] for e in listed.json()["waitlist_entries"]] == [second["id"], first["id"]]

    foreign = await client.delete(f"{BASE}/{first['id']}", headers=patient["headers"])
    assert foreign.status_code == 404

    removed = await client.delete(f"{BASE}/{first['id']}", headers=other_patient["headers"])
    assert removed.status_code == 204

    again = await client.delete(f"{BASE}/{first['id']}", headers=other_patient["headers"])
    assert again.status_code == 409

    remaining = await client.get(BASE, headers=other_patient["headers"])
    assert [e["id"] for e in remaining.json()["waitlist_entries"]] == [second["id"]]


@pytest.mark.asyncio
async def test_decline_promotes_oldest_waitlisted_patient(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    make_patient,
    booking_payload,
) -> None:
    """A declined booking goes to the first patient in line."""
    latecomer = await make_patient("Carol Patient")
    held = await book(client, patient["headers"], booking_payload())
    first = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))
    second = await join(client, latecomer["headers"], waitlist_payload(booking_payload()))

    response = await client.patch(
        f"{APPOINTMENTS}/{held['id']}/status",
        json={"action": "decline"},
        headers=doctor["headers"],
    )
    assert response.status_code == 200

    promoted = await appointments_for(db_session, other_patient["id"])
    assert len(promoted) == 1
    assert promoted[0]["status"] == "scheduled"
    assert promoted[0]["start_time"] == time.fromisoformat(held["start_time"])
    assert promoted[0]["reason"] == WAITLIST_AUTO_BOOK_REASON

    assert await entry_status(db_session, first["id"]) == "booked"
    assert await entry_status(db_session, second["id"]) == "active"
    assert await appointments_for(db_session, latecomer["id"]) == []

    sent = await db_session.execute(
        select(messages).where(messages.c.receiver_id == other_patient["user_id"])
    )
    notice = sent.mappings().one()
    assert notice["sender_id"] == doctor["user_id"]
    assert notice["appointment_id"] == promoted[0]["id"]
    assert notice["content"] == WAITLIST_AUTO_BOOKED_CONTENT


@pytest.mark.asyncio
async def test_patient_cancel_promotes_waitlisted_patient(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    held = await book(client, patient["headers"], booking_payload())
    entry = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))

    response = await client.patch(
        f"{APPOINTMENTS}/{held['id']}/cancel", headers=patient["headers"]
    )
    assert response.status_code == 200

    assert await entry_status(db_session, entry["id"]) == "booked"
    mine = await client.get(f"{APPOINTMENTS}/my", headers=other_patient["headers"])
    assert mine.json()["total"] == 1


@pytest.mark.asyncio
async def test_broadcast_mode_notifies_without_booking(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    make_patient,
    booking_payload,
) -> None:
    latecomer = await make_patient("Carol Patient")
    held = await book(client, patient["headers"], booking_payload())
    first = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))
    second = await join(client, latecomer["headers"], waitlist_payload(booking_payload()))

    service = BookingService(db_session, auto_fulfill=False)
    await service.cancel(
        PatientScope(user_id=patient["user_id"], patient_id=patient["id"]),
        held["id"],
        AppointmentCancel(),
    )

    assert await entry_status(db_session, first["id"]) == "notified"
    assert await entry_status(db_session, second["id"]) == "notified"
    assert await appointments_for(db_session, other_patient["id"]) == []

    sent = await db_session.execute(
        select(messages.c.receiver_id, messages.c.content).where(
            messages.c.content == WAITLIST_SLOT_OPENED_CONTENT
        )
    )
    assert {row.receiver_id for row in sent} == {other_patient["user_id"], latecomer["user_id"]}

    # The slot is free again, so the notified patient books it directly
    rebooked = await book(client, other_patient["headers"], booking_payload())
    assert rebooked["patient_id"] == str(other_patient["id"])


@pytest.mark.asyncio
async def test_reschedule_notifies_waitlist_for_vacated_slot(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    held = await book(client, patient["headers"], booking_payload("09:00", "09:30"))
    entry = await join(
        client, other_patient["headers"], waitlist_payload(booking_payload("09:00", "09:30"))
    )

    target = booking_payload("11:00", "11:30")
    response = await client.patch(
        f"{APPOINTMENTS}/{held['id']}/reschedule",
        json=slot_fields(target),
        headers=patient["headers"],
    )
    assert response.status_code == 200

    assert await entry_status(db_session, entry["id"]) == "notified"
    assert await appointments_for(db_session, other_patient["id"]) == []


@pytest.mark.asyncio
async def test_rejoining_after_notification_queues_fresh_entry(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    make_patient,
    booking_payload,
) -> None:
    """A finished entry is replaced, taking a new place in line."""
    holder = await make_patient("Dan Patient")
    held = await book(client, patient["headers"], booking_payload("09:00", "09:30"))
    entry = await join(
        client, other_patient["headers"], waitlist_payload(booking_payload("09:00", "09:30"))
    )

    # Move away so the entry is notified, then someone else takes the slot
    target = booking_payload("11:00", "11:30")
    await client.patch(
        f"{APPOINTMENTS}/{held['id']}/reschedule",
        json=slot_fields(target),
        headers=patient["headers"],
    )
    await book(client, holder["headers"], booking_payload("09:00", "09:30"))

    fresh = await join(
        client, other_patient["headers"], waitlist_payload(booking_payload("09:00", "09:30"))
    )

    assert fresh["id"] != entry["id"]
    assert fresh["status"] == "active"
    assert fresh["last_notified_at"] is None


@pytest.mark.asyncio
async def test_fulfillment_skips_slot_that_is_still_occupied(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    booking_payload,
) -> None:
    """An overlapping holder found under lock aborts the promotion."""
    held = await book(client, patient["headers"], booking_payload())
    entry = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))
    row = (
        await db_session.execute(select(appointments).where(appointments.c.id == held["id"]))
    ).mappings().one()

    engine = WaitlistFulfillmentEngine(db_session)
    outcome = await engine.fulfill_waitlist_for_cancelled_appointment(
        FreedSlot.from_appointment(dict(row))
    )

    assert outcome.assigned is False
    assert outcome.appointment_id is None
    assert outcome.notices == []
    assert await entry_status(db_session, entry["id"]) == "active"
    assert await appointments_for(db_session, other_patient["id"]) == []
    await db_session.rollback()


@pytest.mark.asyncio
async def test_fulfillment_promotes_oldest_entry_once_slot_is_free(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    other_patient: dict,
    make_patient,
    booking_payload,
) -> None:
    late = await make_patient("Erin Patient")
    held = await book(client, patient["headers"], booking_payload())
    first = await join(client, other_patient["headers"], waitlist_payload(booking_payload()))
    await join(client, late["headers"], waitlist_payload(booking_payload()))

    row = (
        await db_session.execute(
            update(appointments)
            .where(appointments.c.id == held["id"])
            .values(status="cancelled")
            .returning(appointments)
        )
    ).mappings().one()

    engine = WaitlistFulfillmentEngine(db_session)
    outcome = await engine.fulfill_waitlist_for_cancelled_appointment(
        FreedSlot.from_appointment(dict(row))
    )
    await db_session.commit()

    assert outcome.assigned is True
    assert outcome.waitlist_entry_id == first["id"]
    assert outcome.patient_id == other_patient["id"]
    assert await entry_status(db_session, first["id"]) == "booked"
    [promoted] = await appointments_for(db_session, other_patient["id"])
    assert promoted["id"] == outcome.appointment_id
    assert promoted["reason"] == WAITLIST_AUTO_BOOK_REASON
    assert await appointments_for(db_session, late["id"]) == []
