"""Concurrent bookings against the same doctor."""

import asyncio
from datetime import date, time

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictException
from app.core.scope import PatientScope
from app.models.appointments import appointments
from app.models.waitlist import waitlist_entries
from app.schemas.appointments import AppointmentCancel, AppointmentCreate
from app.schemas.waitlist import WaitlistJoin
from app.services.booking_service import BookingService
from app.services.waitlist_service import WaitlistService


def scope_of(patient: dict) -> PatientScope:
    return PatientScope(user_id=patient["user_id"], patient_id=patient["id"])


async def race(
    session_factory: async_sessionmaker,
    attempts: list[tuple[PatientScope, AppointmentCreate]],
) -> list:
    """Run each booking on its own connection at the same time."""

    async def attempt(scope: PatientScope, data: AppointmentCreate):
        async with session_factory() as session:
            return await BookingService(session).create_booking(scope, data)

    return await asyncio.gather(
        *(attempt(scope, data) for scope, data in attempts),
        return_exceptions=True,
    )


def booking(doctor: dict, day: date, start: str, end: str, kind: str) -> AppointmentCreate:
    return AppointmentCreate(
        doctor_id=doctor["id"],
        appointment_date=day,
        start_time=start,
        end_time=end,
        appointment_type=kind,
        reason="Annual check-up",
    )


async def occupying_count(db_session: AsyncSession, doctor: dict) -> int:
    result = await db_session.execute(
        select(func.count())
        .select_from(appointments)
        .where(appointments.c.doctor_id == doctor["id"])
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_same_slot_booked_concurrently_has_one_winner(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    next_monday: date,
) -> None:
    """Two patients racing for one slot: exactly one booking succeeds."""
    outcomes = await race(
        session_factory,
        [
            (scope_of(patient), booking(doctor, next_monday, "09:00", "09:30", "virtual")),
            (scope_of(other_patient), booking(doctor, next_monday, "09:00", "09:30", "in-person")),
        ],
    )

    winners = [o for o in outcomes if not isinstance(o, BaseException)]
    losers = [o for o in outcomes if isinstance(o, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], ConflictException)
    assert await occupying_count(db_session, doctor) == 1


@pytest.mark.asyncio
async def test_same_slot_same_type_many_patients_has_one_winner(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    doctor: dict,
    make_patient,
    next_monday: date,
) -> None:
    """Identical virtual requests from four patients: one booking, three conflicts."""
    contenders = [await make_patient(f"Contender {n}") for n in range(4)]

    outcomes = await race(
        session_factory,
        [
            (scope_of(p), booking(doctor, next_monday, "09:00", "09:30", "virtual"))
            for p in contenders
        ],
    )

    winners = [o for o in outcomes if not isinstance(o, BaseException)]
    losers = [o for o in outcomes if isinstance(o, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 3
    assert all(isinstance(o, ConflictException) for o in losers)
    assert await occupying_count(db_session, doctor) == 1


@pytest.mark.asyncio
async def test_overlapping_windows_booked_concurrently_have_one_winner(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    make_override,
    next_monday: date,
) -> None:
    """An extra window straddling a pattern slot cannot be held at the same time."""
    await make_override(doctor["id"], next_monday, time(9, 15), time(9, 45), is_available=True)

    outcomes = await race(
        session_factory,
        [
            (scope_of(patient), booking(doctor, next_monday, "09:00", "09:30", "virtual")),
            (scope_of(other_patient), booking(doctor, next_monday, "09:15", "09:45", "virtual")),
        ],
    )

    assert sum(not isinstance(o, BaseException) for o in outcomes) == 1
    assert all(
        isinstance(o, ConflictException) for o in outcomes if isinstance(o, BaseException)
    )
    assert await occupying_count(db_session, doctor) == 1


@pytest.mark.asyncio
async def test_different_slots_booked_concurrently_both_succeed(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    next_monday: date,
) -> None:
    outcomes = await race(
        session_factory,
        [
            (scope_of(patient), booking(doctor, next_monday, "09:00", "09:30", "virtual")),
            (scope_of(other_patient), booking(doctor, next_monday, "09:30", "10:00", "virtual")),
        ],
    )

    assert not any(isinstance(o, BaseException) for o in outcomes)
    assert {o.start_time for o in outcomes} == {time(9), time(9, 30)}
    assert await occupying_count(db_session, doctor) == 2


@pytest.mark.asyncio
async def test_cancel_and_waitlist_join_never_strand_an_entry(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    next_monday: date,
) -> None:
    """A join racing the holder's cancel is either promoted or refused."""
    windows = [("09:00", "09:30"), ("09:30", "10:00"), ("10:00", "10:30")]
    held = [
        await BookingService(db_session).create_booking(
            scope_of(patient), booking(doctor, next_monday, start, end, "virtual")
        )
        for start, end in windows
    ]

    async def cancel(appointment_id: int):
        async with session_factory() as session:
            return await BookingService(session, auto_fulfill=True).cancel(
                scope_of(patient), appointment_id, AppointmentCancel()
            )

    async def join(appointment):
        async with session_factory() as session:
            return await WaitlistService(session).join(
                scope_of(other_patient),
                WaitlistJoin(
                    doctor_id=doctor["id"],
                    desired_date=appointment.appointment_date,
                    desired_start_time=appointment.start_time,
                    desired_end_time=appointment.end_time,
                    appointment_type="virtual",
                ),
            )

    for appointment in held:
        cancelled, joined = await asyncio.gather(
            cancel(appointment.id), join(appointment), return_exceptions=True
        )
        assert not isinstance(cancelled, BaseException)

        await db_session.rollback()
        entries = await db_session.execute(
            select(waitlist_entries.c.status).where(
                waitlist_entries.c.patient_id == other_patient["id"],
                waitlist_entries.c.desired_start_time == appointment.start_time,
            )
        )
        statuses = list(entries.scalars())
        promoted = await db_session.execute(
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.patient_id == other_patient["id"],
                appointments.c.start_time == appointment.start_time,
                appointments.c.status == "scheduled",
            )
        )

        if isinstance(joined, BaseException):
            assert isinstance(joined, ConflictException)
            assert statuses == []
            assert promoted.scalar_one() == 0
        else:
            assert statuses == ["booked"]
            assert promoted.scalar_one() == 1
