"""Appointment endpoints."""

from fastapi import APIRouter, Depends, status

from app.dependencies import (
    CurrentScope,
    DatabaseSession,
    DoctorScopeDep,
    PatientScopeDep,
    rate_limited,
)
from app.schemas.appointments import (
    AppointmentActionResponse,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentDecision,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
)
from app.services.booking_service import BookingService

router = APIRouter()


@router.post(
    "",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
    dependencies=[Depends(rate_limited("book_appointment"))],
)
async def create_appointment(
    data: AppointmentCreate,
    scope: PatientScopeDep,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """
    Book a resolved slot for the authenticated patient.

    Args:
        data: Doctor and slot to book
        scope: Calling patient
        db: Database session

    Returns:
        Created appointment awaiting doctor confirmation
    """
    service = BookingService(db)
    appointment = await service.create_booking(scope, data)
    return AppointmentActionResponse(
        message="Booking request submitted. Waiting for doctor confirmation.",
        appointment=appointment,
    )


@router.get(
    "/my",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List my appointments",
)
async def list_my_appointments(
    scope: CurrentScope,
    db: DatabaseSession,
) -> AppointmentListResponse:
    """
    List the caller's appointments, as patient or as doctor.

    Returns:
        Appointments ordered by date and start time
    """
    service = BookingService(db)
    return await service.list_my(scope)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: int,
    scope: CurrentScope,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get one of the caller's appointments.

    Raises:
        NotFoundException: If the appointment is not the caller's
    """
    service = BookingService(db)
    return await service.get(scope, appointment_id)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel an appointment",
)
async def cancel_appointment(
    appointment_id: int,
    scope: PatientScopeDep,
    db: DatabaseSession,
    data: AppointmentCancel | None = None,
) -> AppointmentActionResponse:
    """
    Cancel a pending or confirmed appointment as its patient.

    Args:
        appointment_id: Appointment ID
        scope: Calling patient
        db: Database session
        data: Optional cancellation reason

    Returns:
        Cancelled appointment
    """
    service = BookingService(db)
    return await service.cancel(scope, appointment_id, data or AppointmentCancel())


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule an appointment",
)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentReschedule,
    scope: PatientScopeDep,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """
    Move an appointment to another slot with the same doctor.

    Returns:
        Rescheduled appointment awaiting reconfirmation
    """
    service = BookingService(db)
    return await service.reschedule(scope, appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentActionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Confirm, decline, complete or mark no-show",
)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentDecision,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> AppointmentActionResponse:
    """
    Apply the doctor's decision to an appointment.

    Args:
        appointment_id: Appointment ID
        data: Action and optional reason
        scope: Calling doctor
        db: Database session

    Returns:
        Updated appointment
    """
    service = BookingService(db)
    return await service.decide(scope, appointment_id, data)
