"""Doctor availability endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import DatabaseSession, DoctorScopeDep
from app.schemas.appointments import AppointmentType
from app.schemas.availability import (
    BookableSlotsResponse,
    OverrideBatchCreate,
    OverrideListResponse,
    OverrideResponse,
    OverrideUpdate,
    PatternListResponse,
    PatternReplaceRequest,
)
from app.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/patterns",
    response_model=PatternListResponse,
    status_code=status.HTTP_200_OK,
    summary="List recurring availability patterns",
)
async def list_patterns(
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> PatternListResponse:
    """List the authenticated doctor's weekly patterns."""
    service = AvailabilityService(db)
    return await service.list_patterns(scope)


@router.post(
    "/patterns",
    response_model=PatternListResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace recurring availability patterns",
)
async def replace_patterns(
    data: PatternReplaceRequest,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> PatternListResponse:
    """
    Replace every weekly pattern of the authenticated doctor.

    Args:
        data: Complete new set of patterns
        scope: Calling doctor
        db: Database session

    Returns:
        Stored patterns
    """
    service = AvailabilityService(db)
    return await service.replace_patterns(scope, data)


@router.delete(
    "/patterns/{pattern_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a recurring availability pattern",
)
async def delete_pattern(
    pattern_id: int,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> None:
    """Delete one weekly pattern."""
    service = AvailabilityService(db)
    await service.delete_pattern(scope, pattern_id)


@router.get(
    "/slots",
    response_model=OverrideListResponse,
    status_code=status.HTTP_200_OK,
    summary="List date-specific overrides",
)
async def list_overrides(
    scope: DoctorScopeDep,
    db: DatabaseSession,
    start_date: date | None = Query(None, description="Inclusive lower bound (YYYY-MM-DD)"),
    end_date: date | None = Query(None, description="Inclusive upper bound (YYYY-MM-DD)"),
) -> OverrideListResponse:
    """
    List the authenticated doctor's overrides.

    Args:
        scope: Calling doctor
        db: Database session
        start_date: Only overrides on or after this date
        end_date: Only overrides on or before this date

    Returns:
        Overrides ordered by date and start time
    """
    service = AvailabilityService(db)
    return await service.list_overrides(scope, start_date, end_date)


@router.post(
    "/slots",
    response_model=OverrideListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add date-specific overrides",
)
async def create_overrides(
    data: OverrideBatchCreate,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> OverrideListResponse:
    """Add extra windows or block out ranges on specific dates."""
    service = AvailabilityService(db)
    return await service.create_overrides(scope, data)


@router.put(
    "/slots/{override_id}",
    response_model=OverrideResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a date-specific override",
)
async def update_override(
    override_id: int,
    data: OverrideUpdate,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> OverrideResponse:
    """Partially update one override."""
    service = AvailabilityService(db)
    return await service.update_override(scope, override_id, data)


@router.delete(
    "/slots/{override_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a date-specific override",
)
async def delete_override(
    override_id: int,
    scope: DoctorScopeDep,
    db: DatabaseSession,
) -> None:
    """Delete one override."""
    service = AvailabilityService(db)
    await service.delete_override(scope, override_id)


@router.get(
    "/doctors/{doctor_id}/slots",
    response_model=BookableSlotsResponse,
    status_code=status.HTTP_200_OK,
    summary="Bookable slots of a doctor on a date",
)
async def get_bookable_slots(
    doctor_id: UUID,
    db: DatabaseSession,
    target_date: date = Query(..., alias="date", description="Date to resolve (YYYY-MM-DD)"),
    appointment_type: AppointmentType | None = Query(None, alias="type"),
) -> BookableSlotsResponse:
    """
    Free slots a patient can book for one doctor on one date.

    Args:
        doctor_id: Doctor ID
        db: Database session
        target_date: Date to resolve
        appointment_type: Keep only slots accepting this type

    Returns:
        Free slots ordered by start time
    """
    service = AvailabilityService(db)
    return await service.get_bookable_slots(doctor_id, target_date, appointment_type)
