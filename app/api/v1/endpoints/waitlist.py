"""Waitlist endpoints."""

from fastapi import APIRouter, Depends, status

from app.dependencies import DatabaseSession, PatientScopeDep, rate_limited
from app.schemas.waitlist import WaitlistEntryResponse, WaitlistJoin, WaitlistListResponse
from app.services.waitlist_service import WaitlistService

router = APIRouter()


@router.post(
    "",
    response_model=WaitlistEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Join the waitlist for an occupied slot",
    dependencies=[Depends(rate_limited("join_waitlist"))],
)
async def join_waitlist(
    data: WaitlistJoin,
    scope: PatientScopeDep,
    db: DatabaseSession,
) -> WaitlistEntryResponse:
    """
    Queue the authenticated patient for a slot someone else holds.

    Args:
        data: Desired slot and notification preference
        scope: Calling patient
        db: Database session

    Returns:
        Active waitlist entry
    """
    service = WaitlistService(db)
    return await service.join(scope, data)


@router.get(
    "",
    response_model=WaitlistListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my waitlist entries",
)
async def list_waitlist(
    scope: PatientScopeDep,
    db: DatabaseSession,
) -> WaitlistListResponse:
    """List the patient's entries that were not removed."""
    service = WaitlistService(db)
    return await service.list_entries(scope)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave the waitlist",
)
async def leave_waitlist(
    entry_id: int,
    scope: PatientScopeDep,
    db: DatabaseSession,
) -> None:
    """Remove an active waitlist entry."""
    service = WaitlistService(db)
    await service.remove(scope, entry_id)
