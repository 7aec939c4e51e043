"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    RateLimitException,
    UnauthorizedException,
)
from app.core.redis_client import RateLimiter, get_redis_client
from app.core.scope import DoctorScope, PatientScope, Scope
from app.core.security import decode_access_token
from app.database import get_db
from app.services.user_service import UserService

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        UnauthorizedException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException("Could not validate credentials")

    try:
        return UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Invalid user ID format")


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Get current user from database.

    Raises:
        UnauthorizedException: If user not found
        ForbiddenException: If user is deactivated
    """
    user = await UserService.get_user_by_id(db, user_id)

    if not user:
        raise UnauthorizedException("User not found")

    if not user["is_active"]:
        raise ForbiddenException("User account is deactivated")

    return user


async def get_scope(
    user: Annotated[dict, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Scope:
    """
    Resolve the caller's role into a capability scope, once per request.

    Raises:
        ForbiddenException: Role is neither patient nor doctor
        NotFoundException: Role profile row is missing
    """
    if user["role"] == "patient":
        patient = await UserService.get_patient_by_user_id(db, user["id"])
        if not patient:
            raise NotFoundException("Patient profile not found.")
        return PatientScope(user_id=user["id"], patient_id=patient["id"])

    if user["role"] == "doctor":
        doctor = await UserService.get_doctor_by_user_id(db, user["id"])
        if not doctor:
            raise NotFoundException("Doctor profile not found.")
        return DoctorScope(user_id=user["id"], doctor_id=doctor["id"])

    raise ForbiddenException("Unsupported role for this operation.")


async def require_patient(scope: Annotated[Scope, Depends(get_scope)]) -> PatientScope:
    """Allow only patients."""
    if not isinstance(scope, PatientScope):
        raise ForbiddenException("Only patients can perform this action.")
    return scope


async def require_doctor(scope: Annotated[Scope, Depends(get_scope)]) -> DoctorScope:
    """Allow only doctors."""
    if not isinstance(scope, DoctorScope):
        raise ForbiddenException("Only doctors can perform this action.")
    return scope


def get_rate_limiter() -> RateLimiter:
    """Rate limiter backed by the shared Redis client."""
    return RateLimiter(get_redis_client())


def rate_limited(action: str):
    """
    Build a dependency that throttles ``action`` per user.

    Args:
        action: Name used in the counter key

    Returns:
        Dependency raising 429 once the per-minute limit is reached
    """

    async def check(
        user_id: Annotated[UUID, Depends(get_current_user_id)],
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        key = RateLimiter.key_for(user_id, action)
        if not limiter.check_rate_limit(key, settings.rate_limit_per_minute):
            raise RateLimitException("Too many requests. Please try again in a minute.")

    return check


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentScope = Annotated[Scope, Depends(get_scope)]
PatientScopeDep = Annotated[PatientScope, Depends(require_patient)]
DoctorScopeDep = Annotated[DoctorScope, Depends(require_doctor)]
