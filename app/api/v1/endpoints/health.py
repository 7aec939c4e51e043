"""Liveness and dependency health endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Liveness payload plus dependency status.

    Bookings need only the database; Redis only throttles requests, so a Redis
    outage degrades the service without stopping it.
    """

    database: str
    redis: str
    waitlist_mode: str


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Check PostgreSQL and Redis.

    Returns:
        ``unhealthy`` without the database, ``degraded`` without Redis
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        redis=_label(redis_healthy),
        waitlist_mode="auto-book" if settings.waitlist_auto_fulfill else "notify",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Return pong."""
    return {"message": "pong"}
