"""Exception handlers rendering every failure as ``{error, message, path}``."""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException

logger = structlog.get_logger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            **extra,
            "path": str(request.url),
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle business-rule exceptions raised by services.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response with the exception's status code
    """
    logger.info(
        "request_rejected",
        error=exc.__class__.__name__,
        status_code=exc.status_code,
        message=exc.message,
        path=request.url.path,
    )
    return _error_response(request, exc.status_code, exc.__class__.__name__, exc.message)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle routing-level HTTP exceptions (404 route, 405 method)."""
    return _error_response(request, exc.status_code, "HTTPException", exc.detail)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle malformed payloads, dates and times.

    Returns:
        422 JSON error response with pydantic's error list under ``details``
    """
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle anything unexpected; the transaction was already rolled back."""
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )
