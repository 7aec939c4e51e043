"""Custom application exceptions.

Every business-rule failure raised from a service is one of these. The
transaction helper rolls back on any of them and the error handler maps
``status_code``/``message`` onto the JSON error body.
"""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class BadRequestException(AppException):
    """Well-formed request that breaks a booking rule (past date, disabled type)."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class UnauthorizedException(AppException):
    """Missing, expired or malformed bearer token."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Caller's role cannot use this operation."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class NotFoundException(AppException):
    """Doctor, patient, appointment, override or waitlist row is absent."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ConflictException(AppException):
    """Slot unavailable, overlapping booking or already-held slot."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class InvalidStateException(AppException):
    """Illegal status transition, e.g. confirming a cancelled appointment."""

    def __init__(self, message: str = "Invalid state transition"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Payload is structurally valid JSON but semantically malformed."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class RateLimitException(AppException):
    """Too many booking or waitlist requests from one user."""

    def __init__(self, message: str = "Rate limit exceeded"):
        """Initialize with 429 status code."""
        super().__init__(message, status_code=429)
