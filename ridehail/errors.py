"""Error taxonomy for ride operations.

Every error is an ``HTTPException`` so services can raise them directly and
FastAPI renders ``{"detail": {"error": CODE, "message": ...}}``.
"""

from typing import Any

from fastapi import HTTPException


class RideError(HTTPException):
    status_code = 400
    code = "RIDE_ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        detail = {"error": self.code, "message": message}
        detail.update(extra)
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationError(RideError):
    """Malformed input; state is never mutated."""

    status_code = 422
    code = "VALIDATION_ERROR"


class NotFound(RideError):
    status_code = 404
    code = "RIDE_NOT_FOUND"


class InvalidTransition(RideError):
    """The ride's current status does not allow the requested operation."""

    status_code = 409
    code = "INVALID_TRANSITION"


class Conflict(InvalidTransition):
    """Lost an accept race: another driver is already bound to the ride."""

    code = "RIDE_CONFLICT"


class Forbidden(RideError):
    status_code = 403
    code = "FORBIDDEN"


class StoreUnavailable(RideError):
    status_code = 503
    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "ride store did not respond in time", **extra: Any):
        extra.setdefault("retryable", True)
        super().__init__(message, **extra)
