"""
Custom exceptions and error handlers for consistent error responses.

Domain errors raised by the fleet services carry an error code, an HTTP
status for the API layer, and structured details (offending field, expected
condition, actual value) so callers can render a precise message.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppException):
    """Raised when a referenced vehicle, driver, trip or log does not resolve."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ValidationError(AppException):
    """Raised when a field violates a business constraint (range, uniqueness, required-when)."""

    def __init__(self, message: str, field: str = None, details: Dict[str, Any] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_RULE",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class CapacityExceededError(AppException):
    """Raised when cargo weight exceeds the vehicle's maximum capacity."""

    def __init__(self, cargo_weight: float, max_capacity: float):
        super().__init__(
            message=f"Cargo weight ({cargo_weight} kg) exceeds vehicle maximum capacity ({max_capacity} kg)",
            error_code="ERR_CAPACITY_EXCEEDED",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "field": "cargo_weight",
                "expected": f"<= {max_capacity}",
                "actual": cargo_weight
            }
        )


class UnavailableError(AppException):
    """Raised when a vehicle or driver is not in the status an operation requires."""

    def __init__(self, resource: str, resource_id: Any, current_status: Any, required_status: Any):
        current = getattr(current_status, "value", current_status)
        required = getattr(required_status, "value", required_status)
        super().__init__(
            message=f"{resource} is not available. Current status: {current}",
            error_code="ERR_UNAVAILABLE",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "resource": resource,
                "id": resource_id,
                "field": "status",
                "expected": required,
                "actual": current
            }
        )


class ExpiredLicenseError(AppException):
    """Raised when a driver's license expired before the validation date."""

    def __init__(self, driver_id: Any, expiry_date: Any):
        expiry = expiry_date.isoformat() if hasattr(expiry_date, "isoformat") else expiry_date
        super().__init__(
            message=f"Driver's license has expired on {expiry}",
            error_code="ERR_LICENSE_EXPIRED",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "resource": "Driver",
                "id": driver_id,
                "field": "license_expiry_date",
                "expected": "not in the past",
                "actual": expiry
            }
        )


class InvalidTransitionError(AppException):
    """Raised when the requested trip status is not reachable from the current one."""

    def __init__(self, current_status: Any, requested_status: Any, allowed: list = None):
        current = getattr(current_status, "value", current_status)
        requested = getattr(requested_status, "value", requested_status)
        super().__init__(
            message=f"Invalid status transition from '{current}' to '{requested}'",
            error_code="ERR_INVALID_TRANSITION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "from": current,
                "to": requested,
                "allowed": [getattr(s, "value", s) for s in (allowed or [])]
            }
        )


class ConflictError(AppException):
    """Raised when current status blocks an operation or a concurrent write won the race."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class MissingFieldError(AppException):
    """Raised when a conditionally required field is absent."""

    def __init__(self, field: str, message: str = None):
        super().__init__(
            message=message or f"'{field}' is required for this operation",
            error_code="ERR_MISSING_FIELD",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field}
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERMISSION",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": jsonable_encoder(exc.details)
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
