"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

JSON_HEADERS = {"Content-Type": "application/json"}


class AppError(Exception):
    """Base class for application errors."""

    code = "ERROR"

    def __init__(self, message: str, status_code: int = 400, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class ValidationError(AppError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Invalid input", details: Optional[Any] = None):
        super().__init__(message, status_code=400, details=details)


class InvalidTransitionError(ValidationError):
    """Raised when a ticket cannot move to the requested state."""

    code = "INVALID_TRANSITION"

    def __init__(self, message: str = "Invalid ticket state transition"):
        super().__init__(message)
        self.status_code = 409


class AuthorizationError(AppError):
    """Raised when the actor lacks the admin role."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Not authorized as admin"):
        super().__init__(message, status_code=403)


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class UpstreamError(AppError):
    """Raised by the webhook transport; always recovered by the gateway."""

    code = "UPSTREAM_ERROR"

    def __init__(self, message: str = "Upstream workflow failed", status_code: Optional[int] = None):
        super().__init__(message, status_code=502)
        self.upstream_status = status_code


class PersistenceError(AppError):
    """Raised when the backing store fails."""

    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, status_code=500)


def json_response(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": JSON_HEADERS,
        "body": json.dumps(body, default=str),
    }


def to_response(error: AppError, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    error_body: Dict[str, Any] = {"message": error.message, "code": error.code}
    if error.details is not None:
        error_body["details"] = error.details
    return json_response(
        error.status_code,
        {
            "success": False,
            "data": None,
            "error": error_body,
            "correlation_id": correlation_id,
        },
    )


def error_response(exc: Exception, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Map any exception raised inside a handler onto the response envelope."""
    if isinstance(exc, AppError):
        return to_response(exc, correlation_id)
    if isinstance(exc, PydanticValidationError):
        details = [
            {"message": err["msg"], "path": [str(p) for p in err["loc"]]}
            for err in exc.errors()
        ]
        return to_response(ValidationError("Invalid request", details=details), correlation_id)
    # Internal details stay in the logs.
    return to_response(AppError("Internal server error", status_code=500), correlation_id)


def handler_failure(logger, exc: Exception, action: str, correlation_id: str) -> Dict[str, Any]:
    """Log a failed handler call at the right level and build its response."""
    if isinstance(exc, (AppError, PydanticValidationError)) and not isinstance(exc, PersistenceError):
        logger.warning(
            f"{action} rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
    else:
        logger.exception(f"{action} failed", extra={"correlation_id": correlation_id})
    return error_response(exc, correlation_id)
