"""
Service Errors

Business-rule violations raised by the service layer. Every error carries a
stable machine-readable code, a human-readable message, and the HTTP status
the routers translate it to.

Kinds:
- NotFoundError: resource absent or not owned by the caller (404)
- ConflictError: uniqueness or state conflict (409)
- InvalidTransitionError: status edge not permitted (409)
- ValidationFailedError: business validation failed (422)
- ForbiddenError: actor lacks capability for the resource (403)
"""

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error_code, "message": self.message}


class NotFoundError(ServiceError):
    """Raised when a resource does not exist or is not visible to the caller."""

    def __init__(self, message: str = "Resource not found", error_code: str = "RESOURCE_NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str, error_code: str = "DUPLICATE_RESOURCE"):
        super().__init__(message=message, error_code=error_code, status_code=409)


class InvalidTransitionError(ServiceError):
    """Raised when a status change is not an edge of the lifecycle graph."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_STATE_TRANSITION", status_code=409)


class ValidationFailedError(ServiceError):
    """Raised when input passes schema validation but breaks a business rule."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=422)


class ForbiddenError(ServiceError):
    """Raised when the actor may not act on the resource."""

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message=message, error_code="AUTHORIZATION_DENIED", status_code=403)


def raise_http_error(e: ServiceError) -> None:
    """Convert a service error to an HTTPException."""
    raise HTTPException(status_code=e.status_code, detail=e.to_dict()) from e


def internal_server_error() -> HTTPException:
    """Generic 500 that exposes no internal detail."""
    return HTTPException(
        status_code=500,
        detail={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
    )


__all__ = [
    "ServiceError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ValidationFailedError",
    "ForbiddenError",
    "raise_http_error",
    "internal_server_error",
]
