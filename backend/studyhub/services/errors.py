"""
Domain errors raised by the service layer.

Services never build HTTP responses themselves; they raise one of these and
the exception handler registered in main.py renders it:

    {"detail": <message>, "code": <code>, **details}

with the status code carried by the error class.

Usage:
    from studyhub.services.errors import NotFoundError

    if connection is None:
        raise NotFoundError("Connection", connection_id)
"""

from typing import Any

from fastapi import status


class ServiceError(Exception):
    """Base exception for all StudyHub domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


class NotFoundError(ServiceError):
    """An id or code does not resolve to an entity."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: object | None = None, message: str | None = None):
        details: dict[str, Any] = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details=details,
        )


class ForbiddenError(ServiceError):
    """Caller lacks the role or relationship required for the action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class ConflictError(ServiceError):
    """The write would duplicate an existing entity."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class InvalidOperationError(ServiceError):
    """The entity is in the wrong state for the requested transition."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_OPERATION"


class UnprocessableError(ServiceError):
    """Input is well-formed JSON but semantically unusable."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "UNPROCESSABLE"
