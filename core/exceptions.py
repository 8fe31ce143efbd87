"""
Domain exceptions raised by the service layer.

Each exception carries the HTTP status and machine-readable code that the
error handlers in ``core.middleware.error_handling`` render into the standard
error envelope.
"""

from typing import Any, Optional

from fastapi import status


class JobBoardError(Exception):
    """Base exception for domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def details(self) -> Optional[Any]:
        return None


class ValidationError(JobBoardError):
    """Raised when input is malformed or out of range.

    ``errors`` lists every violated field, not just the first one found.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        errors: list[dict[str, str]],
        message: Optional[str] = None,
    ):
        self.errors = errors
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    @property
    def details(self) -> list[dict[str, str]]:
        return self.errors


class NotFoundError(JobBoardError):
    """Raised when a referenced job, application or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(JobBoardError):
    """Raised on uniqueness violations (duplicate application, email taken)."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class ForbiddenError(JobBoardError):
    """Raised when an authenticated user may not act on an entity."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You don't have permission to perform this action"


class InvalidOperationError(JobBoardError):
    """Raised when a request breaks a domain rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_OPERATION"
    default_message = "Operation not allowed"


class UnavailableError(JobBoardError):
    """Raised when storage or another collaborator cannot serve the request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"
    default_message = "Service temporarily unavailable"


class InvalidCredentialsError(JobBoardError):
    """Raised when login credentials do not match a user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"
