"""
Shared exception definitions.
"""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status used by the API layer.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppException):
    """Resource absent for the given tenant/id."""

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class PermissionDeniedError(AppException):
    """Acting identity is not allowed to perform the operation."""

    def __init__(self, message: str = "Permission denied", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="PERMISSION_DENIED", status_code=403, details=details)


class UpstreamUnavailableError(AppException):
    """A remote collaborator or the store could not be reached.

    Never interpreted as a permission decision.
    """

    def __init__(self, message: str = "Upstream service unavailable", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="UPSTREAM_UNAVAILABLE", status_code=503, details=details)


class InvalidStateError(AppException):
    """Data violates a domain invariant."""

    def __init__(self, message: str = "Invalid state", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="INVALID_STATE", status_code=409, details=details)


class ValidationError(AppException):
    """Business validation failed (distinct from pydantic ValidationError)."""

    def __init__(self, message: str = "Validation failed", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR", status_code=400, details=details)


class AuthenticationError(AppException):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Authentication required", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401, details=details)
