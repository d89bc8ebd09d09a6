"""
Application error taxonomy.

Route handlers and domain helpers raise these; ``api.errors`` turns them
into ``{"error": ...}`` JSON responses using ``ERROR_STATUS``.
"""

from __future__ import annotations

from typing import Any, Dict, Type


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class AuthenticationRequired(AppError):
    default_message = "Authentication required"


class PermissionDenied(AppError):
    default_message = "Permission denied"


class NotFound(AppError):
    default_message = "Not found"


class ValidationError(AppError):
    default_message = "Invalid request"


class Conflict(AppError):
    default_message = "Resource already exists"


class UpstreamProviderError(AppError):
    """A third-party provider answered with a non-success response."""

    default_message = "The external service returned an error. Please try again."


class SessionExpired(AppError):
    """The provider rejected the stored access token."""

    default_message = "Session expired. Please reconnect and try again."

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "reconnect_required": True}


class ReconnectRequired(SessionExpired):
    """No usable token and no way to refresh one."""

    default_message = "Reconnection required"


ERROR_STATUS: Dict[Type[AppError], int] = {
    AuthenticationRequired: 401,
    PermissionDenied: 403,
    NotFound: 404,
    ValidationError: 400,
    Conflict: 409,
    UpstreamProviderError: 502,
    SessionExpired: 401,
}


def status_for(exc: AppError) -> int:
    """Resolve the HTTP status for ``exc``, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500
