from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses.

    ``message`` becomes the ``error`` field of the response body and
    ``detail`` (field name -> message) becomes ``details`` when non-empty.
    """

    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}


class ValidationError(ServiceError):
    """Request validation failed (400)."""
    status_code = 400


class AuthenticationError(ServiceError):
    """Authentication failed or missing (401)."""
    status_code = 401


class SessionExpiredError(AuthenticationError):
    """A session cookie was presented but no longer resolves (401).

    The response also clears the stale cookie.
    """


class ForbiddenError(ServiceError):
    """Authenticated, but the resource belongs to someone else (403)."""
    status_code = 403


class NotFoundError(ServiceError):
    """Requested resource not found (404)."""
    status_code = 404


class ConflictError(ServiceError):
    """Resource conflict, e.g. duplicate email (409)."""
    status_code = 409


class ServerError(ServiceError):
    """Internal server error (500)."""
    status_code = 500


__all__ = [
    "ServiceError",
    "ValidationError",
    "AuthenticationError",
    "SessionExpiredError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
]
