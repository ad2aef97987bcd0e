from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses.

    Each subclass carries the HTTP status_code and a stable error_code:
    - validation_error (400)
    - unauthorized (401)
    - not_found (404)
    - conflict (409)
    - server_error (500)
    """

    status_code: int = 400
    error_code: str = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[dict] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.detail = detail or {}


class ValidationFailedError(ServiceError):
    """Request shape validation failed (400)."""
    status_code = 400
    error_code = "validation_error"


class UnauthorizedError(ServiceError):
    """Bad credentials or a bad, tampered or reused token (401)."""
    status_code = 401
    error_code = "unauthorized"


class TokenExpiredError(UnauthorizedError):
    """Access token past its exp (401)."""
    pass


class NotFoundError(ServiceError):
    """Resolved identifier no longer exists (404)."""
    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """Duplicate unique key (409)."""
    status_code = 409
    error_code = "conflict"


class InternalError(ServiceError):
    """Internal server error (500)."""
    status_code = 500
    error_code = "server_error"


__all__ = [
    "ServiceError",
    "ValidationFailedError",
    "UnauthorizedError",
    "TokenExpiredError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
