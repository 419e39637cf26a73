from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations.

    Carries the machine-readable ``error_code`` and HTTP status that the API
    layer puts into the error envelope.
    """

    http_status = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, error_code: str | None = None, *, http_status: int | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        if http_status is not None:
            self.http_status = http_status


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    default_code = "VALIDATION_ERROR"


class AuthenticationError(DomainError):
    """Raised when there is no valid session or login credentials are invalid."""

    http_status = 401
    default_code = "AUTH_REQUIRED"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    http_status = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class NotFoundError(DomainError):
    http_status = 404
    default_code = "NOT_FOUND"


class RateLimitExceeded(DomainError):
    http_status = 429
    default_code = "RATE_LIMIT_EXCEEDED"


class DuplicateKeyError(Exception):
    """Raised by repositories when a unique key rejects a write."""
