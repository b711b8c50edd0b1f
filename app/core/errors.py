"""Operational error taxonomy and the single client-facing error shape.

Every failure a caller is expected to handle is an ``AppError`` subclass.
The exception handlers in ``app.main`` turn them into::

    {"success": false, "error": {"code", "message", "metadata"?, "requestId"?}}
"""

from typing import Any

from fastapi import status


class AppError(Exception):
    """Base class for expected, caller-recoverable failures."""

    code: str = "INTERNAL_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None, **metadata: Any) -> None:
        self.message = message or self.default_message
        self.metadata = metadata
        super().__init__(self.message)


# ── Credentials ──────────────────────────────────────────────

class InvalidToken(AppError):
    code = "INVALID_TOKEN"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class TokenExpired(AppError):
    code = "TOKEN_EXPIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token expired"


class InvalidCredentials(AppError):
    code = "INVALID_CREDENTIALS"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


# ── Identity resolution ──────────────────────────────────────

class UserNotFound(AppError):
    code = "USER_NOT_FOUND"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not found"


class UserInactive(AppError):
    code = "USER_INACTIVE"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "User account is not active"


class TenantNotFound(AppError):
    code = "TENANT_NOT_FOUND"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Tenant not found"


class TenantSuspended(AppError):
    code = "TENANT_SUSPENDED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Tenant account is not active"


class TenantMismatch(AppError):
    code = "TENANT_MISMATCH"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Tenant mismatch"


# ── Authorization ────────────────────────────────────────────

class NotEnrolled(AppError):
    code = "NOT_ENROLLED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not enrolled in this class"


class InsufficientPermissions(AppError):
    code = "INSUFFICIENT_PERMISSIONS"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


# ── Data ─────────────────────────────────────────────────────

class AlreadyEnrolled(AppError):
    code = "ALREADY_ENROLLED"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User is already enrolled in this class"


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(AppError):
    code = "DUPLICATE_ENTRY"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class RateLimitExceeded(AppError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


def error_body(
    code: str,
    message: str,
    *,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body shared by every error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if metadata:
        error["metadata"] = metadata
    if request_id:
        error["requestId"] = request_id
    return {"success": False, "error": error}
