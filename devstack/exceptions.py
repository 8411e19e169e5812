"""Application errors.

Each subclass fixes its wire ``code`` and HTTP status; the handler in
``devstack.main`` renders any of them as ``{"error", "code", "details"}``.
"""

from typing import Any

from fastapi import status


class DevStackError(Exception):
    """Base exception for the DevStack Link application."""

    code = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DevStackError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, identifier: str | None = None):
        if identifier:
            super().__init__(f"{resource} with id '{identifier}' not found")
        else:
            super().__init__(f"{resource} not found")


class ValidationError(DevStackError):
    """Rejected input; ``field`` names the offending field when there is one."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(message, details=merged)


class AuthenticationError(DevStackError):
    code = "authentication_error"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class AuthorizationError(DevStackError):
    """Authenticated, but not the owner, or the resource is not public."""

    code = "authorization_error"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class ConflictError(DevStackError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)


class RateLimitError(DevStackError):
    code = "rate_limit_exceeded"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class TokenNotFoundError(DevStackError):
    """Verification or reset token does not exist (or was already used)."""

    code = "token_not_found"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or already used token"


class TokenExpiredError(DevStackError):
    code = "token_expired"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Token has expired"
