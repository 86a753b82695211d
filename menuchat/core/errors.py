"""
Error Vocabulary and Exception Taxonomy

Every failure that leaves the API carries one code from ErrorCode, so
client code and tests can branch on it without matching messages.

Two ways of failing:
    - Rejected: a plain value returned by the tenant resolver, the
      origin/session guard and the request validator. These components
      never raise for client-caused problems.
    - ApiError and subclasses: raised by domain operations and converted
      to envelopes by the exception handlers registered in main.py.

Author: Khalil Bannouri
Version: 1.0.0
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""
    BAD_REQUEST = "BAD_REQUEST"
    INVALID_TENANT_ID = "INVALID_TENANT_ID"
    UNAUTHORIZED = "UNAUTHORIZED"
    SESSION_INVALID = "SESSION_INVALID"
    FORBIDDEN = "FORBIDDEN"
    TENANT_INACTIVE = "TENANT_INACTIVE"
    ORIGIN_NOT_ALLOWED = "ORIGIN_NOT_ALLOWED"
    NOT_FOUND = "NOT_FOUND"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ITEM_UNAVAILABLE = "ITEM_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# STATUS MAPPING
# =============================================================================

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.INVALID_TENANT_ID: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.SESSION_INVALID: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.TENANT_INACTIVE: 403,
    ErrorCode.ORIGIN_NOT_ALLOWED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.TENANT_NOT_FOUND: 404,
    ErrorCode.ITEM_NOT_FOUND: 404,
    ErrorCode.ORDER_NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.ITEM_UNAVAILABLE: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}

SAFE_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.BAD_REQUEST: "The request is malformed or failed validation.",
    ErrorCode.INVALID_TENANT_ID: "The restaurant id is not a valid UUID.",
    ErrorCode.UNAUTHORIZED: "Authentication is required.",
    ErrorCode.SESSION_INVALID: "The widget session is missing or expired.",
    ErrorCode.FORBIDDEN: "You do not have access to this resource.",
    ErrorCode.TENANT_INACTIVE: "This restaurant is not accepting requests.",
    ErrorCode.ORIGIN_NOT_ALLOWED: "Requests from this origin are not allowed.",
    ErrorCode.NOT_FOUND: "The requested resource was not found.",
    ErrorCode.TENANT_NOT_FOUND: "Restaurant not found.",
    ErrorCode.ITEM_NOT_FOUND: "Menu item not found.",
    ErrorCode.ORDER_NOT_FOUND: "Order not found.",
    ErrorCode.METHOD_NOT_ALLOWED: "This endpoint does not support that HTTP method.",
    ErrorCode.CONFLICT: "The resource was changed or already exists.",
    ErrorCode.INVALID_TRANSITION: "The order cannot move to that status.",
    ErrorCode.ITEM_UNAVAILABLE: "One or more items are currently unavailable.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred.",
}


def status_for(code: ErrorCode) -> int:
    """Standard HTTP status for an error code."""
    return STATUS_BY_CODE.get(code, 500)


# =============================================================================
# REJECTION VALUES
# =============================================================================

@dataclass(frozen=True)
class Rejected:
    """Non-raising failure returned by resolver, guard and validator."""
    code: ErrorCode
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return status_for(self.code)

    def to_error(self) -> "ApiError":
        return ApiError(self.code, extra=self.extra)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ApiError(Exception):
    """Base error converted to an envelope at the route boundary."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code or status_for(code)
        self.extra = dict(extra or {})
        super().__init__(message or SAFE_MESSAGES.get(code, code.value))


class ValidationError(ApiError):
    """Malformed or out-of-bounds input."""

    def __init__(self, message: Optional[str] = None, code: ErrorCode = ErrorCode.BAD_REQUEST, **extra: Any):
        super().__init__(code, message, extra=extra)


class AuthorizationError(ApiError):
    """Tenant inactive, origin not allowed, session or credentials invalid."""

    def __init__(self, code: ErrorCode = ErrorCode.UNAUTHORIZED, message: Optional[str] = None, **extra: Any):
        super().__init__(code, message, extra=extra)


class NotFoundError(ApiError):
    """Referenced entity is absent."""

    def __init__(self, code: ErrorCode = ErrorCode.NOT_FOUND, message: Optional[str] = None, **extra: Any):
        super().__init__(code, message, extra=extra)


class ConflictError(ApiError):
    """Duplicate create or a lost concurrent-update race."""

    def __init__(self, code: ErrorCode = ErrorCode.CONFLICT, message: Optional[str] = None, **extra: Any):
        super().__init__(code, message, extra=extra)


class InternalError(ApiError):
    """Unexpected fault in a downstream dependency."""

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(ErrorCode.INTERNAL_ERROR, message, extra=extra)
