"""
Response Envelope Builder

Every endpoint answers with one of two shapes:

    success: {"ok": true, "data": ...}
    failure: {"code": "<ErrorCode>", "message": "...", ...extra}

In hardened mode (staging/production) extras that could leak internals
are stripped and the message is the fixed text for the code. In
development mode extras pass through so raw errors are visible while
debugging.

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Any, Optional, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from menuchat.core.errors import ApiError, ErrorCode, Rejected, SAFE_MESSAGES, status_for

# Keys that may carry raw exception text or stack traces
LEAKY_KEYS = frozenset({"detail", "error", "exception", "stack", "traceback", "message"})


def ok(data: Any) -> dict[str, Any]:
    """Wrap a successful result."""
    return {"ok": True, "data": data}


def fail(
    code: Union[ErrorCode, str],
    status: Optional[int] = None,
    extra: Optional[dict[str, Any]] = None,
    *,
    expose_details: bool = False,
) -> tuple[dict[str, Any], int]:
    """
    Build an error body and its HTTP status.

    Args:
        code: Error code from the fixed vocabulary
        status: HTTP status (defaults to the code's standard mapping)
        extra: Additional fields merged into the body
        expose_details: Pass leaky fields and raw messages through

    Returns:
        (body, status) tuple
    """
    code = ErrorCode(code)
    status = status or status_for(code)
    extra = {k: v for k, v in (extra or {}).items() if k != "code"}

    if expose_details:
        message = extra.pop("message", None) or SAFE_MESSAGES[code]
        body = {"code": code.value, "message": message, **extra}
    else:
        safe_extra = {k: v for k, v in extra.items() if k not in LEAKY_KEYS}
        body = {"code": code.value, "message": SAFE_MESSAGES[code], **safe_extra}

    return body, status


# =============================================================================
# STARLETTE RESPONSES
# =============================================================================

def ok_response(
    data: Any,
    status_code: int = 200,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ok(data)),
        headers=headers,
    )


def fail_response(
    code: Union[ErrorCode, str],
    status: Optional[int] = None,
    extra: Optional[dict[str, Any]] = None,
    *,
    expose_details: bool = False,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body, status = fail(code, status, extra, expose_details=expose_details)
    return JSONResponse(status_code=status, content=jsonable_encoder(body), headers=headers)


def rejection_response(rejected: Rejected, *, expose_details: bool = False) -> JSONResponse:
    """Convert a resolver/guard/validator rejection."""
    return fail_response(
        rejected.code,
        rejected.status_code,
        rejected.extra,
        expose_details=expose_details,
    )


def error_response(exc: ApiError, *, expose_details: bool = False) -> JSONResponse:
    """Convert a raised ApiError."""
    extra = dict(exc.extra)
    if exc.message:
        extra["message"] = exc.message
    return fail_response(
        exc.code,
        exc.status_code,
        extra,
        expose_details=expose_details,
    )
