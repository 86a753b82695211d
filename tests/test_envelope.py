import json

import pytest

from menuchat.core.envelope import LEAKY_KEYS, error_response, fail, ok, rejection_response
from menuchat.core.errors import (
    SAFE_MESSAGES,
    STATUS_BY_CODE,
    ApiError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    Rejected,
    ValidationError,
)


def test_ok_wraps_data():
    assert ok({"a": 1}) == {"ok": True, "data": {"a": 1}}
    assert ok(None) == {"ok": True, "data": None}


@pytest.mark.parametrize("code", list(ErrorCode))
def test_every_code_has_status_and_message(code):
    assert code in STATUS_BY_CODE
    assert SAFE_MESSAGES[code]


@pytest.mark.parametrize("code,status", [
    (ErrorCode.BAD_REQUEST, 400),
    (ErrorCode.INVALID_TENANT_ID, 400),
    (ErrorCode.SESSION_INVALID, 401),
    (ErrorCode.ORIGIN_NOT_ALLOWED, 403),
    (ErrorCode.TENANT_NOT_FOUND, 404),
    (ErrorCode.INVALID_TRANSITION, 409),
    (ErrorCode.INTERNAL_ERROR, 500),
])
def test_status_defaults_from_code(code, status):
    body, actual = fail(code)
    assert actual == status
    assert body == {"code": code.value, "message": SAFE_MESSAGES[code]}


def test_explicit_status_wins():
    _, status = fail(ErrorCode.BAD_REQUEST, 422)
    assert status == 422


def test_hardened_mode_strips_leaky_extras():
    extra = {key: "internal" for key in LEAKY_KEYS}
    extra["issues"] = [{"path": "name", "message": "Field required"}]

    body, status = fail(ErrorCode.INTERNAL_ERROR, extra=extra)

    assert status == 500
    assert body["message"] == SAFE_MESSAGES[ErrorCode.INTERNAL_ERROR]
    assert body["issues"] == extra["issues"]
    for key in LEAKY_KEYS - {"message"}:
        assert key not in body


def test_development_mode_passes_extras_through():
    body, _ = fail(
        ErrorCode.INTERNAL_ERROR,
        extra={"message": "connection refused", "detail": "pool exhausted"},
        expose_details=True,
    )
    assert body["message"] == "connection refused"
    assert body["detail"] == "pool exhausted"


def test_extra_cannot_override_code():
    body, _ = fail(ErrorCode.NOT_FOUND, extra={"code": "SOMETHING_ELSE"})
    assert body["code"] == "NOT_FOUND"


def test_rejection_response_renders_issues():
    rejected = Rejected(ErrorCode.BAD_REQUEST, {"issues": [{"path": "name", "message": "Field required"}]})
    response = rejection_response(rejected)

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["code"] == "BAD_REQUEST"
    assert body["issues"][0]["path"] == "name"


def test_error_response_hides_custom_message_when_hardened():
    exc = ConflictError(message="duplicate key value violates unique constraint")

    hardened = json.loads(error_response(exc).body)
    development = json.loads(error_response(exc, expose_details=True).body)

    assert hardened["message"] == SAFE_MESSAGES[ErrorCode.CONFLICT]
    assert development["message"] == "duplicate key value violates unique constraint"


def test_exception_taxonomy_statuses():
    assert ValidationError().status_code == 400
    assert NotFoundError(ErrorCode.ORDER_NOT_FOUND).status_code == 404
    assert ConflictError(ErrorCode.INVALID_TRANSITION).status_code == 409
    assert ApiError(ErrorCode.FORBIDDEN).status_code == 403
    assert str(NotFoundError(ErrorCode.TENANT_NOT_FOUND)) == SAFE_MESSAGES[ErrorCode.TENANT_NOT_FOUND]


def test_rejected_to_error_keeps_code_and_extra():
    error = Rejected(ErrorCode.SESSION_INVALID, {"hint": "reopen"}).to_error()
    assert error.code == ErrorCode.SESSION_INVALID
    assert error.status_code == 401
    assert error.extra == {"hint": "reopen"}
