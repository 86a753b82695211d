"""
Request Validator

Runs a raw payload (parsed JSON body or query parameters) through an
endpoint's pydantic schema. Never raises: failures come back as
Rejected(BAD_REQUEST) carrying an issue list of {path, message}.
"""

from dataclasses import dataclass
from typing import Any, Generic, Iterable, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from menuchat.core.errors import ErrorCode, Rejected

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class ValidatedRequest(Generic[T]):
    data: T


def issue_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def format_issues(errors: Iterable[dict[str, Any]]) -> list[dict[str, str]]:
    """Turn pydantic error dicts into {path, message} issues."""
    issues = []
    for error in errors:
        message = error.get("msg", "Invalid value")
        # model_validator errors arrive as "Value error, <text>"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        issues.append({"path": issue_path(error.get("loc", ())), "message": message})
    return issues


def validate(raw: Any, schema: Type[T]) -> Union[ValidatedRequest[T], Rejected]:
    """
    Validate and normalize a payload.

    Args:
        raw: Untrusted input, usually a dict
        schema: Pydantic model describing the endpoint's payload

    Returns:
        ValidatedRequest wrapping the model, or Rejected(BAD_REQUEST, issues)
    """
    if not isinstance(raw, dict):
        return Rejected(
            ErrorCode.BAD_REQUEST,
            {"issues": [{"path": "", "message": "Expected a JSON object"}]},
        )

    try:
        return ValidatedRequest(schema.model_validate(raw))
    except PydanticValidationError as e:
        return Rejected(ErrorCode.BAD_REQUEST, {"issues": format_issues(e.errors(include_url=False))})
    except (TypeError, ValueError) as e:
        return Rejected(ErrorCode.BAD_REQUEST, {"issues": [{"path": "", "message": str(e)}]})
