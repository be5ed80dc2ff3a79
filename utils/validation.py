"""Reusable assertions for API response payloads."""

import re
from typing import Any, Iterable, Optional, Tuple, Type, Union

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PAGINATION_FIELDS = ("users", "total", "skip", "limit")
USER_FIELDS = ("id", "firstName", "lastName", "email", "username")


class ValidationError(AssertionError):
    """A response payload did not have the expected shape."""


def validate_status_code(actual: int, expected: int) -> None:
    if actual != expected:
        raise ValidationError(f"Expected status code {expected}, but got {actual}")


def validate_required_fields(obj: dict, required_fields: Iterable[str]) -> None:
    """Check every field is present and not None; reports all missing fields at once."""
    missing = [name for name in required_fields if obj.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def validate_type(
    value: Any, expected_type: Union[Type, Tuple[Type, ...]], field_name: str
) -> None:
    """
    Check ``value`` is an instance of ``expected_type``.

    Booleans are rejected where a number is expected, since JSON keeps
    them distinct.
    """
    is_bool_as_number = isinstance(value, bool) and bool not in _as_tuple(expected_type)
    if not isinstance(value, expected_type) or is_bool_as_number:
        raise ValidationError(
            f"Field '{field_name}' expected type '{_type_name(expected_type)}', "
            f"but got '{type(value).__name__}'"
        )


def validate_array_response(response: Any, expected_fields: Optional[Iterable[str]] = None) -> None:
    """Check ``response`` is a list; optionally check fields of its first item."""
    if not isinstance(response, list):
        raise ValidationError("Expected array response, but got non-array")
    if expected_fields and response:
        validate_required_fields(response[0], expected_fields)


def validate_pagination_response(response: dict) -> None:
    """Validate the ``{users, total, skip, limit}`` list envelope."""
    validate_required_fields(response, PAGINATION_FIELDS)
    if not isinstance(response["users"], list):
        raise ValidationError("Expected users to be an array")
    for name in ("total", "skip", "limit"):
        validate_type(response[name], int, name)


def validate_user(user: dict) -> None:
    validate_required_fields(user, USER_FIELDS)
    validate_type(user["id"], int, "id")
    for name in ("firstName", "lastName", "email", "username"):
        validate_type(user[name], str, name)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def validate_positive_number(value: Any, field_name: str) -> None:
    """Zero is accepted; negatives and non-numbers are not."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(f"Field '{field_name}' must be a positive number")


def _as_tuple(expected_type: Union[Type, Tuple[Type, ...]]) -> Tuple[Type, ...]:
    return expected_type if isinstance(expected_type, tuple) else (expected_type,)


def _type_name(expected_type: Union[Type, Tuple[Type, ...]]) -> str:
    return " | ".join(t.__name__ for t in _as_tuple(expected_type))
