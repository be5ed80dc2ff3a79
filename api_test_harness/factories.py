"""Factories for user test data and request log records."""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from persistence.models import RequestRecord
from .builders import UserBuilder
from .models import User

JSON_HEADERS = {"Content-Type": "application/json"}


class UserFactory:
    """
    Generate users for positive and negative test scenarios.

    A class-level counter keeps generated usernames and emails unique
    within a process; call :meth:`reset_counter` for predictable values.
    """

    _counter = 1

    @classmethod
    def _next_id(cls) -> int:
        n = cls._counter
        cls._counter += 1
        return n

    @classmethod
    def create_random_user(cls) -> User:
        """Generate a complete, valid user."""
        n = cls._next_id()
        return (
            UserBuilder()
            .with_first_name(f"Test{n}")
            .with_last_name(f"User{n}")
            .with_age(25 + (n % 50))
            .with_email(f"testuser{n}@example.com")
            .with_phone(f"+1-555-{str(1000 + n)[-4:]}")
            .with_username(f"testuser{n}")
            .with_password(f"password{n}")
            .with_birth_date(f"1990-01-{1 + (n % 28):02d}")
            .build()
        )

    @classmethod
    def create_user(cls, **overrides: Any) -> User:
        """Generate a valid user, then apply attribute overrides."""
        return replace(cls.create_random_user(), **overrides)

    @classmethod
    def create_minimal_user(cls) -> User:
        """Generate a user carrying only the required fields."""
        n = cls._next_id()
        return (
            UserBuilder()
            .with_first_name(f"Min{n}")
            .with_last_name(f"User{n}")
            .with_age(30)
            .with_email(f"minuser{n}@example.com")
            .with_phone("+1-555-0000")
            .with_username(f"minuser{n}")
            .build_minimal()
        )

    @classmethod
    def create_invalid_user(cls, missing_field: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a user payload for negative tests.

        Args:
            missing_field: camelCase API key to drop from the payload

        Returns:
            API payload dict
        """
        n = cls._next_id()
        payload = {
            "firstName": f"Invalid{n}",
            "lastName": f"User{n}",
            "age": 30,
            "email": f"invalid{n}@example.com",
            "phone": "+1-555-0000",
            "username": f"invalid{n}",
        }
        if missing_field:
            payload.pop(missing_field, None)
        return payload

    @staticmethod
    def create_user_with_invalid_types() -> Dict[str, Any]:
        """A user-shaped payload whose every field has the wrong type."""
        return {
            "firstName": 123,
            "lastName": True,
            "age": "thirty",
            "email": 456,
            "phone": None,
            "username": [],
        }

    @classmethod
    def create_users(cls, count: int) -> List[User]:
        return [cls.create_random_user() for _ in range(count)]

    @classmethod
    def reset_counter(cls) -> None:
        cls._counter = 1


class RequestFactory:
    """Build :class:`RequestRecord` objects with consistent headers per method."""

    @staticmethod
    def create_get_request(
        endpoint: str, headers: Optional[Dict[str, str]] = None
    ) -> RequestRecord:
        return RequestRecord(endpoint=endpoint, method="GET", headers=dict(headers or {}))

    @staticmethod
    def create_post_request(
        endpoint: str, body: Any = None, headers: Optional[Dict[str, str]] = None
    ) -> RequestRecord:
        """POST with ``Content-Type: application/json`` unless the caller overrides it."""
        return RequestRecord(
            endpoint=endpoint, method="POST", headers={**JSON_HEADERS, **(headers or {})}, body=body
        )

    @staticmethod
    def create_put_request(
        endpoint: str, body: Any = None, headers: Optional[Dict[str, str]] = None
    ) -> RequestRecord:
        return RequestRecord(
            endpoint=endpoint, method="PUT", headers={**JSON_HEADERS, **(headers or {})}, body=body
        )

    @staticmethod
    def create_patch_request(
        endpoint: str, body: Any = None, headers: Optional[Dict[str, str]] = None
    ) -> RequestRecord:
        return RequestRecord(
            endpoint=endpoint,
            method="PATCH",
            headers={**JSON_HEADERS, **(headers or {})},
            body=body,
        )

    @staticmethod
    def create_delete_request(
        endpoint: str, headers: Optional[Dict[str, str]] = None
    ) -> RequestRecord:
        return RequestRecord(endpoint=endpoint, method="DELETE", headers=dict(headers or {}))

    @staticmethod
    def create_authenticated_request(
        method: str, endpoint: str, token: str, body: Any = None
    ) -> RequestRecord:
        """Any method, with JSON content type and a Bearer token."""
        return RequestRecord(
            endpoint=endpoint,
            method=method,
            headers={**JSON_HEADERS, "Authorization": f"Bearer {token}"},
            body=body,
        )
