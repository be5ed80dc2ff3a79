"""Fluent builder for User test data."""

from dataclasses import replace
from typing import Any, Dict, Optional

from .models import User

REQUIRED_FIELDS = ("first_name", "last_name", "email", "username", "age", "phone")


class UserBuilder:
    """
    Build :class:`User` objects step by step.

    Example:
        >>> user = (
        ...     UserBuilder()
        ...     .with_first_name("John")
        ...     .with_last_name("Doe")
        ...     .with_email("john@example.com")
        ...     .with_age(30)
        ...     .with_phone("+1-555-0000")
        ...     .with_username("johndoe")
        ...     .build_minimal()
        ... )
    """

    def __init__(self):
        self._user = User()

    def with_id(self, user_id: int) -> "UserBuilder":
        self._user.id = user_id
        return self

    def with_first_name(self, first_name: str) -> "UserBuilder":
        self._user.first_name = first_name
        return self

    def with_last_name(self, last_name: str) -> "UserBuilder":
        self._user.last_name = last_name
        return self

    def with_age(self, age: int) -> "UserBuilder":
        self._user.age = age
        return self

    def with_email(self, email: str) -> "UserBuilder":
        self._user.email = email
        return self

    def with_phone(self, phone: str) -> "UserBuilder":
        self._user.phone = phone
        return self

    def with_username(self, username: str) -> "UserBuilder":
        self._user.username = username
        return self

    def with_password(self, password: str) -> "UserBuilder":
        self._user.password = password
        return self

    def with_birth_date(self, birth_date: str) -> "UserBuilder":
        self._user.birth_date = birth_date
        return self

    def with_image(self, image: str) -> "UserBuilder":
        self._user.image = image
        return self

    def with_address(self, address: Optional[Dict[str, Any]]) -> "UserBuilder":
        self._user.address = address
        return self

    def with_company(self, company: Optional[Dict[str, Any]]) -> "UserBuilder":
        self._user.company = company
        return self

    def build_minimal(self) -> User:
        """
        Return the user after checking every required field is set.

        Raises:
            ValueError: Naming the first missing required field
        """
        for name in REQUIRED_FIELDS:
            value = getattr(self._user, name)
            if value is None or value == "":
                raise ValueError(f"{name} is required")
        return self.build()

    def build(self) -> User:
        """Return a copy of whatever has been set, without validation."""
        return replace(self._user)

    def reset(self) -> "UserBuilder":
        self._user = User()
        return self
