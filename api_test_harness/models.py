"""Dataclasses for the user and auth payloads of the API under test.

The API speaks camelCase JSON; the dataclasses use snake_case attributes and
convert at the ``from_dict``/``to_dict`` boundary.
"""

import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to the API's camelCase key."""
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)


def to_snake(name: str) -> str:
    """Convert a camelCase API key to a snake_case attribute name."""
    return re.sub(r"([A-Z])", lambda m: "_" + m.group(1).lower(), name)


@dataclass
class User:
    """A user as sent to or returned by ``/users`` endpoints.

    Every field is optional so partially built users (see
    :class:`~api_test_harness.builders.UserBuilder`) can be represented;
    ``build_minimal`` enforces the required ones.
    """

    id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    birth_date: Optional[str] = None
    image: Optional[str] = None
    is_deleted: Optional[bool] = None
    deleted_on: Optional[str] = None
    blood_group: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    eye_color: Optional[str] = None
    hair: Optional[Dict[str, str]] = None
    domain: Optional[str] = None
    ip: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    mac_address: Optional[str] = None
    university: Optional[str] = None
    bank: Optional[Dict[str, str]] = None
    company: Optional[Dict[str, Any]] = None
    ein: Optional[str] = None
    ssn: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        """Create a User from API response data; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = to_snake(key)
            if name in known:
                values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an API payload with camelCase keys, omitting unset fields."""
        return {
            to_camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class LoginResponse:
    """Schema for the ``/auth/login`` response."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    access_token: str
    refresh_token: str
    gender: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginResponse":
        """Create instance from dictionary, validating structure."""
        try:
            return cls(
                id=data["id"],
                username=data["username"],
                email=data["email"],
                first_name=data["firstName"],
                last_name=data["lastName"],
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                gender=data.get("gender"),
                image=data.get("image"),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid LoginResponse structure: {e}")


@dataclass
class UsersListResponse:
    """Schema for the paginated ``/users`` list response."""

    users: List[User] = field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsersListResponse":
        """Create instance from dictionary, validating structure."""
        try:
            return cls(
                users=[User.from_dict(user) for user in data["users"]],
                total=data["total"],
                skip=data["skip"],
                limit=data["limit"],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid UsersListResponse structure: {e}")
