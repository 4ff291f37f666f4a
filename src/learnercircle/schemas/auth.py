"""Request bodies for the auth and user endpoints.

Learn: Pydantic does the field-level validation; main.py turns its errors
into a 400 with one {field, message} entry per problem, which is the shape
the login form renders next to each input.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from learnercircle.auth.roles import Role

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email")
    return value


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip().lower()


class _NewUser(BaseModel):
    email: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    timezone: Optional[str] = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def empty_phone_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RegisterRequest(_NewUser):
    password: str = Field(min_length=6)
    role: Role = Role.STUDENT


class CreateAdminRequest(_NewUser):
    password: str = Field(min_length=8)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)
    profile_data: Optional[dict[str, Any]] = None

    @field_validator("first_name", "last_name", "timezone", "profile_data")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        # Omit a field to leave it alone; only phone can be cleared with null.
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class UserStatusUpdate(BaseModel):
    is_active: bool
