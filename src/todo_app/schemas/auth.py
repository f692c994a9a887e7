"""Schemas describing authentication payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

from ..validation import (
    check_email_length,
    check_nickname,
    check_password,
    normalize_email,
    normalize_text,
)


class SignupRequest(BaseModel):
    """Incoming payload for registering a new user.

    Password confirmation is compared by the auth service so that a mismatch
    is reported before any uniqueness check.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "email": "user@example.com",
                "password": "secret1",
                "passwordConfirm": "secret1",
                "nickname": "todo_user",
            }
        },
    )

    email: EmailStr
    password: str
    password_confirm: str
    nickname: str

    @field_validator("email", mode="before")
    @classmethod
    def _normalise_email(cls, value: object) -> object:
        return normalize_email(value)

    @field_validator("email")
    @classmethod
    def _limit_email(cls, value: str) -> str:
        return check_email_length(value.lower())

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        return check_password(value)

    @field_validator("password_confirm")
    @classmethod
    def _require_password_confirm(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Password confirmation is required.")
        return value

    @field_validator("nickname", mode="before")
    @classmethod
    def _trim_nickname(cls, value: object) -> object:
        return normalize_text(value)

    @field_validator("nickname")
    @classmethod
    def _validate_nickname(cls, value: str) -> str:
        return check_nickname(value)


class LoginRequest(BaseModel):
    """Credentials submitted to establish a session."""

    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def _normalise_email(cls, value: object) -> object:
        return normalize_email(value)

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def _require_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required.")
        return value


__all__ = ["LoginRequest", "SignupRequest"]
