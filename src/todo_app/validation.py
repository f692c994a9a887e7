"""Normalization and field rules shared by schemas and services."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from pydantic_core import PydanticCustomError

from .models.task import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from .models.user import EMAIL_MAX_LENGTH, NICKNAME_MAX_LENGTH

NICKNAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 50
KEYWORD_MAX_LENGTH = 100

NICKNAME_PATTERN = re.compile(r"^[가-힣a-zA-Z0-9_-]+$")

# Request sections FastAPI prefixes onto error locations.
_LOCATION_SECTIONS = frozenset({"body", "query", "path", "form", "header", "cookie"})


def normalize_text(value: Any) -> Any:
    """Trim surrounding whitespace from strings; pass other values through."""
    if isinstance(value, str):
        return value.strip()
    return value


def normalize_optional_text(value: Any) -> Any:
    """Trim strings and collapse blank ones to ``None``."""
    value = normalize_text(value)
    if value == "":
        return None
    return value


def normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def title_problem(title: str | None) -> str | None:
    if title is None or not title.strip():
        return "Title must not be blank."
    if len(title.strip()) > TITLE_MAX_LENGTH:
        return f"Title must be at most {TITLE_MAX_LENGTH} characters."
    return None


def description_problem(description: str | None) -> str | None:
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        return f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters."
    return None


def check_title(value: str) -> str:
    problem = title_problem(value)
    if problem:
        raise PydanticCustomError("title_invalid", problem)
    return value.strip()


def check_description(value: str | None) -> str | None:
    problem = description_problem(value)
    if problem:
        raise PydanticCustomError("description_too_long", problem)
    return value


def check_email_length(value: str) -> str:
    if len(value) > EMAIL_MAX_LENGTH:
        raise PydanticCustomError(
            "email_too_long",
            "Email must be at most {max_length} characters.",
            {"max_length": EMAIL_MAX_LENGTH},
        )
    return value


def check_password(value: str) -> str:
    if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
        raise PydanticCustomError(
            "password_length",
            "Password must be between {min_length} and {max_length} characters.",
            {"min_length": PASSWORD_MIN_LENGTH, "max_length": PASSWORD_MAX_LENGTH},
        )
    return value


def check_nickname(value: str) -> str:
    value = value.strip()
    if not NICKNAME_MIN_LENGTH <= len(value) <= NICKNAME_MAX_LENGTH:
        raise PydanticCustomError(
            "nickname_length",
            "Nickname must be between {min_length} and {max_length} characters.",
            {"min_length": NICKNAME_MIN_LENGTH, "max_length": NICKNAME_MAX_LENGTH},
        )
    if not NICKNAME_PATTERN.fullmatch(value):
        raise PydanticCustomError(
            "nickname_pattern",
            "Nickname may only contain letters, digits, '_' and '-'.",
        )
    return value


def validate_task_fields(title: str | None, description: str | None) -> dict[str, str]:
    """Return the field errors for an effective title/description pair.

    An empty mapping means the pair is acceptable. Used after a partial update
    has been merged with the stored values.
    """

    errors: dict[str, str] = {}
    problem = title_problem(title)
    if problem:
        errors["title"] = problem
    problem = description_problem(description)
    if problem:
        errors["description"] = problem
    return errors


def field_errors_from(errors: Iterable[Mapping[str, Any]]) -> dict[str, str]:
    """Collapse a pydantic error list into ``{field: message}``.

    The first message per field wins; model-level errors land under
    ``"request"``.
    """

    field_errors: dict[str, str] = {}
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_SECTIONS:
            location = location[1:]
        key = ".".join(location) or "request"
        field_errors.setdefault(key, str(error.get("msg", "Invalid value.")))
    return field_errors


__all__ = [
    "KEYWORD_MAX_LENGTH",
    "NICKNAME_MIN_LENGTH",
    "NICKNAME_PATTERN",
    "PASSWORD_MAX_LENGTH",
    "PASSWORD_MIN_LENGTH",
    "check_description",
    "check_email_length",
    "check_nickname",
    "check_password",
    "check_title",
    "description_problem",
    "field_errors_from",
    "normalize_email",
    "normalize_optional_text",
    "normalize_text",
    "title_problem",
    "validate_task_fields",
]
