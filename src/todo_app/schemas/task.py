"""Task-related Pydantic schemas."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..validation import (
    KEYWORD_MAX_LENGTH,
    check_description,
    check_title,
    normalize_optional_text,
)

TASK_READ_EXAMPLE = {
    "id": 1,
    "title": "Buy milk",
    "description": "2 liters",
    "isDone": False,
}

_UPDATE_KEYS = ("title", "description", "isDone", "is_done")

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskCreate(BaseModel):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"title": "Buy milk", "description": "2 liters"}},
    )

    title: str
    description: str | None = Field(default=None)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str) -> str:
        return check_title(value)

    @field_validator("description", mode="before")
    @classmethod
    def _normalise_description(cls, value: object) -> object:
        return normalize_optional_text(value)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: str | None) -> str | None:
        return check_description(value)


class TaskUpdate(BaseModel):
    """Payload for partially updating an existing task.

    Absent (or ``null``) fields keep their stored value. A blank description
    still counts as provided but leaves the stored description untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"isDone": True}},
    )

    title: str | None = Field(default=None)
    description: str | None = Field(default=None)
    is_done: bool | None = Field(default=None)

    @field_validator("title")
    @classmethod
    def _validate_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return check_title(value)

    @field_validator("description", mode="before")
    @classmethod
    def _normalise_description(cls, value: object) -> object:
        return normalize_optional_text(value)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: str | None) -> str | None:
        return check_description(value)

    @model_validator(mode="before")
    @classmethod
    def _ensure_payload_not_empty(cls, data: Any) -> Any:
        # presence is judged on the raw payload, before blanks collapse to None
        if isinstance(data, Mapping) and all(data.get(key) is None for key in _UPDATE_KEYS):
            raise ValueError("At least one field must be provided for update.")
        return data


class TaskRead(BaseModel):
    """Public representation of a task."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={"example": TASK_READ_EXAMPLE},
    )

    id: int
    title: str
    description: str | None = None
    is_done: bool


class TaskSearch(BaseModel):
    """Filter and offset window for searching the caller's tasks."""

    model_config = _CAMEL_CONFIG

    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1, le=100)
    is_done: bool | None = Field(default=None)
    title_keyword: str | None = Field(default=None)

    @field_validator("title_keyword", mode="before")
    @classmethod
    def _normalise_keyword(cls, value: object) -> object:
        return normalize_optional_text(value)

    @field_validator("title_keyword")
    @classmethod
    def _limit_keyword(cls, value: str | None) -> str | None:
        if value is not None and len(value) > KEYWORD_MAX_LENGTH:
            raise ValueError(f"Keyword must be at most {KEYWORD_MAX_LENGTH} characters.")
        return value


class BulkDeleteResponse(BaseModel):
    """Outcome of deleting the caller's tasks by completion state."""

    model_config = _CAMEL_CONFIG

    deleted_count: int = Field(ge=0)
    message: str


__all__ = [
    "BulkDeleteResponse",
    "TaskCreate",
    "TaskRead",
    "TaskSearch",
    "TaskUpdate",
]
