"""User-facing Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserPublic(BaseModel):
    """Public profile of a user; also the typed current-user value."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    email: str
    nickname: str


__all__ = ["UserPublic"]
