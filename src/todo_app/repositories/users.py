"""Lookups and uniqueness checks over ``User`` rows."""

from __future__ import annotations

from sqlmodel import select

from ..models import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        """Return a user matching the supplied (normalized) email if it exists."""
        return await self._first(select(User).where(User.email == email))

    async def exists_by_email(self, email: str) -> bool:
        return await self._exists(User.email == email)

    async def exists_by_nickname(self, nickname: str) -> bool:
        return await self._exists(User.nickname == nickname)
