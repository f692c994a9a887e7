"""Service layer orchestrating user-related repository operations."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.security import get_password_hash
from ..errors import duplicate_email, duplicate_nickname, user_not_found
from ..models import User
from ..repositories import UserRepository
from ..validation import normalize_email, normalize_text
from .base import StoreService


class UserService(StoreService):
    """High-level business operations for ``User`` entities."""

    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        super().__init__(session, timeout=timeout)
        self._repository = UserRepository(session)

    @property
    def repository(self) -> UserRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def get_user(self, user_id: int) -> User:
        """Fetch a user by primary key or raise ``user_not_found``."""
        async with self._guard("get_user"):
            user = await self._repository.get(user_id)
        if user is None:
            raise user_not_found(user_id)
        return user

    async def find_by_email(self, email: str) -> User | None:
        async with self._guard("find_by_email"):
            return await self._repository.get_by_email(normalize_email(email))

    async def is_email_registered(self, email: str) -> bool:
        async with self._guard("is_email_registered"):
            return await self._repository.exists_by_email(normalize_email(email))

    async def is_nickname_registered(self, nickname: str) -> bool:
        async with self._guard("is_nickname_registered"):
            return await self._repository.exists_by_nickname(normalize_text(nickname))

    async def create_user(self, *, email: str, password: str, nickname: str) -> User:
        """Hash the password and persist a new user record.

        A unique-constraint violation from a concurrent signup is reported as
        the matching duplicate error.
        """
        email = normalize_email(email)
        nickname = normalize_text(nickname)
        user = User(email=email, nickname=nickname, password_hash=get_password_hash(password))
        async with self._guard("create_user"):
            try:
                await self._repository.add(user)
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                if await self._repository.exists_by_email(email):
                    raise duplicate_email(email) from None
                raise duplicate_nickname(nickname) from None
            await self._repository.refresh(user)
        return user


__all__ = ["UserService"]
