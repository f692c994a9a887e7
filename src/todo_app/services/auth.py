"""Authentication service encapsulating signup and credential checks."""

from __future__ import annotations

import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.security import get_password_context, verify_password
from ..errors import duplicate_email, duplicate_nickname, invalid_credentials, password_mismatch
from ..schemas.auth import SignupRequest
from ..schemas.user import UserPublic
from ..validation import normalize_email
from .users import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Signup and login workflows backed by :class:`UserService`."""

    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        self._session = session
        self._user_service = UserService(session, timeout=timeout)

    async def signup(self, request: SignupRequest) -> UserPublic:
        """Register a new account and return its public profile.

        Checks run in a fixed order: password confirmation, email
        uniqueness, then nickname uniqueness.
        """
        if request.password != request.password_confirm:
            raise password_mismatch()
        if await self._user_service.is_email_registered(request.email):
            raise duplicate_email(request.email)
        if await self._user_service.is_nickname_registered(request.nickname):
            raise duplicate_nickname(request.nickname)

        user = await self._user_service.create_user(
            email=request.email,
            password=request.password,
            nickname=request.nickname,
        )
        logger.info("User registered", extra={"user_id": user.id})
        return UserPublic.model_validate(user)

    async def login(self, email: str, password: str) -> UserPublic:
        """Verify credentials; unknown email and wrong password fail identically."""
        user = await self._user_service.find_by_email(normalize_email(email))
        if user is None:
            # keep response timing close to the wrong-password path
            get_password_context().dummy_verify()
            raise invalid_credentials()
        if not verify_password(password, user.password_hash):
            raise invalid_credentials()
        return UserPublic.model_validate(user)


__all__ = ["AuthService"]
