"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.context import record_user
from .core.session import get_session_user_id, logout_user
from .db.session import get_session
from .errors import ApplicationError, ErrorKind, authentication_required
from .schemas.user import UserPublic
from .services import UserService


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async for session in get_session():
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


async def get_session_user(
    request: Request,
    session: DatabaseSessionDependency,
) -> UserPublic | None:
    """Resolve the session's user id into a typed user, or ``None``.

    A stale id (the account no longer exists) is dropped from the session.
    """

    user_id = get_session_user_id(request.session)
    if user_id is None:
        return None
    try:
        user = await UserService(session).get_user(user_id)
    except ApplicationError as exc:
        if exc.kind is not ErrorKind.RESOURCE_NOT_FOUND:
            raise
        logout_user(request.session)
        return None
    record_user(user.id)
    return UserPublic.model_validate(user)


SessionUserDependency = Annotated[UserPublic | None, Depends(get_session_user)]


async def require_session_user(request: Request, user: SessionUserDependency) -> UserPublic:
    """HTML guard: send anonymous visitors to the login page."""

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Login required.",
            headers={"Location": str(request.url_for("auth:login"))},
        )
    return user


async def require_api_user(user: SessionUserDependency) -> UserPublic:
    """JSON guard: anonymous callers get a 401 error envelope."""

    if user is None:
        raise authentication_required()
    return user


AuthenticatedSessionUserDependency = Annotated[UserPublic, Depends(require_session_user)]
ApiUserDependency = Annotated[UserPublic, Depends(require_api_user)]


__all__ = [
    "ApiUserDependency",
    "AuthenticatedSessionUserDependency",
    "DatabaseSessionDependency",
    "SessionUserDependency",
    "get_db_session",
    "get_session_user",
    "require_api_user",
    "require_session_user",
]
