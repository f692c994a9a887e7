"""Per-request state shared with loggers and error handlers.

The middleware binds one mutable :class:`RequestContext` for each request.
Dependencies that resolve the session user record the user's id on it, so
log lines emitted anywhere downstream (and the access line emitted by the
middleware itself) can say who made the request.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST = "-"


@dataclass(slots=True)
class RequestContext:
    request_id: str
    user_id: int | None = None


_current: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_request_id() -> str:
    context = _current.get()
    return context.request_id if context is not None else NO_REQUEST


def get_user_id() -> int | None:
    context = _current.get()
    return context.user_id if context is not None else None


def bind_context(context: RequestContext) -> Token[RequestContext | None]:
    """Make ``context`` current until the returned token is reset."""

    return _current.set(context)


def reset_context(token: Token[RequestContext | None]) -> None:
    _current.reset(token)


def record_user(user_id: int | None) -> None:
    """Note the authenticated user on the current request, if there is one."""

    context = _current.get()
    if context is not None:
        context.user_id = user_id


__all__ = [
    "NO_REQUEST",
    "REQUEST_ID_HEADER",
    "RequestContext",
    "bind_context",
    "get_request_id",
    "get_user_id",
    "record_user",
    "reset_context",
]
