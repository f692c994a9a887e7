"""Signed-cookie session state: who is signed in, the form token, flashes.

Only the user's id is kept in the cookie. Signing in or out also updates the
request context so log lines emitted later in the same request carry the
right user.
"""

from __future__ import annotations

import secrets
from typing import Any, Literal, MutableMapping, TypedDict

from .context import record_user

Session = MutableMapping[str, Any]
FlashCategory = Literal["success", "info", "error"]

USER_KEY = "user_id"
CSRF_KEY = "csrf_token"
FLASH_KEY = "flash_messages"

_FLASH_CATEGORIES: frozenset[str] = frozenset({"success", "info", "error"})


class FlashMessage(TypedDict):
    category: FlashCategory
    message: str


def get_session_user_id(session: Session) -> int | None:
    """Return the signed-in user's id, ignoring anything that is not a valid id."""

    raw = session.get(USER_KEY)
    if isinstance(raw, bool):
        return None
    try:
        user_id = int(raw)
    except (TypeError, ValueError):
        return None
    return user_id if user_id > 0 else None


def login_user(session: Session, user_id: int) -> None:
    # a new identity never inherits the previous form token or flashes
    session.pop(CSRF_KEY, None)
    session.pop(FLASH_KEY, None)
    session[USER_KEY] = int(user_id)
    record_user(int(user_id))


def logout_user(session: Session) -> None:
    for key in (USER_KEY, CSRF_KEY, FLASH_KEY):
        session.pop(key, None)
    record_user(None)


def ensure_csrf_token(session: Session) -> str:
    """Return the session's form token, issuing one on first use."""

    token = session.get(CSRF_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_KEY] = token
    return token


def validate_csrf_token(session: Session, submitted: object) -> bool:
    expected = session.get(CSRF_KEY)
    if not isinstance(expected, str) or not isinstance(submitted, str) or not submitted:
        return False
    return secrets.compare_digest(expected, submitted)


def add_flash_message(session: Session, category: FlashCategory, message: str) -> None:
    queued = session.get(FLASH_KEY)
    if not isinstance(queued, list):
        queued = []
    queued.append({"category": category, "message": message})
    session[FLASH_KEY] = queued


def pop_flash_messages(session: Session) -> list[FlashMessage]:
    """Drain queued flash messages, skipping malformed entries."""

    queued = session.pop(FLASH_KEY, None)
    if not isinstance(queued, list):
        return []
    messages: list[FlashMessage] = []
    for item in queued:
        if not isinstance(item, dict) or not item.get("message"):
            continue
        category = item.get("category")
        if category not in _FLASH_CATEGORIES:
            category = "info"
        messages.append({"category": category, "message": str(item["message"])})
    return messages


__all__ = [
    "CSRF_KEY",
    "FLASH_KEY",
    "FlashCategory",
    "FlashMessage",
    "USER_KEY",
    "add_flash_message",
    "ensure_csrf_token",
    "get_session_user_id",
    "login_user",
    "logout_user",
    "pop_flash_messages",
    "validate_csrf_token",
]
