"""Password hashing helpers."""

from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

from .config import get_settings


@lru_cache()
def get_password_context() -> CryptContext:
    """Return the shared bcrypt context configured from settings."""

    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.password_hash_rounds,
    )


def get_password_hash(password: str) -> str:
    """Return a salted one-way hash of ``password``."""

    return get_password_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hashed counterpart."""

    return get_password_context().verify(plain_password, hashed_password)


__all__ = [
    "get_password_context",
    "get_password_hash",
    "verify_password",
]
