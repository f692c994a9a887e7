"""User account model built with SQLModel."""

from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

EMAIL_MAX_LENGTH = 100
NICKNAME_MAX_LENGTH = 20


class User(SQLModel, table=True):
    """Registered account; owns zero or more tasks."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(
        max_length=EMAIL_MAX_LENGTH,
        sa_column=sa.Column(
            sa.String(length=EMAIL_MAX_LENGTH),
            nullable=False,
            unique=True,
        ),
    )
    password_hash: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    nickname: str = Field(
        max_length=NICKNAME_MAX_LENGTH,
        sa_column=sa.Column(
            sa.String(length=NICKNAME_MAX_LENGTH),
            nullable=False,
            unique=True,
        ),
    )


__all__ = ["EMAIL_MAX_LENGTH", "NICKNAME_MAX_LENGTH", "User"]
