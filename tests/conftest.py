from __future__ import annotations

import os
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from itertools import count

# Must be in place before the application package reads its settings.
os.environ["TODO_ENVIRONMENT"] = "test"
os.environ["TODO_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from todo_app import models  # noqa: E402,F401
from todo_app.core.config import get_settings  # noqa: E402
from todo_app.deps import get_db_session  # noqa: E402
from todo_app.main import create_app  # noqa: E402
from todo_app.schemas import SignupRequest, UserPublic  # noqa: E402
from todo_app.services import AuthService  # noqa: E402

DEFAULT_PASSWORD = "secret1"
CSRF_PATTERN = re.compile(r'name="csrf_token" value="([^"]+)"')


@dataclass(slots=True)
class RegisteredUser:
    profile: UserPublic
    email: str
    password: str

    @property
    def id(self) -> int:
        return self.profile.id


def extract_csrf_token(html: str) -> str:
    match = CSRF_PATTERN.search(html)
    assert match is not None, "Expected a CSRF token in the rendered form"
    return match.group(1)


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine: AsyncEngine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture
async def app(session: AsyncSession) -> AsyncIterator[FastAPI]:
    get_settings.cache_clear()
    application = create_app()

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _override_db_session
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest_asyncio.fixture
async def register_user(session: AsyncSession) -> Callable[..., Awaitable[RegisteredUser]]:
    counter = count()

    async def _factory(
        *,
        email: str | None = None,
        nickname: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> RegisteredUser:
        index = next(counter)
        actual_email = email or f"user-{index}@example.com"
        actual_nickname = nickname or f"user_{index}"
        profile = await AuthService(session).signup(
            SignupRequest(
                email=actual_email,
                password=password,
                password_confirm=password,
                nickname=actual_nickname,
            )
        )
        return RegisteredUser(profile=profile, email=profile.email, password=password)

    return _factory


@pytest_asyncio.fixture
async def alice(register_user) -> RegisteredUser:
    return await register_user(email="alice@example.com", nickname="alice")


@pytest_asyncio.fixture
async def bob(register_user) -> RegisteredUser:
    return await register_user(email="bob@example.com", nickname="bob")


@pytest_asyncio.fixture
async def logged_in_client(client: AsyncClient, alice: RegisteredUser) -> AsyncClient:
    response = await client.post(
        "/api/auth/login",
        json={"email": alice.email, "password": alice.password},
    )
    assert response.status_code == 200, response.text
    return client
