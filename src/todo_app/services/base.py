"""Shared plumbing for services that talk to the data store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import get_settings
from ..errors import (
    ApplicationError,
    database_error,
    duplicate_resource,
    internal_error,
    store_timeout,
)

logger = logging.getLogger(__name__)


class StoreService:
    """Base class wrapping store access in a bounded, typed-error guard."""

    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        self._session = session
        self._timeout = timeout if timeout is not None else get_settings().db_timeout_seconds

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback failed after store error", exc_info=True)

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        """Bound the wait on the store and translate its failures.

        ``ApplicationError`` raised inside the block propagates unchanged.
        Everything else is rolled back and re-raised as a typed error.
        """

        try:
            async with asyncio.timeout(self._timeout):
                yield
        except ApplicationError:
            raise
        except TimeoutError as exc:
            await self._rollback()
            raise store_timeout(action) from exc
        except IntegrityError as exc:
            await self._rollback()
            raise duplicate_resource(
                f"The {action} request conflicts with existing data.",
                code="integrity_conflict",
            ) from exc
        except SQLAlchemyError as exc:
            await self._rollback()
            raise database_error(f"Database operation failed during {action}.") from exc
        except Exception as exc:
            await self._rollback()
            raise internal_error(f"Unexpected failure during {action}.") from exc


__all__ = ["StoreService"]
