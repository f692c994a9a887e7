"""Shared plumbing for the SQLModel repositories.

Repositories only flush; committing is left to the service that owns the
unit of work, so a failed multi-row change can still be rolled back whole.
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, Iterable, TypeVar

import sqlalchemy as sa
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    model: ClassVar[type[SQLModel]]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, entity_id: int) -> ModelType | None:
        return await self.session.get(self.model, entity_id)  # type: ignore[return-value]

    async def add(self, instance: ModelType) -> ModelType:
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self.delete_all((instance,))

    async def delete_all(self, instances: Iterable[ModelType]) -> int:
        """Mark every instance for deletion and flush once; return how many."""
        count = 0
        for instance in instances:
            await self.session.delete(instance)
            count += 1
        if count:
            await self.session.flush()
        return count

    async def refresh(self, instance: ModelType) -> ModelType:
        await self.session.refresh(instance)
        return instance

    async def _first(self, statement: Any) -> ModelType | None:
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def _all(self, statement: Any) -> list[ModelType]:
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def _exists(self, *criteria: Any) -> bool:
        result = await self.session.execute(sa.select(sa.exists().where(*criteria)))
        return bool(result.scalar())
