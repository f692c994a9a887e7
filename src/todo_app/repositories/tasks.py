"""Owner-scoped queries over ``Task`` rows."""

from __future__ import annotations

from sqlmodel import select

from ..models import Task
from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Every lookup here is filtered by the owning user's id."""

    model = Task

    async def list_for_owner(self, user_id: int) -> list[Task]:
        """Return the owner's tasks in insertion order."""
        return await self._all(select(Task).where(Task.user_id == user_id).order_by(Task.id))

    async def get_for_owner(self, task_id: int, user_id: int) -> Task | None:
        """Retrieve a task by ID only if it belongs to the given owner."""
        return await self._first(select(Task).where(Task.id == task_id, Task.user_id == user_id))

    async def list_for_owner_by_status(self, user_id: int, is_done: bool) -> list[Task]:
        return await self._all(
            select(Task)
            .where(Task.user_id == user_id, Task.is_done == is_done)
            .order_by(Task.id)
        )
