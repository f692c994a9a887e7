"""Service layer encapsulating owner-scoped task operations."""

from __future__ import annotations

import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import task_not_found, validation_failed
from ..models import Task
from ..repositories import TaskRepository
from ..schemas.task import TaskSearch, TaskUpdate
from ..schemas.user import UserPublic
from ..validation import normalize_optional_text, normalize_text, validate_task_fields
from .base import StoreService

logger = logging.getLogger(__name__)


class TaskService(StoreService):
    """High-level business orchestration for ``Task`` entities.

    Every operation takes the authenticated owner; a task owned by someone
    else behaves exactly like a task that does not exist.
    """

    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        super().__init__(session, timeout=timeout)
        self._repository = TaskRepository(session)

    @property
    def repository(self) -> TaskRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def _get_owned(self, owner: UserPublic, task_id: int) -> Task:
        task = await self._repository.get_for_owner(task_id, owner.id)
        if task is None:
            raise task_not_found(task_id)
        return task

    async def create_task(
        self,
        owner: UserPublic,
        title: str,
        description: str | None = None,
    ) -> Task:
        """Create a new, not-yet-done task for ``owner``."""
        title = normalize_text(title)
        description = normalize_optional_text(description)
        errors = validate_task_fields(title, description)
        if errors:
            raise validation_failed(errors)

        async with self._guard("create_task"):
            task = Task(title=title, description=description, is_done=False, user_id=owner.id)
            await self._repository.add(task)
            await self._session.commit()
            await self._repository.refresh(task)
        logger.info("Task created", extra={"task_id": task.id, "user_id": owner.id})
        return task

    async def get_task(self, owner: UserPublic, task_id: int) -> Task:
        async with self._guard("get_task"):
            return await self._get_owned(owner, task_id)

    async def update_task(self, owner: UserPublic, task_id: int, changes: TaskUpdate) -> Task:
        """Merge ``changes`` over the stored task and persist the result.

        Absent fields keep their stored value; the merged title and
        description are validated again before anything is written.
        """
        async with self._guard("update_task"):
            task = await self._get_owned(owner, task_id)
            title = changes.title if changes.title is not None else task.title
            description = (
                changes.description if changes.description is not None else task.description
            )
            is_done = changes.is_done if changes.is_done is not None else task.is_done

            errors = validate_task_fields(title, description)
            if errors:
                raise validation_failed(errors)

            task.title = title
            task.description = description
            task.is_done = is_done
            await self._session.commit()
            await self._repository.refresh(task)
        return task

    async def toggle_task(self, owner: UserPublic, task_id: int) -> Task:
        """Flip the completion flag of one of the owner's tasks."""
        async with self._guard("toggle_task"):
            task = await self._get_owned(owner, task_id)
            task.is_done = not task.is_done
            await self._session.commit()
            await self._repository.refresh(task)
        return task

    async def delete_task(self, owner: UserPublic, task_id: int) -> None:
        async with self._guard("delete_task"):
            task = await self._get_owned(owner, task_id)
            await self._repository.delete(task)
            await self._session.commit()
        logger.info("Task deleted", extra={"task_id": task_id, "user_id": owner.id})

    async def list_tasks(self, owner: UserPublic) -> list[Task]:
        """Return the owner's tasks in insertion order."""
        async with self._guard("list_tasks"):
            return await self._repository.list_for_owner(owner.id)

    async def search_tasks(self, owner: UserPublic, search: TaskSearch) -> list[Task]:
        """Filter the owner's tasks, then cut the requested page out of the result."""
        async with self._guard("search_tasks"):
            tasks = await self._repository.list_for_owner(owner.id)

        if search.is_done is not None:
            tasks = [task for task in tasks if task.is_done == search.is_done]
        if search.title_keyword:
            keyword = search.title_keyword.lower()
            tasks = [task for task in tasks if keyword in task.title.lower()]

        start = search.page * search.size
        if start >= len(tasks):
            return []
        end = min(start + search.size, len(tasks))
        return tasks[start:end]

    async def delete_tasks_by_status(self, owner: UserPublic, is_done: bool) -> int:
        """Delete every owner task with the given completion flag.

        Returns the number of tasks removed. All deletions share one commit.
        """
        async with self._guard("delete_tasks_by_status"):
            tasks = await self._repository.list_for_owner_by_status(owner.id, is_done)
            deleted = await self._repository.delete_all(tasks)
            await self._session.commit()
        logger.info(
            "Bulk deleted tasks",
            extra={"user_id": owner.id, "is_done": is_done, "deleted_count": deleted},
        )
        return deleted


__all__ = ["TaskService"]
