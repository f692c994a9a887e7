from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel.ext.asyncio.session import AsyncSession

from todo_app.errors import ApplicationError, ErrorKind
from todo_app.models import Task
from todo_app.schemas import TaskSearch, TaskUpdate
from todo_app.services import TaskService

pytestmark = pytest.mark.asyncio


async def test_create_then_get_round_trip(session: AsyncSession, alice) -> None:
    service = TaskService(session)

    created = await service.create_task(alice.profile, "  Buy milk ", "  ")

    assert created.id is not None
    assert created.title == "Buy milk"
    assert created.description is None
    assert created.is_done is False
    assert created.user_id == alice.id

    fetched = await service.get_task(alice.profile, created.id)
    assert (fetched.id, fetched.title, fetched.description, fetched.is_done) == (
        created.id,
        "Buy milk",
        None,
        False,
    )


async def test_create_rejects_blank_title(session: AsyncSession, alice) -> None:
    service = TaskService(session)
    with pytest.raises(ApplicationError) as exc_info:
        await service.create_task(alice.profile, "   ")
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert "title" in (exc_info.value.field_errors or {})
    assert await service.list_tasks(alice.profile) == []


async def test_other_owners_tasks_look_missing(session: AsyncSession, alice, bob) -> None:
    service = TaskService(session)
    task = await service.create_task(bob.profile, "Bob's secret")

    for operation in (
        service.get_task(alice.profile, task.id),
        service.update_task(alice.profile, task.id, TaskUpdate(is_done=True)),
        service.delete_task(alice.profile, task.id),
        service.toggle_task(alice.profile, task.id),
    ):
        with pytest.raises(ApplicationError) as exc_info:
            await operation
        assert exc_info.value.kind is ErrorKind.RESOURCE_NOT_FOUND
        assert exc_info.value.code == "task_not_found"

    untouched = await service.get_task(bob.profile, task.id)
    assert untouched.is_done is False


async def test_completion_only_update_preserves_other_fields(session: AsyncSession, alice) -> None:
    service = TaskService(session)
    task = await service.create_task(alice.profile, "Buy milk", "2 liters")

    updated = await service.update_task(alice.profile, task.id, TaskUpdate(is_done=True))

    assert updated.id == task.id
    assert updated.user_id == alice.id
    assert (updated.title, updated.description, updated.is_done) == ("Buy milk", "2 liters", True)


async def test_update_revalidates_merged_values(session: AsyncSession, alice) -> None:
    # a stored title longer than allowed must not survive an unrelated update
    legacy = Task(title="x" * 250, user_id=alice.id)
    session.add(legacy)
    await session.commit()
    await session.refresh(legacy)

    service = TaskService(session)
    with pytest.raises(ApplicationError) as exc_info:
        await service.update_task(alice.profile, legacy.id, TaskUpdate(is_done=True))
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert set(exc_info.value.field_errors or {}) == {"title"}

    fixed = await service.update_task(
        alice.profile, legacy.id, TaskUpdate(title="Short again", is_done=True)
    )
    assert fixed.title == "Short again"
    assert fixed.is_done is True


async def test_toggle_twice_restores_original_state(session: AsyncSession, alice) -> None:
    service = TaskService(session)
    task = await service.create_task(alice.profile, "Water plants")

    first = await service.toggle_task(alice.profile, task.id)
    assert first.is_done is True
    second = await service.toggle_task(alice.profile, task.id)
    assert second.is_done is False


async def test_list_tasks_is_owner_scoped_in_insertion_order(
    session: AsyncSession, alice, bob
) -> None:
    service = TaskService(session)
    for title in ("one", "two", "three"):
        await service.create_task(alice.profile, title)
    await service.create_task(bob.profile, "not yours")

    titles = [task.title for task in await service.list_tasks(alice.profile)]
    assert titles == ["one", "two", "three"]


async def test_search_pages_concatenate_to_filtered_list(session: AsyncSession, alice) -> None:
    service = TaskService(session)
    for index in range(25):
        task = await service.create_task(alice.profile, f"Task {index}")
        if index % 2 == 0:
            await service.toggle_task(alice.profile, task.id)

    search_pages = []
    for page in range(4):
        search_pages.append(
            await service.search_tasks(alice.profile, TaskSearch(page=page, size=10))
        )
    assert [len(page) for page in search_pages] == [10, 10, 5, 0]
    concatenated = [task.id for page in search_pages for task in page]
    assert concatenated == [task.id for task in await service.list_tasks(alice.profile)]

    done = await service.search_tasks(alice.profile, TaskSearch(is_done=True, size=100))
    assert len(done) == 13
    assert all(task.is_done for task in done)


async def test_search_keyword_is_case_insensitive(session: AsyncSession, alice, bob) -> None:
    service = TaskService(session)
    await service.create_task(alice.profile, "Buy MILK")
    await service.create_task(alice.profile, "Buy bread")
    await service.create_task(bob.profile, "milk for bob")

    found = await service.search_tasks(alice.profile, TaskSearch(title_keyword="  milk "))
    assert [task.title for task in found] == ["Buy MILK"]


async def test_bulk_delete_removes_exactly_matching_owner_tasks(
    session: AsyncSession, alice, bob
) -> None:
    service = TaskService(session)
    keep = await service.create_task(alice.profile, "still open")
    for title in ("done 1", "done 2"):
        task = await service.create_task(alice.profile, title)
        await service.toggle_task(alice.profile, task.id)
    bobs = await service.create_task(bob.profile, "bob done")
    await service.toggle_task(bob.profile, bobs.id)

    deleted = await service.delete_tasks_by_status(alice.profile, True)

    assert deleted == 2
    assert [task.id for task in await service.list_tasks(alice.profile)] == [keep.id]
    assert len(await service.list_tasks(bob.profile)) == 1
    assert await service.delete_tasks_by_status(alice.profile, True) == 0


async def test_delete_then_get_is_not_found(session: AsyncSession, alice) -> None:
    service = TaskService(session)
    task = await service.create_task(alice.profile, "temporary")
    await service.delete_task(alice.profile, task.id)

    with pytest.raises(ApplicationError) as exc_info:
        await service.get_task(alice.profile, task.id)
    assert exc_info.value.status_code == 404


async def test_store_timeout_is_reported(session: AsyncSession, alice, monkeypatch) -> None:
    service = TaskService(session, timeout=0.01)

    async def _slow(user_id: int) -> list[Task]:
        await asyncio.sleep(1)
        return []

    monkeypatch.setattr(service.repository, "list_for_owner", _slow)

    with pytest.raises(ApplicationError) as exc_info:
        await service.list_tasks(alice.profile)
    assert exc_info.value.kind is ErrorKind.TIMEOUT
    assert exc_info.value.is_user_error is False


async def test_store_failures_are_wrapped(session: AsyncSession, alice, monkeypatch) -> None:
    service = TaskService(session)

    async def _broken(user_id: int) -> list[Task]:
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(service.repository, "list_for_owner", _broken)
    with pytest.raises(ApplicationError) as exc_info:
        await service.list_tasks(alice.profile)
    assert exc_info.value.kind is ErrorKind.DATABASE
    assert exc_info.value.status_code == 500

    async def _buggy(user_id: int) -> list[Task]:
        raise RuntimeError("unexpected")

    monkeypatch.setattr(service.repository, "list_for_owner", _buggy)
    with pytest.raises(ApplicationError) as exc_info:
        await service.list_tasks(alice.profile)
    assert exc_info.value.kind is ErrorKind.INTERNAL
