"""Routes handling owner-scoped task operations."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ...deps import ApiUserDependency, DatabaseSessionDependency
from ...errors import ApplicationError, validation_failed
from ...schemas import BulkDeleteResponse, TaskCreate, TaskRead, TaskSearch, TaskUpdate
from ...services import TaskService
from ...validation import field_errors_from

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

TaskIdPath = Annotated[int, Path(gt=0, description="Identifier of one of the caller's tasks.")]
PageQuery = Annotated[int, Query(ge=0, description="Zero-based page index.")]
SizeQuery = Annotated[int, Query(ge=1, le=100, description="Number of tasks per page.")]
IsDoneFilterQuery = Annotated[
    bool | None,
    Query(alias="isDone", description="Only return tasks with this completion flag."),
]
KeywordQuery = Annotated[
    str | None,
    Query(alias="titleKeyword", description="Case-insensitive title substring."),
]
IsDoneRequiredQuery = Annotated[
    bool,
    Query(alias="isDone", description="Completion flag of the tasks to delete."),
]


def _degraded_read(action: str, exc: ApplicationError) -> JSONResponse:
    logger.error(
        "Serving empty task list after system error",
        exc_info=exc,
        extra={"action": action, "code": exc.code},
    )
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=[])


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task for the current user",
)
async def create_task(
    payload: TaskCreate,
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> TaskRead:
    service = TaskService(session)
    task = await service.create_task(current_user, payload.title, payload.description)
    return TaskRead.model_validate(task)


@router.get("", response_model=list[TaskRead], summary="List the current user's tasks")
async def list_tasks(
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> list[TaskRead] | JSONResponse:
    service = TaskService(session)
    try:
        tasks = await service.list_tasks(current_user)
    except ApplicationError as exc:
        if exc.is_user_error:
            raise
        return _degraded_read("list_tasks", exc)
    return [TaskRead.model_validate(task) for task in tasks]


@router.get("/search", response_model=list[TaskRead], summary="Filter and page the current user's tasks")
async def search_tasks(
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
    page: PageQuery = 0,
    size: SizeQuery = 10,
    is_done: IsDoneFilterQuery = None,
    title_keyword: KeywordQuery = None,
) -> list[TaskRead] | JSONResponse:
    try:
        search = TaskSearch(page=page, size=size, is_done=is_done, title_keyword=title_keyword)
    except ValidationError as exc:
        raise validation_failed(field_errors_from(exc.errors())) from exc

    service = TaskService(session)
    try:
        tasks = await service.search_tasks(current_user, search)
    except ApplicationError as exc:
        if exc.is_user_error:
            raise
        return _degraded_read("search_tasks", exc)
    return [TaskRead.model_validate(task) for task in tasks]


@router.delete(
    "/bulk",
    response_model=BulkDeleteResponse,
    summary="Delete all of the current user's tasks with a given completion flag",
)
async def delete_tasks_by_status(
    is_done: IsDoneRequiredQuery,
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> BulkDeleteResponse:
    service = TaskService(session)
    deleted = await service.delete_tasks_by_status(current_user, is_done)
    label = "completed" if is_done else "open"
    return BulkDeleteResponse(
        deleted_count=deleted,
        message=f"Deleted {deleted} {label} task(s).",
    )


@router.get("/{task_id}", response_model=TaskRead, summary="Fetch one of the current user's tasks")
async def get_task(
    task_id: TaskIdPath,
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> TaskRead:
    service = TaskService(session)
    task = await service.get_task(current_user, task_id)
    return TaskRead.model_validate(task)


@router.put("/{task_id}", response_model=TaskRead, summary="Partially update a task")
async def update_task(
    task_id: TaskIdPath,
    payload: TaskUpdate,
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> TaskRead:
    service = TaskService(session)
    task = await service.update_task(current_user, task_id, payload)
    return TaskRead.model_validate(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a task",
)
async def delete_task(
    task_id: TaskIdPath,
    session: DatabaseSessionDependency,
    current_user: ApiUserDependency,
) -> Response:
    service = TaskService(session)
    await service.delete_task(current_user, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
