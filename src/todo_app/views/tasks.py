from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Path, Request, status
from pydantic import ValidationError
from starlette.responses import RedirectResponse

from ..core.session import add_flash_message, validate_csrf_token
from ..core.templates import template_response
from ..deps import AuthenticatedSessionUserDependency, DatabaseSessionDependency
from ..errors import ApplicationError
from ..schemas import TaskCreate
from ..services import TaskService
from ..validation import field_errors_from

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks-web"])

TaskIdPath = Annotated[int, Path(gt=0)]


def _clean_text(raw: object) -> str:
    return str(raw or "").strip()


def _redirect_to_list(request: Request) -> RedirectResponse:
    return RedirectResponse(request.url_for("tasks:list"), status_code=status.HTTP_303_SEE_OTHER)


def _form_expired(request: Request) -> RedirectResponse:
    add_flash_message(request.session, "error", "The form has expired. Please try again.")
    return _redirect_to_list(request)


@router.get("/", name="tasks:list")
async def list_page(
    request: Request,
    current_user: AuthenticatedSessionUserDependency,
    session: DatabaseSessionDependency,
) -> object:
    """Render the authenticated user's tasks."""

    service = TaskService(session)
    errors: dict[str, str] = {}
    try:
        tasks = await service.list_tasks(current_user)
    except ApplicationError as exc:
        if exc.is_user_error:
            raise
        logger.error("Rendering empty task list after system error", exc_info=exc)
        tasks = []
        errors["system"] = "Your tasks could not be loaded right now. Please try again later."
    return template_response(
        request,
        "tasks/list.html",
        {
            "title": "My tasks",
            "tasks": tasks,
            "errors": errors,
            "current_user": current_user,
        },
    )


@router.get("/create", name="tasks:create")
async def create_form(request: Request, current_user: AuthenticatedSessionUserDependency) -> object:
    return template_response(
        request,
        "tasks/create.html",
        {
            "title": "New task",
            "form": {"title": "", "description": ""},
            "current_user": current_user,
        },
    )


@router.post("/create", name="tasks:create:submit")
async def create_submit(
    request: Request,
    current_user: AuthenticatedSessionUserDependency,
    session: DatabaseSessionDependency,
) -> object:
    """Persist a new task from the HTML form."""

    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _form_expired(request)

    title = _clean_text(form.get("title"))
    description = _clean_text(form.get("description"))

    errors: dict[str, str] = {}
    try:
        payload = TaskCreate(title=title, description=description)
    except ValidationError as exc:
        errors = field_errors_from(exc.errors())
    else:
        try:
            await TaskService(session).create_task(
                current_user, payload.title, payload.description
            )
        except ApplicationError as exc:
            if not exc.is_user_error:
                raise
            errors = exc.field_errors or {"form": exc.message}

    if errors:
        return template_response(
            request,
            "tasks/create.html",
            {
                "title": "New task",
                "form": {"title": title, "description": description},
                "errors": errors,
                "current_user": current_user,
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    add_flash_message(request.session, "success", f"Task '{title}' was created.")
    return _redirect_to_list(request)


@router.post("/toggle/{task_id}", name="tasks:toggle")
async def toggle_submit(
    task_id: TaskIdPath,
    request: Request,
    current_user: AuthenticatedSessionUserDependency,
    session: DatabaseSessionDependency,
) -> RedirectResponse:
    """Flip a task between open and done."""

    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _form_expired(request)

    try:
        task = await TaskService(session).toggle_task(current_user, task_id)
    except ApplicationError as exc:
        if not exc.is_user_error:
            raise
        add_flash_message(request.session, "error", exc.message)
    else:
        state = "done" if task.is_done else "open"
        add_flash_message(request.session, "success", f"Task '{task.title}' marked as {state}.")
    return _redirect_to_list(request)


@router.post("/delete/{task_id}", name="tasks:delete")
async def delete_submit(
    task_id: TaskIdPath,
    request: Request,
    current_user: AuthenticatedSessionUserDependency,
    session: DatabaseSessionDependency,
) -> RedirectResponse:
    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _form_expired(request)

    try:
        await TaskService(session).delete_task(current_user, task_id)
    except ApplicationError as exc:
        if not exc.is_user_error:
            raise
        add_flash_message(request.session, "error", exc.message)
    else:
        add_flash_message(request.session, "success", "Task deleted.")
    return _redirect_to_list(request)
