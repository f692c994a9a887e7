from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status
from pydantic import ValidationError
from starlette.datastructures import FormData
from starlette.responses import RedirectResponse

from ..core.session import add_flash_message, login_user, logout_user, validate_csrf_token
from ..core.templates import template_response
from ..deps import DatabaseSessionDependency, SessionUserDependency
from ..errors import ApplicationError
from ..schemas import LoginRequest, SignupRequest
from ..services import AuthService
from ..validation import field_errors_from

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth-web"])

# duplicate errors point at the offending form field
_CODE_FIELDS = {
    "duplicate_email": "email",
    "duplicate_nickname": "nickname",
}


def _clean_text(raw: object) -> str:
    return str(raw or "").strip()


def _signup_form(form: FormData) -> dict[str, str]:
    return {
        "email": _clean_text(form.get("email")).lower(),
        "nickname": _clean_text(form.get("nickname")),
    }


def _redirect(request: Request, name: str) -> RedirectResponse:
    return RedirectResponse(request.url_for(name), status_code=status.HTTP_303_SEE_OTHER)


def _csrf_invalid_response(request: Request, template: str, context: dict[str, object]) -> object:
    add_flash_message(request.session, "error", "The form has expired. Please try again.")
    return template_response(request, template, context, status_code=status.HTTP_400_BAD_REQUEST)


def _errors_from_application_error(exc: ApplicationError) -> dict[str, str]:
    if exc.field_errors:
        return dict(exc.field_errors)
    return {_CODE_FIELDS.get(exc.code, "form"): exc.message}


@router.get("/signup", name="auth:signup")
async def signup_form(request: Request, current_user: SessionUserDependency) -> object:
    """Render the registration form."""

    if current_user is not None:
        return _redirect(request, "tasks:list")
    return template_response(
        request,
        "auth/signup.html",
        {"title": "Create an account", "form": {"email": "", "nickname": ""}},
    )


@router.post("/signup", name="auth:signup:submit")
async def signup_submit(request: Request, session: DatabaseSessionDependency) -> object:
    """Handle registration form submissions."""

    form = await request.form()
    context: dict[str, object] = {"title": "Create an account", "form": _signup_form(form)}
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _csrf_invalid_response(request, "auth/signup.html", context)

    errors: dict[str, str] = {}
    try:
        payload = SignupRequest.model_validate(
            {
                "email": form.get("email") or "",
                "password": form.get("password") or "",
                "password_confirm": form.get("password_confirm") or "",
                "nickname": form.get("nickname") or "",
            }
        )
    except ValidationError as exc:
        errors = field_errors_from(exc.errors())
    else:
        try:
            user = await AuthService(session).signup(payload)
        except ApplicationError as exc:
            if not exc.is_user_error:
                raise
            errors = _errors_from_application_error(exc)
        else:
            logger.info("Signup completed through web form", extra={"user_id": user.id})

    if errors:
        return template_response(
            request,
            "auth/signup.html",
            {**context, "errors": errors},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    add_flash_message(request.session, "success", "Your account has been created. Please sign in.")
    return _redirect(request, "auth:login")


@router.get("/login", name="auth:login")
async def login_form(request: Request, current_user: SessionUserDependency) -> object:
    """Render the login form."""

    if current_user is not None:
        return _redirect(request, "tasks:list")
    return template_response(
        request,
        "auth/login.html",
        {"title": "Sign in", "form": {"email": ""}},
    )


@router.post("/login", name="auth:login:submit")
async def login_submit(request: Request, session: DatabaseSessionDependency) -> object:
    """Handle login form submissions."""

    form = await request.form()
    email = _clean_text(form.get("email")).lower()
    context: dict[str, object] = {"title": "Sign in", "form": {"email": email}}
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _csrf_invalid_response(request, "auth/login.html", context)

    errors: dict[str, str] = {}
    user = None
    try:
        payload = LoginRequest.model_validate(
            {"email": email, "password": form.get("password") or ""}
        )
    except ValidationError as exc:
        errors = field_errors_from(exc.errors())
    else:
        try:
            user = await AuthService(session).login(payload.email, payload.password)
        except ApplicationError as exc:
            if not exc.is_user_error:
                raise
            errors = {"form": exc.message}

    if errors or user is None:
        return template_response(
            request,
            "auth/login.html",
            {**context, "errors": errors},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    login_user(request.session, user.id)
    add_flash_message(request.session, "success", f"Welcome back, {user.nickname}!")
    return _redirect(request, "tasks:list")


@router.post("/logout", name="auth:logout")
async def logout_submit(request: Request) -> RedirectResponse:
    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        add_flash_message(request.session, "error", "The form has expired. Please try again.")
        return _redirect(request, "tasks:list")

    logout_user(request.session)
    add_flash_message(request.session, "info", "You have been signed out.")
    return _redirect(request, "auth:login")
