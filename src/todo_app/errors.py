"""Error taxonomy and its mapping onto HTTP responses.

Every failure raised by the service layer is an :class:`ApplicationError`
tagged with an :class:`ErrorKind`. The kind fixes the transport status, the
default error code and whether the caller caused the failure; domain errors
such as :func:`task_not_found` are plain constructors of the same type.
"""

from __future__ import annotations

import logging
from contextvars import Token
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Mapping

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.context import REQUEST_ID_HEADER, RequestContext, bind_context, reset_context
from .schemas.system import ErrorResponse
from .validation import field_errors_from

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
GENERIC_ERROR_MESSAGE = "An unexpected error occurred."


class ErrorKind(str, Enum):
    """Closed set of failure categories understood by the boundary."""

    RESOURCE_NOT_FOUND = "resource_not_found"
    INVALID_REQUEST = "invalid_request"
    VALIDATION = "validation"
    DUPLICATE_RESOURCE = "duplicate_resource"
    ACCESS_DENIED = "access_denied"
    AUTHENTICATION_FAILED = "authentication_failed"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFIGURATION = "configuration"
    EXTERNAL_DEPENDENCY = "external_dependency"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class KindTraits:
    status_code: int
    code: str
    is_user_error: bool


KIND_TRAITS: dict[ErrorKind, KindTraits] = {
    ErrorKind.RESOURCE_NOT_FOUND: KindTraits(status.HTTP_404_NOT_FOUND, "not_found", True),
    ErrorKind.INVALID_REQUEST: KindTraits(status.HTTP_400_BAD_REQUEST, "invalid_request", True),
    ErrorKind.VALIDATION: KindTraits(status.HTTP_400_BAD_REQUEST, "validation_failed", True),
    ErrorKind.DUPLICATE_RESOURCE: KindTraits(status.HTTP_409_CONFLICT, "duplicate_resource", True),
    ErrorKind.ACCESS_DENIED: KindTraits(status.HTTP_403_FORBIDDEN, "access_denied", True),
    ErrorKind.AUTHENTICATION_FAILED: KindTraits(
        status.HTTP_401_UNAUTHORIZED, "authentication_failed", True
    ),
    ErrorKind.DATABASE: KindTraits(status.HTTP_500_INTERNAL_SERVER_ERROR, "database_error", False),
    ErrorKind.INTERNAL: KindTraits(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", False),
    ErrorKind.CONFIGURATION: KindTraits(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "configuration_error", False
    ),
    ErrorKind.EXTERNAL_DEPENDENCY: KindTraits(
        status.HTTP_502_BAD_GATEWAY, "external_dependency_error", False
    ),
    ErrorKind.TIMEOUT: KindTraits(status.HTTP_408_REQUEST_TIMEOUT, "timeout", False),
}


class ApplicationError(Exception):
    """Typed failure carrying an :class:`ErrorKind` and response metadata."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.INVALID_REQUEST,
        code: str | None = None,
        field_errors: Mapping[str, str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        traits = KIND_TRAITS[kind]
        self.message = message
        self.kind = kind
        self.code = code or traits.code
        self.status_code = traits.status_code
        self.is_user_error = traits.is_user_error
        self.field_errors = dict(field_errors) if field_errors else None
        self.details = details

    def __repr__(self) -> str:
        return f"ApplicationError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"


# -- constructors -----------------------------------------------------------


def not_found(message: str = "Resource not found.", *, code: str | None = None) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.RESOURCE_NOT_FOUND, code=code)


def task_not_found(task_id: int) -> ApplicationError:
    return not_found(f"Task not found: id={task_id}", code="task_not_found")


def user_not_found(user_id: int) -> ApplicationError:
    return not_found(f"User not found: id={user_id}", code="user_not_found")


def invalid_request(message: str, *, code: str | None = None) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.INVALID_REQUEST, code=code)


def validation_failed(
    field_errors: Mapping[str, str],
    message: str = "Request validation failed.",
    *,
    code: str | None = None,
) -> ApplicationError:
    return ApplicationError(
        message,
        kind=ErrorKind.VALIDATION,
        code=code,
        field_errors=field_errors,
    )


def password_mismatch() -> ApplicationError:
    return validation_failed(
        {"passwordConfirm": "Password confirmation does not match the password."},
        "Password and password confirmation do not match.",
        code="password_mismatch",
    )


def duplicate_resource(message: str, *, code: str | None = None) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.DUPLICATE_RESOURCE, code=code)


def duplicate_email(email: str) -> ApplicationError:
    return duplicate_resource(f"Email already exists: {email}", code="duplicate_email")


def duplicate_nickname(nickname: str) -> ApplicationError:
    return duplicate_resource(f"Nickname already exists: {nickname}", code="duplicate_nickname")


def access_denied(message: str = "Access denied.") -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.ACCESS_DENIED)


def authentication_required() -> ApplicationError:
    return ApplicationError(
        "Authentication required.",
        kind=ErrorKind.AUTHENTICATION_FAILED,
        code="authentication_required",
    )


def invalid_credentials() -> ApplicationError:
    # Same error for unknown email and wrong password.
    return ApplicationError(
        "Invalid email or password.",
        kind=ErrorKind.AUTHENTICATION_FAILED,
        code="invalid_credentials",
    )


def database_error(message: str, *, code: str | None = None) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.DATABASE, code=code)


def internal_error(message: str, *, code: str | None = None) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.INTERNAL, code=code)


def configuration_error(message: str) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.CONFIGURATION)


def external_dependency_error(message: str) -> ApplicationError:
    return ApplicationError(message, kind=ErrorKind.EXTERNAL_DEPENDENCY)


def store_timeout(action: str) -> ApplicationError:
    return ApplicationError(
        f"Timed out waiting for the data store during {action}.",
        kind=ErrorKind.TIMEOUT,
        code="store_timeout",
    )


# -- HTTP mapping -----------------------------------------------------------

_HTTP_STATUS_CODE_MAP: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


def _bind_request_context(request: Request) -> Token[RequestContext | None] | None:
    # outer handlers run after the middleware has reset its binding
    context = getattr(request.state, "request_context", None)
    if context is None:
        return None
    return bind_context(context)


def _reset_request_context(token: Token[RequestContext | None] | None) -> None:
    if token is not None:
        reset_context(token)


def _merge_details_with_request(request: Request, details: Any | None) -> Any | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return details
    if details is None:
        return {"request_id": request_id}
    if isinstance(details, dict):
        if "request_id" not in details:
            return {**details, "request_id": request_id}
        return details
    return {"request_id": request_id, "detail": details}


def _safe_headers(request: Request) -> dict[str, str]:
    return {
        name: value
        for name, value in request.headers.items()
        if name.lower() not in SENSITIVE_HEADERS
    }


def _log_error(
    request: Request,
    exc: BaseException,
    *,
    code: str,
    status_code: int,
    is_user_error: bool,
) -> None:
    context = {"code": code, "status_code": status_code, "path": request.url.path}
    if is_user_error:
        logger.info("Request failed with user error", extra=context)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("User error details", exc_info=exc, extra=context)
        return
    logger.error(
        "Request failed with system error",
        exc_info=exc,
        extra={
            **context,
            "method": request.method,
            "query_params": sorted(request.query_params.keys()),
            "headers": _safe_headers(request),
        },
    )


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    field_errors: Mapping[str, str] | None = None,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope shared by every handler."""

    payload = ErrorResponse(
        message=message,
        status=status_code,
        error_code=code,
        path=request.url.path,
        field_errors=dict(field_errors) if field_errors else None,
        details=_merge_details_with_request(request, details),
    )
    response = JSONResponse(
        status_code=status_code,
        content=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _http_exception_message(status_code: int, detail: Any) -> tuple[str, Any | None]:
    if isinstance(detail, str):
        return detail, None
    try:
        status_phrase = HTTPStatus(status_code).phrase
    except ValueError:
        status_phrase = "Error"
    if detail is None:
        return status_phrase, None
    return status_phrase, {"errors": detail} if isinstance(detail, list) else detail


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the provided FastAPI app."""

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(
        request: Request,
        exc: ApplicationError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            _log_error(
                request,
                exc,
                code=exc.code,
                status_code=exc.status_code,
                is_user_error=exc.is_user_error,
            )
            if exc.is_user_error:
                message = exc.message
                details = exc.details
            else:
                # system failures never expose their internal message
                message = GENERIC_ERROR_MESSAGE
                details = None
            return error_response(
                request,
                status_code=exc.status_code,
                code=exc.code,
                message=message,
                field_errors=exc.field_errors,
                details=details,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            field_errors = field_errors_from(exc.errors())
            _log_error(
                request,
                exc,
                code="validation_failed",
                status_code=status.HTTP_400_BAD_REQUEST,
                is_user_error=True,
            )
            return error_response(
                request,
                status_code=status.HTTP_400_BAD_REQUEST,
                code="validation_failed",
                message="Request validation failed.",
                field_errors=field_errors,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(IntegrityError)
    async def _handle_integrity_error(
        request: Request,
        exc: IntegrityError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            _log_error(
                request,
                exc,
                code="db_integrity_error",
                status_code=status.HTTP_409_CONFLICT,
                is_user_error=True,
            )
            return error_response(
                request,
                status_code=status.HTTP_409_CONFLICT,
                code="db_integrity_error",
                message="Database integrity violation.",
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            code = _HTTP_STATUS_CODE_MAP.get(exc.status_code, "http_error")
            message, details = _http_exception_message(exc.status_code, exc.detail)
            _log_error(
                request,
                exc,
                code=code,
                status_code=exc.status_code,
                is_user_error=exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
            return error_response(
                request,
                status_code=exc.status_code,
                code=code,
                message=message,
                details=details,
                headers=exc.headers or None,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            _log_error(
                request,
                exc,
                code="internal_error",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                is_user_error=False,
            )
            return error_response(
                request,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code="internal_error",
                message=GENERIC_ERROR_MESSAGE,
            )
        finally:
            _reset_request_context(token)


__all__ = [
    "ApplicationError",
    "ErrorKind",
    "KIND_TRAITS",
    "access_denied",
    "authentication_required",
    "configuration_error",
    "database_error",
    "duplicate_email",
    "duplicate_nickname",
    "duplicate_resource",
    "error_response",
    "external_dependency_error",
    "internal_error",
    "invalid_credentials",
    "invalid_request",
    "not_found",
    "password_mismatch",
    "register_exception_handlers",
    "store_timeout",
    "task_not_found",
    "user_not_found",
    "validation_failed",
]
