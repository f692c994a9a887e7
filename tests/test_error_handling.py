from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI, HTTPException, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from todo_app.core.logging import RequestContextFilter
from todo_app.errors import (
    KIND_TRAITS,
    ApplicationError,
    ErrorKind,
    internal_error,
    task_not_found,
)
from todo_app.main import create_app

pytestmark = pytest.mark.asyncio


class _InMemoryHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture()
def app() -> FastAPI:
    return create_app()


def _client(app: FastAPI) -> AsyncClient:
    # unhandled errors are re-raised by Starlette after the response is sent
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.parametrize(
    ("kind", "status_code", "is_user_error"),
    [
        (ErrorKind.RESOURCE_NOT_FOUND, 404, True),
        (ErrorKind.INVALID_REQUEST, 400, True),
        (ErrorKind.VALIDATION, 400, True),
        (ErrorKind.DUPLICATE_RESOURCE, 409, True),
        (ErrorKind.ACCESS_DENIED, 403, True),
        (ErrorKind.AUTHENTICATION_FAILED, 401, True),
        (ErrorKind.DATABASE, 500, False),
        (ErrorKind.INTERNAL, 500, False),
        (ErrorKind.CONFIGURATION, 500, False),
        (ErrorKind.EXTERNAL_DEPENDENCY, 502, False),
        (ErrorKind.TIMEOUT, 408, False),
    ],
)
async def test_error_kinds_map_to_transport_status(
    kind: ErrorKind, status_code: int, is_user_error: bool
) -> None:
    error = ApplicationError("boom", kind=kind)
    assert error.status_code == status_code
    assert error.is_user_error is is_user_error
    assert error.code == KIND_TRAITS[kind].code


async def test_application_error_response_schema(app: FastAPI) -> None:
    @app.get("/error/application")
    async def trigger_application_error() -> None:  # pragma: no cover - defined in test
        raise task_not_found(7)

    async with _client(app) as client:
        response = await client.get("/error/application")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    payload = response.json()
    request_id = response.headers["X-Request-ID"]
    assert payload["message"] == "Task not found: id=7"
    assert payload["status"] == 404
    assert payload["errorCode"] == "task_not_found"
    assert payload["path"] == "/error/application"
    assert payload["timestamp"]
    assert payload["details"] == {"request_id": request_id}
    assert "fieldErrors" not in payload


async def test_incoming_request_id_is_echoed(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


async def test_validation_error_response_schema(app: FastAPI) -> None:
    class ExamplePayload(BaseModel):
        name: str

    @app.post("/error/validation")
    async def create_item(payload: ExamplePayload) -> None:  # pragma: no cover - defined in test
        return None

    async with _client(app) as client:
        response = await client.post("/error/validation", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    payload = response.json()
    assert payload["errorCode"] == "validation_failed"
    assert payload["message"] == "Request validation failed."
    assert payload["fieldErrors"] == {"name": "Field required"}
    assert payload["details"]["request_id"] == response.headers["X-Request-ID"]


async def test_unknown_route_uses_error_envelope(app: FastAPI) -> None:
    async with _client(app) as client:
        response = await client.get("/error/not-found")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    payload = response.json()
    assert payload["errorCode"] == "not_found"
    assert payload["message"]


async def test_http_exception_headers_are_preserved(app: FastAPI) -> None:
    @app.get("/error/redirect")
    async def trigger_redirect() -> None:  # pragma: no cover - defined in test
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Login required.",
            headers={"Location": "/login"},
        )

    async with _client(app) as client:
        response = await client.get("/error/redirect")

    assert response.status_code == status.HTTP_303_SEE_OTHER
    assert response.headers["location"] == "/login"


async def test_integrity_error_response_schema(app: FastAPI) -> None:
    @app.get("/error/database")
    async def trigger_integrity_error() -> None:  # pragma: no cover - defined in test
        raise IntegrityError("statement", {}, Exception("constraint"))

    async with _client(app) as client:
        response = await client.get("/error/database")

    assert response.status_code == status.HTTP_409_CONFLICT
    payload = response.json()
    assert payload["errorCode"] == "db_integrity_error"
    assert payload["message"] == "Database integrity violation."


async def test_system_application_error_hides_its_message(app: FastAPI) -> None:
    @app.get("/error/system")
    async def trigger_system_error() -> None:  # pragma: no cover - defined in test
        raise internal_error("password column missing in table users")

    async with _client(app) as client:
        response = await client.get("/error/system")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = response.json()
    assert payload["errorCode"] == "internal_error"
    assert "password column" not in response.text


async def test_unhandled_error_hides_internal_details(app: FastAPI) -> None:
    @app.get("/error/unhandled")
    async def trigger_unhandled_error() -> None:  # pragma: no cover - defined in test
        raise RuntimeError("Sensitive detail")

    async with _client(app) as client:
        response = await client.get("/error/unhandled")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = response.json()
    request_id = response.headers["X-Request-ID"]
    assert payload["errorCode"] == "internal_error"
    assert payload["message"] == "An unexpected error occurred."
    assert payload["details"] == {"request_id": request_id}
    assert "Sensitive" not in response.text


async def test_error_logs_follow_severity_and_strip_credentials(app: FastAPI) -> None:
    logger = logging.getLogger("todo_app.errors")
    handler = _InMemoryHandler()
    logger.addHandler(handler)
    original_level = logger.level
    logger.setLevel(logging.INFO)

    @app.get("/error/user")
    async def trigger_user_error() -> None:  # pragma: no cover - defined in test
        raise task_not_found(1)

    @app.get("/error/system")
    async def trigger_system_error() -> None:  # pragma: no cover - defined in test
        raise internal_error("broken")

    try:
        async with _client(app) as client:
            await client.get("/error/user")
            await client.get(
                "/error/system",
                params={"token": "abc"},
                headers={
                    "Authorization": "Bearer secret",
                    "Cookie": "todo_session=secret",
                    "X-Api-Key": "secret",
                    "X-Trace": "visible",
                },
            )
    finally:
        logger.removeHandler(handler)
        logger.setLevel(original_level)
        handler.close()

    user_records = [r for r in handler.records if getattr(r, "code", None) == "task_not_found"]
    assert user_records and all(r.levelno == logging.INFO for r in user_records)
    assert all(r.exc_info is None for r in user_records)

    system_records = [r for r in handler.records if getattr(r, "code", None) == "internal_error"]
    assert len(system_records) == 1
    record = system_records[0]
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None
    assert record.method == "GET"
    assert record.query_params == ["token"]
    assert record.headers["x-trace"] == "visible"
    assert not {"authorization", "cookie", "x-api-key"} & set(record.headers)


async def test_request_id_attached_to_logs(app: FastAPI) -> None:
    logger = logging.getLogger("tests.error_handling")
    handler = _InMemoryHandler()
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)
    original_level = logger.level
    logger.setLevel(logging.INFO)

    @app.get("/log")
    async def emit_log() -> dict[str, str]:  # pragma: no cover - defined in test
        logger.info("Log entry")
        return {"status": "ok"}

    try:
        async with _client(app) as client:
            response = await client.get("/log")
    finally:
        logger.removeHandler(handler)
        logger.setLevel(original_level)
        handler.close()

    request_id = response.headers["X-Request-ID"]
    matching = [record for record in handler.records if record.getMessage() == "Log entry"]
    assert matching
    assert getattr(matching[0], "request_id", None) == request_id


async def test_constructors_produce_the_single_error_type() -> None:
    from todo_app import errors

    built = [
        errors.invalid_request("bad cursor"),
        errors.access_denied(),
        errors.configuration_error("missing secret"),
        errors.external_dependency_error("mail relay down"),
        errors.store_timeout("list_tasks"),
        errors.duplicate_email("a@example.com"),
        errors.user_not_found(3),
    ]
    assert all(type(error) is ApplicationError for error in built)
    assert [error.status_code for error in built] == [400, 403, 500, 502, 408, 409, 404]
