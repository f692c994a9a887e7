"""Request context middleware."""

from __future__ import annotations

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .context import REQUEST_ID_HEADER, RequestContext, bind_context, reset_context

access_logger = logging.getLogger("todo_app.access")

# client supplied ids are echoed into logs and headers, so keep them plain
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(candidate: str | None) -> str:
    """Reuse a well-formed client request id or mint a new one."""

    if candidate and _REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a :class:`RequestContext` around each request and log its outcome."""

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER):  # type: ignore[override]
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        context = RequestContext(request_id=resolve_request_id(request.headers.get(self._header_name)))
        request.state.request_context = context
        request.state.request_id = context.request_id
        token = bind_context(context)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            access_logger.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
        finally:
            reset_context(token)
        response.headers[self._header_name] = context.request_id
        return response


__all__ = ["RequestContextMiddleware", "resolve_request_id"]
