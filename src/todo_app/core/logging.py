"""Structured JSON logging for the to-do service.

Every record carries the request id and, once the session has been resolved,
the id of the user the request acts for. Credential-bearing ``extra`` fields
never reach the output.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .context import get_request_id, get_user_id

# attributes every LogRecord has; anything else arrived through ``extra``
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_CONTEXT_ATTRS = frozenset({"request_id", "user_id"})

SENSITIVE_LOG_FIELDS = frozenset(
    {
        "password",
        "password_confirm",
        "password_hash",
        "session",
        "csrf_token",
        "cookie",
        "authorization",
    }
)


class JsonLogFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def __init__(self, *, defaults: dict[str, Any] | None = None, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self._defaults = defaults or {}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            **self._defaults,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "user_id": getattr(record, "user_id", None),
        }
        payload.update(extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the record's ``extra`` values with credentials removed."""

    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _STANDARD_RECORD_ATTRS or key in _CONTEXT_ATTRS:
            continue
        if key.lower() in SENSITIVE_LOG_FIELDS:
            continue
        fields[key] = _jsonable(value)
    return fields


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id and session user id."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.request_id = get_request_id()
        # an explicit ``extra={"user_id": ...}`` wins over the session user
        if getattr(record, "user_id", None) is None:
            record.user_id = get_user_id()
        return True


def _routed(level: int) -> dict[str, Any]:
    return {"handlers": ["stdout"], "level": level, "propagate": False}


def configure_logging(settings: Settings) -> None:
    """Route application, server and SQL logs through one JSON handler."""

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.captureWarnings(True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonLogFormatter,
                    "defaults": {
                        "service": settings.project_name,
                        "environment": settings.environment,
                    },
                }
            },
            "filters": {"request_context": {"()": RequestContextFilter}},
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "json",
                    "level": level,
                    "filters": ["request_context"],
                }
            },
            "root": {"handlers": ["stdout"], "level": level},
            "loggers": {
                "uvicorn": _routed(level),
                # the request context middleware writes its own access line
                "uvicorn.access": _routed(logging.WARNING),
                "sqlalchemy.engine": _routed(logging.INFO if settings.db_echo else logging.WARNING),
            },
        }
    )


__all__ = [
    "JsonLogFormatter",
    "RequestContextFilter",
    "SENSITIVE_LOG_FIELDS",
    "configure_logging",
    "extra_fields",
]
