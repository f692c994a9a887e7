"""Common system-level response models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HealthCheckResponse(BaseModel):
    """Payload returned by the health check endpoint."""

    status: str = Field(default="ok", description="Service health indicator")


class ErrorResponse(BaseModel):
    """Standardised error envelope returned by exception handlers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(description="Human-readable error message")
    status: int = Field(description="HTTP status code of the response")
    error_code: str = Field(description="Machine-readable error identifier")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    path: str | None = Field(default=None, description="Request path that failed")
    field_errors: dict[str, str] | None = Field(
        default=None,
        description="Per-field validation messages.",
    )
    details: Any | None = Field(
        default=None,
        description="Optional structured metadata describing the error context.",
    )


__all__ = ["ErrorResponse", "HealthCheckResponse"]
