"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from ...schemas import HealthCheckResponse

router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthCheckResponse, summary="Service liveness check")
async def healthz() -> HealthCheckResponse:
    return HealthCheckResponse()
