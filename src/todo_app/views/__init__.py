"""Server-rendered HTML views."""

from __future__ import annotations

from fastapi import APIRouter

from .auth import router as auth_router
from .tasks import router as tasks_router

web_router = APIRouter(include_in_schema=False)
web_router.include_router(tasks_router)
web_router.include_router(auth_router)

__all__ = ["auth_router", "tasks_router", "web_router"]
