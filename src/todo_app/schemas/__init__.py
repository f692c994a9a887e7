"""Pydantic schemas for public interfaces."""

from __future__ import annotations

from .auth import LoginRequest, SignupRequest
from .system import ErrorResponse, HealthCheckResponse
from .task import BulkDeleteResponse, TaskCreate, TaskRead, TaskSearch, TaskUpdate
from .user import UserPublic

__all__ = [
    "BulkDeleteResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "LoginRequest",
    "SignupRequest",
    "TaskCreate",
    "TaskRead",
    "TaskSearch",
    "TaskUpdate",
    "UserPublic",
]
