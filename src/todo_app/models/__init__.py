"""Persistent domain models."""

from __future__ import annotations

from .task import Task
from .user import User

__all__ = ["Task", "User"]
