"""Shared utilities."""

from .background_tasks import (
    create_safe_task,
    safe_background_task,
    drain_background_tasks,
    pending_background_tasks,
)

__all__ = [
    "create_safe_task",
    "safe_background_task",
    "drain_background_tasks",
    "pending_background_tasks",
]
