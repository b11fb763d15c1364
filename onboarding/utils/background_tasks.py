"""
Fire-and-forget work with its own error boundary.

Automation follow-ups run after the request that triggered them has
returned, so failures here must never surface to the caller:
- Errors are logged with stack traces
- Task references are held until completion so they are not collected
- Pending tasks can be drained on shutdown
"""

import asyncio
import logging
from typing import Coroutine, Any

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: set = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Await coro, logging instead of raising on failure.

    Returns:
        Result of the coroutine if successful, None on error
    """
    try:
        result = await coro
        logger.info(f"✓ Background task completed: {task_name}")
        return result
    except Exception as e:
        logger.error(
            f"✗ Background task failed: {task_name} - {e}",
            exc_info=True
        )
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Schedule coro on the running loop inside safe_background_task.

    Example:
        create_safe_task(
            engine.evaluate_automations(project_id, event),
            f"automations-{project_id}-task_completed"
        )
    """
    task = asyncio.create_task(
        safe_background_task(coro, task_name)
    )

    _active_background_tasks.add(task)
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created safe background task: {task_name}")
    return task


def pending_background_tasks() -> int:
    return len(_active_background_tasks)


async def drain_background_tasks(timeout: float = 30.0) -> None:
    """Wait for outstanding background tasks, used on shutdown."""
    if not _active_background_tasks:
        return

    pending = list(_active_background_tasks)
    logger.info(f"Waiting for {len(pending)} background task(s)")
    done, not_done = await asyncio.wait(pending, timeout=timeout)
    if not_done:
        logger.warning(f"{len(not_done)} background task(s) still running after {timeout}s")
