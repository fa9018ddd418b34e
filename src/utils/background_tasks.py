"""
Detached background task execution with error handling.

Fire-and-forget work (push notifications) runs here so that:
- Errors are logged with stack traces and never reach the caller
- Task references are kept until completion to prevent GC
- Outstanding work can be awaited at shutdown
"""

import asyncio
import logging
from typing import Coroutine, Any, Set

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: Set[asyncio.Task] = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Wrapper for background tasks with error handling.

    Args:
        coro: Coroutine to execute
        task_name: Human-readable task name for logging

    Returns:
        Result of the coroutine if successful, None on error
    """
    try:
        result = await coro
        logger.debug(f"Background task completed: {task_name}")
        return result
    except asyncio.CancelledError:
        logger.warning(f"Background task cancelled: {task_name}")
        raise
    except Exception as e:
        logger.error(
            f"Background task failed: {task_name} - {e}",
            exc_info=True
        )
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Create a background task with error handling.

    The caller does not await the returned task.

    Example:
        create_safe_task(
            notifier.send(worker_ids, task_name),
            "notify-task-assigned-1234"
        )
    """
    task = asyncio.create_task(
        safe_background_task(coro, task_name)
    )

    # Store reference to prevent garbage collection
    _active_background_tasks.add(task)

    # Remove from tracking when done
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created background task: {task_name}")
    return task


def active_background_tasks() -> Set[asyncio.Task]:
    """Snapshot of background tasks that have not finished yet."""
    return set(_active_background_tasks)


async def drain_background_tasks() -> None:
    """Wait for every outstanding background task (used at shutdown)."""
    pending = active_background_tasks()
    if pending:
        logger.info(f"Waiting for {len(pending)} background task(s)")
        await asyncio.gather(*pending, return_exceptions=True)
