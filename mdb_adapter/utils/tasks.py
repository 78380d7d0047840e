"""
Background task helpers.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)

# Strong references so fire-and-forget tasks are not garbage collected mid-run
_background_tasks: Set[asyncio.Task] = set()


def create_managed_task(
    coro: Coroutine[Any, Any, Any], task_name: Optional[str] = None
) -> Optional[asyncio.Task]:
    """
    Creates a background task using asyncio.create_task().

    Args:
        coro: Coroutine to run as a background task
        task_name: Optional name for the task (for monitoring/debugging)

    Returns:
        The task, or None if no event loop is running

    Note:
        If no event loop is running, the coroutine is closed and task
        creation is skipped. This allows callers to work in both async and
        sync contexts.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        logger.debug(f"Skipping background task '{task_name}' - no event loop running")
        return None

    task = asyncio.create_task(coro, name=task_name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
