# liveserve/utils/async_helpers.py
"""
Background task helpers. A task started here never fails silently: its
exception is logged when the task finishes, even if nobody awaits it.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

logger = logging.getLogger(__name__)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"[AsyncTask:{task.get_name()}] Unhandled exception: {exc}", exc_info=exc)


def create_safe_task(coro: Coroutine[Any, Any, Any], name: Optional[str] = None,
                     log_errors: bool = True) -> asyncio.Task:
    """
    Schedule coro on the running loop.

    Args:
        coro: coroutine to run
        name: task name shown in failure logs
        log_errors: log the task's exception when it finishes
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    if log_errors:
        task.add_done_callback(_log_task_failure)
    return task


async def cancel_and_wait(task: Optional[asyncio.Task]) -> None:
    """Cancel task and wait until it has actually finished."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
