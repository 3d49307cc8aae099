"""
Post-commit side-effect dispatch.

Notifications and emails are handed off here only after the triggering
transaction has committed. Each side effect runs as its own asyncio task;
failures are logged and never reach the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight
_pending_tasks: set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task) -> None:
    _pending_tasks.discard(task)
    if task.cancelled():
        logger.warning(f"Side effect '{task.get_name()}' was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Side effect '{task.get_name()}' failed: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


def dispatch(factory: Callable[[], Awaitable[object]], name: str) -> asyncio.Task | None:
    """
    Schedule a best-effort side effect.

    Args:
        factory: Zero-argument callable returning the coroutine to run
        name: Label used in log lines

    Returns:
        The created task, or None if the side effect could not be scheduled
    """
    try:
        task = asyncio.get_running_loop().create_task(factory(), name=name)
    except Exception as e:
        logger.error(f"Failed to schedule side effect '{name}': {e}", exc_info=True)
        return None

    _pending_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def pending_count() -> int:
    """Number of side effects still running."""
    return len(_pending_tasks)


async def drain(timeout: float = 10.0) -> None:
    """Wait for outstanding side effects, used on shutdown."""
    if not _pending_tasks:
        return
    logger.info(f"Waiting for {len(_pending_tasks)} pending side effect(s)")
    _, pending = await asyncio.wait(set(_pending_tasks), timeout=timeout)
    for task in pending:
        task.cancel()
