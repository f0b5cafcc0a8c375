"""
Warden - Async Utilities
========================

Helpers for fire-and-forget side effects and background tasks that log
failures instead of letting them disappear.

Usage:
    from warden.utils.async_utils import gather_with_logging

    await gather_with_logging(
        ("DM Subject", notifier.direct(user_id, text)),
        ("Mod Log", notifier.channel(log_channel_id, text)),
        context="Mute",
    )
"""

import asyncio
from typing import Any, Coroutine, List, Optional, Tuple

from warden.core.logger import logger
from warden.core.constants import LOG_TRUNCATE_LONG, LOG_TRUNCATE_MEDIUM


async def gather_with_logging(
    *operations: Tuple[str, Coroutine[Any, Any, Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run multiple async operations concurrently with error logging.

    Args:
        *operations: Tuples of (operation_name, coroutine).
        context: Optional context string for error logs.

    Returns:
        List of results (exceptions are returned as values, not raised).
    """
    names = [name for name, _ in operations]
    coros = [coro for _, coro in operations]

    results = await asyncio.gather(*coros, return_exceptions=True)

    for name, result in zip(names, results):
        if isinstance(result, Exception):
            error_details = [
                ("Operation", name),
                ("Error Type", type(result).__name__),
                ("Error", str(result)[:LOG_TRUNCATE_MEDIUM]),
            ]
            if context:
                error_details.insert(0, ("Context", context))
            logger.warning("Async Operation Failed", error_details)

    return results


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
    log_level: str = "warning",
) -> Any:
    """
    Run a single async operation, returning default if it fails.

    Args:
        name: Name of the operation for logging.
        coro: The coroutine to run.
        default: Value to return if the operation fails.
        log_level: "debug", "warning" or "error".
    """
    try:
        return await coro
    except Exception as e:
        error_details = [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:LOG_TRUNCATE_MEDIUM]),
        ]

        if log_level == "debug":
            logger.debug("Async Operation Failed", error_details)
        elif log_level == "error":
            logger.error("Async Operation Failed", error_details)
        else:
            logger.warning("Async Operation Failed", error_details)

        return default


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Create a background task that logs any exception it raises.

    Cancellation is treated as a normal exit, so awaiting a cancelled
    safe task returns None instead of raising.
    """
    async def wrapped():
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:LOG_TRUNCATE_LONG]),
            ])

    return asyncio.create_task(wrapped(), name=name)


__all__ = [
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
]
