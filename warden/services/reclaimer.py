"""
Warden - Channel Reclaimer
==========================

Grace-delayed deletion of ticket and report channels.

DESIGN:
    Each deletion is a background task keyed by a string such as
    "ticket:12". The close notice is posted by the caller; after the
    grace delay an optional hook runs (e.g. the ticket log entry) and the
    channel is deleted. A channel that is already gone, or that cannot be
    deleted, is logged and treated as reclaimed.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from warden.core.errors import NotFoundError
from warden.core.logger import logger
from warden.gateway.base import CommunityGateway
from warden.utils.async_utils import create_safe_task, safe_async_operation
from warden.utils.clock import Clock, SYSTEM_CLOCK


Hook = Callable[[], Awaitable[object]]


class ChannelReclaimer:
    """Tracks pending channel deletions for this process."""

    def __init__(
        self,
        gateway: CommunityGateway,
        grace_seconds: float,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.grace_seconds = grace_seconds
        self._gateway = gateway
        self._clock = clock
        self._pending: Dict[str, asyncio.Task] = {}

    def schedule(
        self,
        key: str,
        channel_ref: int,
        reason: str,
        before_delete: Optional[Hook] = None,
        on_reclaimed: Optional[Hook] = None,
        delay: Optional[float] = None,
    ) -> asyncio.Task:
        """
        Delete a channel after the grace delay.

        Scheduling a key that is already pending returns the existing task.
        """
        existing = self._pending.get(key)
        if existing is not None and not existing.done():
            return existing

        wait = self.grace_seconds if delay is None else delay
        task = create_safe_task(
            self._reclaim(key, channel_ref, reason, before_delete, on_reclaimed, wait),
            f"Reclaim {key}",
        )
        self._pending[key] = task
        task.add_done_callback(lambda done: self._discard(key, done))
        return task

    def get(self, key: str) -> Optional[asyncio.Task]:
        return self._pending.get(key)

    def _discard(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _reclaim(
        self,
        key: str,
        channel_ref: int,
        reason: str,
        before_delete: Optional[Hook],
        on_reclaimed: Optional[Hook],
        delay: float,
    ) -> None:
        await self._clock.sleep(delay)

        if before_delete is not None:
            await safe_async_operation(f"Before Reclaim {key}", before_delete())

        try:
            await self._gateway.delete_channel(channel_ref, reason)
            logger.tree("Channel Reclaimed", [
                ("Key", key),
                ("Channel ID", str(channel_ref)),
            ], emoji="🗑️")
        except NotFoundError:
            logger.debug("Channel Already Deleted", [
                ("Key", key),
                ("Channel ID", str(channel_ref)),
            ])
        except Exception as e:
            logger.warning("Channel Reclaim Failed", [
                ("Key", key),
                ("Channel ID", str(channel_ref)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])

        if on_reclaimed is not None:
            await safe_async_operation(f"After Reclaim {key}", on_reclaimed())

    async def stop(self) -> None:
        """Cancel all pending deletions."""
        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()


__all__ = ["ChannelReclaimer"]
