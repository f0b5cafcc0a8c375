"""
Warden - Clock
==============

Wall-clock time and sleeping behind one small object so the scheduler
and channel reclaimer can run against a fake clock in tests.
"""

import asyncio
import time


class Clock:
    """Real clock backed by time.time() and asyncio.sleep()."""

    def now(self) -> float:
        """Current epoch time in seconds."""
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0))


SYSTEM_CLOCK = Clock()


__all__ = ["Clock", "SYSTEM_CLOCK"]
