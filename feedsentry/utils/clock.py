"""
Clock Abstraction
=================

Wall-clock time and suspension behind one seam so that collection timers,
retry backoff and staleness checks can be driven deterministically.
"""

import asyncio
from datetime import datetime, timezone


class Clock:
    """Time source used by every timer in the collector."""

    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        raise NotImplementedError


class SystemClock(Clock):
    """Real time backed by ``datetime`` and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
        else:
            await asyncio.sleep(0)
