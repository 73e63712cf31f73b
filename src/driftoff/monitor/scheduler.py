"""Interruptible tick timer for the monitoring loop."""

from __future__ import annotations

import asyncio


class TickScheduler:
    """Sleeps between ticks and wakes immediately when a stop is requested.

    The stop flag doubles as the loop's cancellation token: the controller
    checks :attr:`cancelled` at the top of every tick and after any slow
    collaborator call.
    """

    def __init__(self) -> None:
        self._stop = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        self._stop.set()

    def reset(self) -> None:
        """Clear the stop flag; the new event binds to the next loop that waits on it."""
        self._stop = asyncio.Event()

    async def sleep(self, seconds: float) -> bool:
        """Wait *seconds*; False if a stop arrived first."""
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False
