"""
Refresh loop: refetch application data when the backend reports changes.

Events arriving within `debounce_seconds` of each other are collapsed into
one refresh. A failed refresh is logged (and kept on state.error by the
state itself); the loop keeps running.
"""

import asyncio
import logging
from typing import Optional

from .change_feed import ChangeFeed

logger = logging.getLogger(__name__)


class RefreshLoop:
    """Debounced reconciliation between the change feed and AppState."""

    def __init__(self, state, feed: ChangeFeed, debounce_seconds: float = 0.5):
        self.state = state
        self.feed = feed
        self.debounce_seconds = debounce_seconds
        self.refresh_count = 0
        self._task: Optional[asyncio.Task] = None
        self._queue: Optional[asyncio.Queue] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._queue = self.feed.subscribe()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Refresh loop started (debounce {self.debounce_seconds}s)")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._queue is not None:
            self.feed.unsubscribe(self._queue)
            self._queue = None
        logger.info("Refresh loop stopped")

    async def _wait_quiet(self) -> int:
        """Absorb events until none arrives for a full debounce window."""
        absorbed = 0
        while True:
            try:
                await asyncio.wait_for(self._queue.get(), timeout=self.debounce_seconds)
                absorbed += 1
            except asyncio.TimeoutError:
                return absorbed

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            absorbed = await self._wait_quiet()
            logger.debug(f"Refreshing after change on {event.table} (+{absorbed} more)")
            try:
                await self.state.refresh()
                self.refresh_count += 1
            except Exception as e:
                logger.error(f"Refresh after change failed: {e}")
