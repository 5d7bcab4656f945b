"""
Background refetch of the calendar on a fixed interval and on focus.

Every trigger is a full refetch. Overlapping fetches are allowed; the store
drops any response older than one it has already applied.
"""

import asyncio
import logging

from core.config import EVENTS_POLL_SECONDS

logger = logging.getLogger(__name__)


class SyncLoop:
    """
    Periodic refresh driver for a CalendarStore.

    Args:
        store: the store whose caches are refreshed
        interval: seconds between periodic refreshes
    """

    def __init__(self, store, interval: float = EVENTS_POLL_SECONDS):
        self.store = store
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._triggers: set[asyncio.Task] = set()
        store.on_logout(self.halt)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Mount: refresh everything now, then every interval."""
        if self.running:
            return
        self._spawn(self.focus())
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Sync started (every %ss)", self.interval)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()

    async def tick(self):
        """One periodic refresh of the calendar on screen."""
        result = await self.store.refresh()
        if not result.ok:
            logger.warning("Periodic refresh failed: %s", result.message)
        return result

    async def focus(self):
        """Window focus: refetch the calendar and the backlog together."""
        results = await asyncio.gather(self.store.refresh(), self.store.fetch_postponed())
        for result in results:
            if not result.ok:
                logger.warning("Focus refresh failed: %s", result.message)
        return results

    def trigger_focus(self) -> None:
        """Fire-and-forget focus refresh from a synchronous callback."""
        self._spawn(self.focus())

    def halt(self) -> None:
        """Cancel the interval and any pending triggers without waiting."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        for task in list(self._triggers):
            task.cancel()

    async def stop(self) -> None:
        """Unmount: cancel everything and wait for it to finish."""
        pending = list(self._triggers)
        if self._task is not None:
            pending.append(self._task)
        self.halt()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Sync stopped")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._triggers.add(task)
        task.add_done_callback(self._triggers.discard)
