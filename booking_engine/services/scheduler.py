"""
Lifecycle scheduler: a periodic global sweep moving elapsed PUBLISHED
resources to FINISHED.

Ticks run strictly one after another, so a slow sweep delays the next one
instead of overlapping it. A failing tick is logged and the loop goes on.
"""

import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import scheduler_sweeps, resources_finished
from booking_engine.services.cache_service import invalidate_resource_cache
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.resource_service import finish_elapsed_resources

logger = get_logger(__name__)


class LifecycleScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: Ledger,
        interval: float = 60.0,
    ):
        self._session_factory = session_factory
        self._ledger = ledger
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[datetime] = None) -> list[int]:
        """Run one sweep in its own session. Returns the ids it finished."""
        async with self._session_factory() as db:
            finished = await finish_elapsed_resources(db, now=now, ledger=self._ledger)
        if finished:
            # Finished resources drop out of the published listing
            await invalidate_resource_cache()
        scheduler_sweeps.labels(result="ok").inc()
        resources_finished.inc(len(finished))
        return finished

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                scheduler_sweeps.labels(result="error").inc()
                logger.error("scheduler_tick_failed", error=str(e), exc_info=True)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="lifecycle-scheduler")
        logger.info("scheduler_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("scheduler_stopped")
