"""
Expiry sweeper: deletes lock records whose TTL has elapsed.

Sweeping is housekeeping only. Lock holds are always judged by
now < created_at + ttl at read and acquire time, so a late or skipped
sweep never lets an expired lock block a seat.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seatbook.core.clock import Clock, utcnow
from seatbook.core.logging import get_logger
from seatbook.core.metrics import locks_swept
from seatbook.services.interfaces.lock_store import LockStore

logger = get_logger(__name__)


async def sweep(store: LockStore, trip_id: int, now: datetime) -> int:
    """Delete every expired lock of one trip. Safe to run concurrently and repeatedly."""
    deleted = await store.delete_expired(trip_id, now)
    if deleted:
        locks_swept.inc(deleted)
        logger.info("locks_swept", trip_id=trip_id, deleted=deleted)
    return deleted


async def sweep_all(store: LockStore, now: datetime) -> int:
    deleted = 0
    for trip_id in await store.trips_with_locks():
        deleted += await sweep(store, trip_id, now)
    return deleted


class ExpirySweeper:
    """
    Recurring sweep across all trips, run as a background task.

    One failed pass is logged and the loop carries on; the next pass
    retries the same work.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        store_factory: Callable[[AsyncSession], LockStore],
        interval: float,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.store_factory = store_factory
        self.interval = interval
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> int:
        async with self.session_factory() as db:
            return await sweep_all(self.store_factory(db), self.clock())

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("sweep_failed", error=str(e))
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="seat-lock-sweeper")
            logger.info("sweeper_started", interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("sweeper_stopped")
