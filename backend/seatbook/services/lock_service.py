"""
Seat lock manager.

LOCKING STRATEGY: Compare-and-Set with TTL
==========================================

Problem:
  Two passengers tap the same seat at the same moment. Both see it
  free, both "select" it, and one of them finds out only at checkout.

Solution:
  A per-seat lock with an owner and an expiry, claimed with an atomic
  compare-and-set in the lock store:

  1. Reject seats that are already booked (availability record)
  2. In one store operation: if no unexpired lock exists, or the caller
     already holds it, write {holder, created_at=now, ttl}
  3. Otherwise report already_locked - a normal outcome, not an error
  4. Read the availability record again. A booking that committed between
     steps 1 and 2 wins: the new lock is deleted and already_booked returned

  A lock counts as held only while now < created_at + ttl. Expired
  records are ignored everywhere before any sweeper removes them, so an
  abandoned selection frees itself with no cleanup call from the client.

  Locks drive the seat picker only. Booking safety comes from the commit
  transaction, which re-validates against the availability record.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.core.clock import Clock, utcnow
from seatbook.core.config import get_settings
from seatbook.core.exceptions import InvalidLockTtl
from seatbook.core.logging import get_logger
from seatbook.core.metrics import record_lock_attempt, seat_lock_latency, seat_lock_releases
from seatbook.services.availability_service import get_booked_seats
from seatbook.services.interfaces.lock_store import LockRecord, LockStore
from seatbook.services.seat_map import ensure_seat
from seatbook.services.trip_service import get_trip

logger = get_logger(__name__)
settings = get_settings()


class LockOutcome(str, Enum):
    ACQUIRED = "acquired"
    RENEWED = "renewed"
    ALREADY_LOCKED = "already_locked"
    ALREADY_BOOKED = "already_booked"


@dataclass(frozen=True)
class LockResult:
    outcome: LockOutcome
    trip_id: int
    seat_label: str
    lock: Optional[LockRecord] = None

    @property
    def acquired(self) -> bool:
        return self.outcome in (LockOutcome.ACQUIRED, LockOutcome.RENEWED)


class LockManager:
    """Acquire/release/is_held over a lock store. Holds no state of its own."""

    def __init__(self, db: AsyncSession, store: LockStore, clock: Clock = utcnow):
        self.db = db
        self.store = store
        self.clock = clock

    async def acquire(
        self,
        trip_id: int,
        seat_label: str,
        holder: str,
        ttl_seconds: Optional[int] = None,
    ) -> LockResult:
        if ttl_seconds is None:
            ttl_seconds = settings.SEAT_LOCK_TTL_SECONDS
        if ttl_seconds <= 0:
            raise InvalidLockTtl(ttl_seconds)
        start = time.perf_counter()

        trip = await get_trip(self.db, trip_id)
        ensure_seat(seat_label, trip.total_seats)

        booked = await get_booked_seats(self.db, trip_id)
        # end the read transaction before touching the lock store
        await self.db.commit()
        if seat_label in booked:
            return self._already_booked(trip_id, seat_label)

        now = self.clock()
        previous = await self.store.get(trip_id, seat_label)
        record = await self.store.compare_and_set(trip_id, seat_label, holder, ttl_seconds, now)
        seat_lock_latency.observe(time.perf_counter() - start)

        if record is None:
            record_lock_attempt(LockOutcome.ALREADY_LOCKED.value)
            logger.info("seat_lock_rejected", trip_id=trip_id, seat=seat_label, reason="locked")
            return LockResult(LockOutcome.ALREADY_LOCKED, trip_id, seat_label)

        # a booking may have committed between the first check and the write
        booked = await get_booked_seats(self.db, trip_id)
        await self.db.commit()
        if seat_label in booked:
            await self.store.delete(trip_id, seat_label, holder)
            return self._already_booked(trip_id, seat_label)

        renewed = previous is not None and previous.holder == holder and previous.is_held(now)
        outcome = LockOutcome.RENEWED if renewed else LockOutcome.ACQUIRED
        record_lock_attempt(outcome.value)
        logger.info(
            "seat_lock_acquired",
            trip_id=trip_id,
            seat=seat_label,
            holder=holder,
            renewed=renewed,
            expires_at=record.expires_at.isoformat(),
        )
        return LockResult(outcome, trip_id, seat_label, record)

    def _already_booked(self, trip_id: int, seat_label: str) -> LockResult:
        record_lock_attempt(LockOutcome.ALREADY_BOOKED.value)
        logger.info("seat_lock_rejected", trip_id=trip_id, seat=seat_label, reason="booked")
        return LockResult(LockOutcome.ALREADY_BOOKED, trip_id, seat_label)

    async def release(self, trip_id: int, seat_label: str, holder: Optional[str] = None) -> bool:
        """
        Idempotent delete. Releasing an absent or expired lock is a no-op.
        With `holder`, another holder's lock is left alone.
        """
        released = await self.store.delete(trip_id, seat_label, holder)
        seat_lock_releases.labels(result="released" if released else "absent").inc()
        if released:
            logger.info("seat_lock_released", trip_id=trip_id, seat=seat_label, holder=holder)
        return released

    async def is_held(self, trip_id: int, seat_label: str, now: Optional[datetime] = None) -> bool:
        record = await self.store.get(trip_id, seat_label)
        return record is not None and record.is_held(now or self.clock())

    async def holder_of(self, trip_id: int, seat_label: str, now: Optional[datetime] = None) -> Optional[str]:
        record = await self.store.get(trip_id, seat_label)
        if record is None or not record.is_held(now or self.clock()):
            return None
        return record.holder
