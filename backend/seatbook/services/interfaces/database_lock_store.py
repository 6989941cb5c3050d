"""
Database lock store - seat locks as rows in the primary database.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.models.seat_lock import SeatLock
from seatbook.services.interfaces.lock_store import LockRecord, LockStore


class DatabaseLockStore(LockStore):
    """
    Locks stored in `seat_locks`, one row per (trip, seat).

    Compare-and-set runs in its own transaction: the row is read
    FOR UPDATE, then inserted or overwritten. Two callers racing on an
    absent row both try to INSERT and the primary key rejects the second.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def compare_and_set(
        self,
        trip_id: int,
        seat_label: str,
        holder: str,
        ttl_seconds: int,
        now: datetime,
    ) -> Optional[LockRecord]:
        try:
            result = await self.db.execute(
                select(SeatLock)
                .where(SeatLock.trip_id == trip_id, SeatLock.seat_label == seat_label)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            lock = result.scalar_one_or_none()

            if lock is not None and lock.holder != holder and lock.to_record().is_held(now):
                await self.db.rollback()
                return None

            if lock is None:
                lock = SeatLock(trip_id=trip_id, seat_label=seat_label)
                self.db.add(lock)
            lock.stamp(holder, now, ttl_seconds)

            await self.db.flush()
            record = lock.to_record()
            await self.db.commit()
            return record
        except IntegrityError:
            # Lost the INSERT race to a concurrent caller
            await self.db.rollback()
            return None

    async def get(self, trip_id: int, seat_label: str) -> Optional[LockRecord]:
        result = await self.db.execute(
            select(SeatLock).where(SeatLock.trip_id == trip_id, SeatLock.seat_label == seat_label)
        )
        lock = result.scalar_one_or_none()
        return lock.to_record() if lock else None

    async def list_for_trip(self, trip_id: int) -> list[LockRecord]:
        result = await self.db.execute(
            select(SeatLock).where(SeatLock.trip_id == trip_id).order_by(SeatLock.seat_label)
        )
        return [lock.to_record() for lock in result.scalars().all()]

    async def delete(self, trip_id: int, seat_label: str, holder: Optional[str] = None) -> bool:
        stmt = delete(SeatLock).where(
            SeatLock.trip_id == trip_id,
            SeatLock.seat_label == seat_label,
        )
        if holder is not None:
            stmt = stmt.where(SeatLock.holder == holder)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount > 0

    async def delete_expired(self, trip_id: int, now: datetime) -> int:
        result = await self.db.execute(
            delete(SeatLock).where(
                SeatLock.trip_id == trip_id,
                SeatLock.expires_at <= now,
            )
        )
        await self.db.commit()
        return result.rowcount

    async def trips_with_locks(self) -> list[int]:
        result = await self.db.execute(select(SeatLock.trip_id).distinct())
        return list(result.scalars().all())
