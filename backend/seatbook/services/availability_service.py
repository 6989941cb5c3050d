"""
Availability store access and the live seat view.

The availability record is the ground truth of "sold". Reads here never
mutate it; only the commit engine writes it.
"""

import asyncio
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seatbook.core.clock import Clock, utcnow
from seatbook.core.config import get_settings
from seatbook.core.exceptions import TripNotFound
from seatbook.core.logging import get_logger
from seatbook.models.availability import SeatAvailability
from seatbook.schemas.seat import SeatMapResponse, SeatStatus, SeatView
from seatbook.services.interfaces.lock_store import LockRecord, LockStore
from seatbook.services.seat_map import labels_for
from seatbook.services.strategy_factory import get_lock_store
from seatbook.services.sweeper import sweep
from seatbook.services.trip_service import get_trip

logger = get_logger(__name__)
settings = get_settings()


async def get_availability(
    db: AsyncSession,
    trip_id: int,
    for_update: bool = False,
) -> SeatAvailability:
    query = select(SeatAvailability).where(SeatAvailability.trip_id == trip_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query.execution_options(populate_existing=True))
    availability = result.scalar_one_or_none()

    if availability is None:
        raise TripNotFound(trip_id)
    return availability


async def get_booked_seats(db: AsyncSession, trip_id: int) -> frozenset[str]:
    availability = await get_availability(db, trip_id)
    return frozenset(availability.booked_seats or [])


def classify(
    labels: tuple[str, ...],
    booked: frozenset[str],
    active_locks: dict[str, LockRecord],
    holder: Optional[str],
) -> list[SeatView]:
    seats = []
    for label in labels:
        lock = active_locks.get(label)
        locked_until = None
        if label in booked:
            seat_status = SeatStatus.BOOKED
        elif lock is None:
            seat_status = SeatStatus.AVAILABLE
        elif holder is not None and lock.holder == holder:
            seat_status = SeatStatus.LOCKED_BY_ME
            locked_until = lock.expires_at
        else:
            seat_status = SeatStatus.LOCKED_BY_OTHER
        seats.append(SeatView(label=label, status=seat_status, locked_until=locked_until))
    return seats


async def read_seat_map(
    db: AsyncSession,
    store: LockStore,
    trip_id: int,
    holder: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SeatMapResponse:
    """
    One consistent-enough snapshot of booked seats and active locks.

    Expired lock records are filtered with the same TTL test acquire uses,
    whether or not the sweeper has removed them yet.
    """
    now = now or utcnow()
    trip = await get_trip(db, trip_id)
    labels = labels_for(trip.total_seats)

    if settings.SWEEP_ON_READ:
        await sweep(store, trip_id, now)

    booked = await get_booked_seats(db, trip_id)
    active_locks = {
        record.seat_label: record
        for record in await store.list_for_trip(trip_id)
        if record.is_held(now)
    }

    return SeatMapResponse(
        trip_id=trip.id,
        total_seats=trip.total_seats,
        available_count=trip.total_seats - len(booked),
        booked_seats=[label for label in labels if label in booked],
        seats=classify(labels, booked, active_locks, holder),
    )


async def observe(
    session_factory: async_sessionmaker,
    trip_id: int,
    holder: Optional[str] = None,
    interval: Optional[float] = None,
    clock: Clock = utcnow,
    store_factory: Callable[[AsyncSession], LockStore] = get_lock_store,
) -> AsyncIterator[SeatMapResponse]:
    """
    Live seat view by short polling.

    Yields the first snapshot immediately, then a new one whenever any
    seat's classification changes (a lock lapsing counts). Each poll uses
    a fresh session so no transaction stays open between polls.
    """
    interval = settings.OBSERVE_POLL_INTERVAL_SECONDS if interval is None else interval
    previous = None

    while True:
        async with session_factory() as db:
            snapshot = await read_seat_map(db, store_factory(db), trip_id, holder, clock())
            await db.commit()

        state = [(seat.label, seat.status, seat.locked_until) for seat in snapshot.seats]
        if state != previous:
            previous = state
            yield snapshot

        await asyncio.sleep(interval)
