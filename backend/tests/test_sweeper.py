"""
Tests for the expiry sweeper.
"""

import warnings

import pytest
from sqlalchemy.exc import SAWarning

from seatbook.services.interfaces.database_lock_store import DatabaseLockStore
from seatbook.services.lock_service import LockManager
from seatbook.services.sweeper import ExpirySweeper, sweep, sweep_all


async def lock(session_factory, clock, trip_id, seat, holder, ttl_seconds):
    async with session_factory() as db:
        manager = LockManager(db, DatabaseLockStore(db), clock=clock)
        return await manager.acquire(trip_id, seat, holder, ttl_seconds)


async def stored_seats(session_factory, trip_id):
    async with session_factory() as db:
        records = await DatabaseLockStore(db).list_for_trip(trip_id)
        await db.commit()
    return sorted(record.seat_label for record in records)


@pytest.mark.asyncio
async def test_sweep_deletes_only_expired_locks(session_factory, clock, small_trip):
    await lock(session_factory, clock, small_trip.id, "A1", "alice", ttl_seconds=10)
    await lock(session_factory, clock, small_trip.id, "A2", "bob", ttl_seconds=60)

    clock.advance(30)
    async with session_factory() as db:
        deleted = await sweep(DatabaseLockStore(db), small_trip.id, clock())

    assert deleted == 1
    assert await stored_seats(session_factory, small_trip.id) == ["A2"]


@pytest.mark.asyncio
async def test_sweep_is_idempotent(session_factory, clock, small_trip):
    await lock(session_factory, clock, small_trip.id, "A1", "alice", ttl_seconds=10)
    clock.advance(10)

    async with session_factory() as db:
        store = DatabaseLockStore(db)
        assert await sweep(store, small_trip.id, clock()) == 1
        assert await sweep(store, small_trip.id, clock()) == 0


@pytest.mark.asyncio
async def test_sweep_all_covers_every_trip(session_factory, clock, trip_factory):
    first = await trip_factory()
    second = await trip_factory(total_seats=12)
    await lock(session_factory, clock, first.id, "A1", "alice", ttl_seconds=10)
    await lock(session_factory, clock, second.id, "C4", "bob", ttl_seconds=10)
    await lock(session_factory, clock, second.id, "C3", "carol", ttl_seconds=120)

    clock.advance(60)
    async with session_factory() as db:
        deleted = await sweep_all(DatabaseLockStore(db), clock())

    assert deleted == 2
    assert await stored_seats(session_factory, first.id) == []
    assert await stored_seats(session_factory, second.id) == ["C3"]


@pytest.mark.asyncio
async def test_trips_with_locks_lists_each_trip_once(session_factory, clock, trip_factory):
    first = await trip_factory()
    second = await trip_factory()
    await lock(session_factory, clock, first.id, "A1", "alice", ttl_seconds=10)
    await lock(session_factory, clock, first.id, "A2", "bob", ttl_seconds=10)
    await lock(session_factory, clock, second.id, "B1", "carol", ttl_seconds=10)

    async with session_factory() as db:
        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            trip_ids = await DatabaseLockStore(db).trips_with_locks()
        await db.commit()

    assert sorted(trip_ids) == sorted([first.id, second.id])


@pytest.mark.asyncio
async def test_expiry_sweeper_run_once(session_factory, clock, small_trip):
    await lock(session_factory, clock, small_trip.id, "B1", "alice", ttl_seconds=10)
    sweeper = ExpirySweeper(session_factory, DatabaseLockStore, interval=60, clock=clock)

    assert await sweeper.run_once() == 0

    clock.advance(11)
    assert await sweeper.run_once() == 1
    assert await stored_seats(session_factory, small_trip.id) == []


@pytest.mark.asyncio
async def test_expiry_sweeper_start_and_stop(session_factory, clock, small_trip):
    sweeper = ExpirySweeper(session_factory, DatabaseLockStore, interval=0.01, clock=clock)

    sweeper.start()
    sweeper.start()
    await sweeper.stop()
    await sweeper.stop()

    assert sweeper._task is None
