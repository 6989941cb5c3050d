"""
Booking commit engine.

CONCURRENCY STRATEGY: Re-validate inside the commit transaction
================================================================

Problem:
  Two passengers confirm overlapping seats at the same time. Seat locks
  may have lapsed, or one client may never have locked at all. Trusting
  a previous read of availability lets both bookings through.

Solution:
  Every commit re-reads the trip's availability record inside the
  transaction that writes the booking:

  1. 1 <= seats <= MAX_SEATS_PER_BOOKING, else too_many_seats
  2. Read the availability row (FOR UPDATE on PostgreSQL). If any
     requested seat is already booked, reject the whole request:
     seat_already_booked. Nothing is written.
  3. UPDATE seat_availability SET booked_seats = :union, version = version + 1
     WHERE trip_id = :trip AND version = :read_version
     and INSERT the booking, then COMMIT both together.
  4. If the UPDATE matched no row, another commit got in between:
     roll back and start again from step 2 with a fresh read.

  After the commit, the caller's seat locks are released and the booking
  id is added to the user's index. Those steps are best effort: a lock
  left behind expires by TTL, and a missing index entry is repaired by
  the next reconciling read of the user's bookings.
  The returned Booking is detached before those steps run, so it stays
  readable whatever they do to the session.
"""

import time
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.core.clock import Clock, utcnow
from seatbook.core.config import get_settings
from seatbook.core.exceptions import (
    CommitConflict,
    InvalidPaymentReference,
    SeatAlreadyBooked,
    TooManySeats,
)
from seatbook.core.logging import get_logger
from seatbook.core.metrics import (
    booking_commit_latency,
    commit_retries,
    post_commit_failures,
    record_commit,
)
from seatbook.models.availability import SeatAvailability
from seatbook.models.booking import Booking
from seatbook.services.availability_service import get_availability
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.ledger_service import append_to_user_index
from seatbook.services.seat_map import order_seats
from seatbook.services.trip_service import get_trip

logger = get_logger(__name__)
settings = get_settings()


async def commit_booking(
    db: AsyncSession,
    store: LockStore,
    trip_id: int,
    user_id: str,
    seats: list[str],
    payment_reference: str,
    payment_method: Optional[str] = None,
    clock: Clock = utcnow,
) -> Booking:
    """
    Turn a seat selection into a booking, all seats or none.

    Raises TooManySeats, UnknownSeat, InvalidPaymentReference,
    SeatAlreadyBooked, TripNotFound, or CommitConflict after
    COMMIT_MAX_ATTEMPTS version conflicts in a row.
    """
    start = time.perf_counter()
    limit = settings.MAX_SEATS_PER_BOOKING
    if not 1 <= len(set(seats)) <= limit:
        record_commit("too_many_seats")
        raise TooManySeats(len(set(seats)), limit)

    payment_reference = (payment_reference or "").strip()
    if not payment_reference:
        raise InvalidPaymentReference()

    trip = await get_trip(db, trip_id)
    # plain values; a rollback in the retry loop expires `trip`
    total_seats = trip.total_seats
    requested = order_seats(seats, total_seats)
    total_price = Decimal(trip.price) * len(requested)

    booking = None
    for attempt in range(1, settings.COMMIT_MAX_ATTEMPTS + 1):
        availability = await get_availability(db, trip_id, for_update=True)
        booked = set(availability.booked_seats or [])

        taken = [seat for seat in requested if seat in booked]
        if taken:
            await db.rollback()
            record_commit("seat_already_booked")
            logger.warning(
                "booking_rejected_seat_taken",
                trip_id=trip_id,
                user_id=user_id,
                requested=requested,
                taken=taken,
            )
            raise SeatAlreadyBooked(taken[0])

        current_version = availability.version
        update_result = await db.execute(
            update(SeatAvailability)
            .where(
                SeatAvailability.trip_id == trip_id,
                SeatAvailability.version == current_version,
            )
            .values(
                booked_seats=order_seats(booked | set(requested), total_seats),
                version=current_version + 1,
            )
        )

        if update_result.rowcount == 0:
            logger.info(
                "booking_retry",
                trip_id=trip_id,
                attempt=attempt,
                reason="version_conflict",
            )
            commit_retries.inc()
            await db.rollback()
            continue

        booking = Booking(
            trip_id=trip_id,
            user_id=user_id,
            seat_labels=requested,
            seat_count=len(requested),
            total_price=total_price,
            payment_reference=payment_reference,
            payment_method=payment_method,
            payment_verified=False,
            created_at=clock(),
        )
        db.add(booking)
        await db.flush()
        await db.commit()
        # the caller gets this instance; rollbacks in the steps below must not expire it
        db.expunge(booking)

        logger.info(
            "booking_committed",
            booking_id=booking.id,
            trip_id=trip_id,
            user_id=user_id,
            seats=requested,
            attempt=attempt,
        )
        break

    if booking is None:
        record_commit("conflict")
        raise CommitConflict(trip_id)

    record_commit("success")
    booking_commit_latency.observe(time.perf_counter() - start)

    # Best effort from here on: the booking is durable and is returned even if
    # the stores fail now
    await _release_committed_locks(db, store, booking.id, trip_id, user_id, requested)
    await _index_booking(db, booking.id, user_id)
    return booking


async def _release_committed_locks(
    db: AsyncSession,
    store: LockStore,
    booking_id: int,
    trip_id: int,
    user_id: str,
    seats: list[str],
) -> None:
    for seat in seats:
        try:
            await store.delete(trip_id, seat, holder=user_id)
        except Exception as e:
            await db.rollback()
            post_commit_failures.labels(step="release_locks").inc()
            logger.warning(
                "post_commit_lock_release_failed",
                booking_id=booking_id,
                seat=seat,
                error=str(e),
            )


async def _index_booking(db: AsyncSession, booking_id: int, user_id: str) -> None:
    try:
        await append_to_user_index(db, user_id, booking_id)
    except Exception as e:
        await db.rollback()
        post_commit_failures.labels(step="user_index").inc()
        logger.warning(
            "post_commit_index_failed",
            booking_id=booking_id,
            user_id=user_id,
            error=str(e),
        )
