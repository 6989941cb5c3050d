"""
Booking ledger: reads over bookings, the user -> bookings reverse index,
and the admin payment-verification flag.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.core.exceptions import BookingNotFound
from seatbook.core.logging import get_logger
from seatbook.models.booking import Booking, UserBookingIndex

logger = get_logger(__name__)


async def append_to_user_index(db: AsyncSession, user_id: str, booking_id: int) -> bool:
    """Idempotent append. Returns False if the entry was already there."""
    existing = await db.get(UserBookingIndex, (user_id, booking_id))
    if existing is not None:
        return False

    db.add(UserBookingIndex(user_id=user_id, booking_id=booking_id))
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent reconcile added it first
        await db.rollback()
        return False
    return True


async def reconcile_user_index(db: AsyncSession, user_id: str) -> int:
    """
    Re-add any booking of the user that is missing from the index.
    Returns the number of repaired entries.
    """
    indexed = select(UserBookingIndex.booking_id).where(UserBookingIndex.user_id == user_id)
    result = await db.execute(
        select(Booking.id).where(Booking.user_id == user_id, Booking.id.not_in(indexed))
    )
    missing = list(result.scalars().all())

    repaired = 0
    for booking_id in missing:
        if await append_to_user_index(db, user_id, booking_id):
            repaired += 1

    if repaired:
        logger.warning("user_index_repaired", user_id=user_id, repaired=repaired)
    return repaired


async def list_user_bookings(db: AsyncSession, user_id: str) -> list[Booking]:
    """All bookings in the user's index, newest first, after reconciling the index."""
    await reconcile_user_index(db, user_id)
    result = await db.execute(
        select(Booking)
        .join(UserBookingIndex, UserBookingIndex.booking_id == Booking.id)
        .where(UserBookingIndex.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.unique().scalars().all())


async def get_booking(db: AsyncSession, booking_id: int, user_id: Optional[str] = None) -> Booking:
    """
    Fetch one booking. With `user_id`, bookings of other users are
    reported as not found.
    """
    query = select(Booking).where(Booking.id == booking_id)
    if user_id is not None:
        query = query.where(Booking.user_id == user_id)
    result = await db.execute(query)
    booking = result.unique().scalar_one_or_none()

    if not booking:
        raise BookingNotFound(booking_id)
    return booking


async def list_bookings(db: AsyncSession, verified: Optional[bool] = None) -> list[Booking]:
    """Admin listing, newest first."""
    query = select(Booking)
    if verified is not None:
        query = query.where(Booking.payment_verified == verified)
    result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
    return list(result.unique().scalars().all())


async def verify_payment(db: AsyncSession, booking_id: int, verified_by: str) -> Booking:
    """Flip payment_verified to true. Verifying twice is a no-op; it never goes back to false."""
    booking = await get_booking(db, booking_id)

    if booking.payment_verified:
        return booking

    booking.payment_verified = True
    await db.commit()

    logger.info("payment_verified", booking_id=booking_id, verified_by=verified_by)
    return booking
