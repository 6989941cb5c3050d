"""
Trip catalog access.

The catalog itself is managed elsewhere; the engine needs to read trips
and, when a trip is registered, create its empty availability record in
the same transaction.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.core.exceptions import TripNotFound
from seatbook.core.logging import get_logger
from seatbook.models.availability import SeatAvailability
from seatbook.models.trip import Trip
from seatbook.schemas.trip import TripCreate
from seatbook.services.seat_map import validate_total_seats

logger = get_logger(__name__)


async def create_trip(db: AsyncSession, trip_data: TripCreate) -> Trip:
    """Register a trip together with an empty availability record."""
    validate_total_seats(trip_data.total_seats)

    trip = Trip(
        bus_name=trip_data.bus_name,
        origin=trip_data.origin,
        destination=trip_data.destination,
        departure_at=trip_data.departure_at,
        ac_type=trip_data.ac_type,
        total_seats=trip_data.total_seats,
        price=trip_data.price,
    )
    db.add(trip)
    await db.flush()
    db.add(SeatAvailability(trip_id=trip.id, booked_seats=[], version=1))
    await db.commit()
    await db.refresh(trip)

    logger.info("trip_registered", trip_id=trip.id, seats=trip.total_seats)
    return trip


async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
    result = await db.execute(select(Trip).where(Trip.id == trip_id))
    trip = result.scalar_one_or_none()

    if not trip:
        raise TripNotFound(trip_id)
    return trip
