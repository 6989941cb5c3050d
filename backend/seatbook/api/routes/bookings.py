"""
Booking endpoints: the atomic commit and the passenger's ledger views.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.api.deps import get_store
from seatbook.core.logging import get_logger
from seatbook.core.security import get_current_user_id
from seatbook.db.session import get_db
from seatbook.schemas.booking import BookingCreate, BookingResponse, TicketResponse
from seatbook.services.booking_service import commit_booking
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.ledger_service import get_booking, list_user_bookings

logger = get_logger(__name__)
router = APIRouter(tags=["Bookings"])


@router.post(
    "/trips/{trip_id}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    trip_id: int,
    booking_data: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    store: LockStore = Depends(get_store),
):
    """
    Book the selected seats in one atomic step.

    Availability is re-checked inside the commit transaction: if any seat
    was booked meanwhile the whole request fails with 409 and nothing is
    booked. Re-read the seat map before choosing again.
    """
    return await commit_booking(
        db,
        store,
        trip_id,
        user_id,
        booking_data.seats,
        booking_data.payment_reference,
        booking_data.payment_method,
    )


@router.get("/bookings", response_model=list[BookingResponse])
async def list_my_bookings(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Ticket history of the authenticated user, newest first."""
    return await list_user_bookings(db, user_id)


@router.get("/bookings/{booking_id}", response_model=TicketResponse)
async def get_ticket(
    booking_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """A booking with the trip details printed on the ticket."""
    booking = await get_booking(db, booking_id, user_id=user_id)
    return TicketResponse(
        **BookingResponse.model_validate(booking).model_dump(),
        bus_name=booking.trip.bus_name,
        origin=booking.trip.origin,
        destination=booking.trip.destination,
        departure_at=booking.trip.departure_at,
        ac_type=booking.trip.ac_type,
    )
