from seatbook.models.trip import Trip
from seatbook.models.availability import SeatAvailability
from seatbook.models.seat_lock import SeatLock
from seatbook.models.booking import Booking, UserBookingIndex

__all__ = ["Trip", "SeatAvailability", "SeatLock", "Booking", "UserBookingIndex"]
