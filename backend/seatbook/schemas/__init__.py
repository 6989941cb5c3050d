from seatbook.schemas.trip import TripCreate, TripResponse
from seatbook.schemas.seat import (
    LockRequest,
    LockResponse,
    SeatMapResponse,
    SeatStatus,
    SeatView,
    SweepResponse,
)
from seatbook.schemas.booking import (
    BookingCreate,
    BookingResponse,
    PaymentVerificationResponse,
    TicketResponse,
)

__all__ = [
    "TripCreate", "TripResponse",
    "LockRequest", "LockResponse", "SeatMapResponse", "SeatStatus", "SeatView", "SweepResponse",
    "BookingCreate", "BookingResponse", "PaymentVerificationResponse", "TicketResponse",
]
