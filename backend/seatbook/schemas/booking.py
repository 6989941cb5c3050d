"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    # Seat-count limits are enforced by the commit engine (too_many_seats)
    seats: list[str]
    payment_reference: str = Field(..., max_length=128)
    payment_method: Optional[str] = Field(None, max_length=50)


class BookingResponse(BaseModel):
    id: int
    trip_id: int
    user_id: str
    seat_labels: list[str]
    total_price: Decimal
    payment_reference: str
    payment_method: Optional[str]
    payment_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketResponse(BookingResponse):
    """Booking plus the trip fields a printed ticket shows."""

    bus_name: str
    origin: str
    destination: str
    departure_at: datetime
    ac_type: str


class PaymentVerificationResponse(BaseModel):
    message: str
    booking_id: int
    payment_verified: bool
