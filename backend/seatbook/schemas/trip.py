"""
Pydantic schemas for trip-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class TripCreate(BaseModel):
    bus_name: str = Field(..., min_length=1, max_length=255)
    origin: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    departure_at: datetime
    ac_type: str = Field(default="Non AC", max_length=20)
    # Row layout is checked by the seat map so the error carries its own code
    total_seats: int
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class TripResponse(BaseModel):
    id: int
    bus_name: str
    origin: str
    destination: str
    departure_at: datetime
    ac_type: str
    total_seats: int
    price: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}
