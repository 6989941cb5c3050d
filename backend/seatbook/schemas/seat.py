"""
Pydantic schemas for seat maps and seat locks.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    LOCKED_BY_OTHER = "locked_by_other"
    LOCKED_BY_ME = "locked_by_me"
    BOOKED = "booked"


class SeatView(BaseModel):
    label: str
    status: SeatStatus
    locked_until: Optional[datetime] = None


class SeatMapResponse(BaseModel):
    trip_id: int
    total_seats: int
    available_count: int
    booked_seats: list[str]
    seats: list[SeatView]


class LockRequest(BaseModel):
    seat: str = Field(..., min_length=2, max_length=8)


class LockResponse(BaseModel):
    trip_id: int
    seat: str
    outcome: str
    holder: str
    expires_at: datetime


class SweepResponse(BaseModel):
    trip_id: int
    deleted: int
