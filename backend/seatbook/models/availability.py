"""
Per-trip record of permanently booked seats.

Key design decisions:
- One row per trip, created empty alongside the trip
- `booked_seats` only ever grows; it is written solely by the commit engine
- `version` enables optimistic locking for concurrent commits
"""

from sqlalchemy import JSON, Column, ForeignKey, Integer
from sqlalchemy.orm import relationship

from seatbook.db.base import Base


class SeatAvailability(Base):
    __tablename__ = "seat_availability"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True)
    booked_seats = Column(JSON, nullable=False, default=list)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    trip = relationship("Trip", back_populates="availability")

    def __repr__(self) -> str:
        return f"<SeatAvailability(trip={self.trip_id}, booked={len(self.booked_seats or [])}, v={self.version})>"
