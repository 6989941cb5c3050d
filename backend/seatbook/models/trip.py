"""
Trip model. Owned by the bus catalog; the seat engine only reads it.

Key design decisions:
- `total_seats` must be a positive multiple of 4 (four seats per row)
- `price` is per seat; a booking's total is price * seat count
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from seatbook.db.base import Base, TimestampMixin


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    bus_name = Column(String(255), nullable=False)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    departure_at = Column(DateTime(timezone=True), nullable=False)
    ac_type = Column(String(20), nullable=False, default="Non AC")
    total_seats = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    availability = relationship("SeatAvailability", back_populates="trip", uselist=False)

    __table_args__ = (
        CheckConstraint("total_seats > 0", name="check_trip_total_seats_positive"),
        CheckConstraint("total_seats % 4 = 0", name="check_trip_total_seats_row_layout"),
        CheckConstraint("price >= 0", name="check_trip_price_non_negative"),
        Index("ix_trips_route_departure", "origin", "destination", "departure_at"),
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, {self.origin}->{self.destination}, seats={self.total_seats})>"
