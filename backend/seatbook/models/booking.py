"""
Booking model: the durable record that seats on a trip were sold to a user.

Key design decisions:
- Immutable after creation except `payment_verified` (false -> true, admin only)
- `seat_labels` is stored in seat-map order
- `user_booking_index` is the user -> bookings reverse index, appended after commit
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from seatbook.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    seat_labels = Column(JSON, nullable=False)
    seat_count = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    payment_reference = Column(String(128), nullable=False)
    payment_method = Column(String(50), nullable=True)
    payment_verified = Column(Boolean, nullable=False, default=False)

    trip = relationship("Trip", lazy="joined")

    __table_args__ = (
        CheckConstraint("seat_count > 0", name="check_booking_seat_count_positive"),
        Index("ix_bookings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, trip={self.trip_id}, user={self.user_id}, seats={self.seat_labels})>"


class UserBookingIndex(Base):
    __tablename__ = "user_booking_index"

    user_id = Column(String(128), primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
