"""
Short-lived seat lock rows used by the database lock backend.

The composite primary key is what makes a lock exclusive: a second
INSERT for the same (trip, seat) fails inside the store, whatever the
callers believed they had read.
"""

from datetime import datetime, timedelta

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from seatbook.core.clock import as_utc
from seatbook.db.base import Base
from seatbook.services.interfaces.lock_store import LockRecord


class SeatLock(Base):
    __tablename__ = "seat_locks"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True)
    seat_label = Column(String(8), primary_key=True)
    holder = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    ttl_seconds = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # Sweeper scans by expiry
        Index("ix_seat_locks_expires_at", "expires_at"),
    )

    def stamp(self, holder: str, now: datetime, ttl_seconds: int) -> None:
        self.holder = holder
        self.created_at = now
        self.ttl_seconds = ttl_seconds
        self.expires_at = now + timedelta(seconds=ttl_seconds)

    def to_record(self) -> LockRecord:
        return LockRecord(
            trip_id=self.trip_id,
            seat_label=self.seat_label,
            holder=self.holder,
            created_at=as_utc(self.created_at),
            ttl_seconds=self.ttl_seconds,
        )

    def __repr__(self) -> str:
        return f"<SeatLock(trip={self.trip_id}, seat={self.seat_label}, holder={self.holder})>"
