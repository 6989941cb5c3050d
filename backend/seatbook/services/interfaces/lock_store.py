"""
Lock store strategy interface.
Allows swapping between the database-backed and Redis-backed lock stores.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class LockRecord:
    trip_id: int
    seat_label: str
    holder: str
    created_at: datetime
    ttl_seconds: int

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_held(self, now: datetime) -> bool:
        """A record past its TTL is held by nobody, whether or not it was swept."""
        return now < self.expires_at


class LockStore(ABC):
    """
    Interface for seat lock storage.

    Implementations:
    - DatabaseLockStore: rows keyed by (trip, seat) in the primary database
    - RedisLockStore: one key per seat, written by Lua compare-and-set
    """

    @abstractmethod
    async def compare_and_set(
        self,
        trip_id: int,
        seat_label: str,
        holder: str,
        ttl_seconds: int,
        now: datetime,
    ) -> Optional[LockRecord]:
        """
        Atomically claim a seat.

        Succeeds when no lock is held at `now` or when `holder` already
        holds it (the lock is then renewed).

        Returns:
            The new lock record on success
            None if another holder has an unexpired lock
        """
        pass

    @abstractmethod
    async def get(self, trip_id: int, seat_label: str) -> Optional[LockRecord]:
        """Return the stored record, expired or not."""
        pass

    @abstractmethod
    async def list_for_trip(self, trip_id: int) -> list[LockRecord]:
        """Return every stored record for the trip, expired or not."""
        pass

    @abstractmethod
    async def delete(self, trip_id: int, seat_label: str, holder: Optional[str] = None) -> bool:
        """
        Delete a lock. With `holder`, only that holder's lock is deleted.

        Returns:
            True if a record was deleted, False if absent or held by someone else
        """
        pass

    @abstractmethod
    async def delete_expired(self, trip_id: int, now: datetime) -> int:
        """Delete every record of the trip with now >= created_at + ttl. Returns the count."""
        pass

    @abstractmethod
    async def trips_with_locks(self) -> list[int]:
        """Trips that currently have at least one stored record."""
        pass
