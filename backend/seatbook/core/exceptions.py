"""
Domain errors raised by the seat engine and their HTTP rendering.

Contention at lock time is reported as a LockResult, not an exception.
Everything here is either a validation failure, a commit-time rejection,
or an infrastructure failure the caller may retry.
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from seatbook.core.logging import get_logger

logger = get_logger(__name__)


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class TooManySeats(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "too_many_seats"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(f"A booking must contain between 1 and {limit} seats, got {requested}")


class InvalidSeatCount(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_seat_count"

    def __init__(self, total_seats):
        self.total_seats = total_seats
        super().__init__(
            f"Total seats must be a positive multiple of 4 that fits the row layout, got {total_seats!r}"
        )


class UnknownSeat(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "unknown_seat"

    def __init__(self, seat: str):
        self.seat = seat
        super().__init__(f"Seat {seat} does not exist on this trip")


class InvalidLockTtl(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_lock_ttl"

    def __init__(self, ttl_seconds):
        self.ttl_seconds = ttl_seconds
        super().__init__(f"Lock TTL must be a positive number of seconds, got {ttl_seconds!r}")


class InvalidPaymentReference(DomainError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_payment_reference"

    def __init__(self):
        super().__init__("A payment reference is required")


class SeatUnavailable(DomainError):
    """HTTP-edge rendering of an already_locked / already_booked lock outcome."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, seat: str, code: str):
        self.seat = seat
        self.code = code
        reason = "already booked" if code == "already_booked" else "locked by another passenger"
        super().__init__(f"Seat {seat} is {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "seat": self.seat}


class SeatAlreadyBooked(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "seat_already_booked"

    def __init__(self, seat: str):
        self.seat = seat
        super().__init__(f"Seat {seat} has already been booked")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "seat": self.seat}


class CommitConflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "commit_conflict"

    def __init__(self, trip_id: int):
        self.trip_id = trip_id
        super().__init__("Booking failed due to high demand. Please try again.")


class TripNotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "trip_not_found"

    def __init__(self, trip_id: int):
        self.trip_id = trip_id
        super().__init__(f"Trip {trip_id} not found")


class BookingNotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "booking_not_found"

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class StoreUnavailable(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"

    def __init__(self, store: str):
        self.store = store
        super().__init__(f"The {store} is temporarily unavailable. Please try again.")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", code=exc.code, error=exc.message)
    else:
        logger.info("domain_error", code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Connection-level database failures are retryable; nothing was committed."""
    logger.error("database_unavailable", error=str(exc))
    return await domain_error_handler(request, StoreUnavailable("database"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(InterfaceError, database_error_handler)
