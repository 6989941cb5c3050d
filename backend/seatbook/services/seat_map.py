"""
Seat map: trip capacity -> ordered seat labels.

Seats are laid out four to a row. Seat index i (0-based) sits in row
i // 4, lettered from A, and column (i % 4) + 1, so a 32-seat bus runs
A1 A2 A3 A4 B1 ... H4.
"""

import string
from functools import lru_cache

from seatbook.core.exceptions import InvalidSeatCount, UnknownSeat

SEATS_PER_ROW = 4
ROW_LETTERS = string.ascii_uppercase
MAX_SEATS = len(ROW_LETTERS) * SEATS_PER_ROW


def validate_total_seats(total_seats) -> int:
    if (
        isinstance(total_seats, bool)
        or not isinstance(total_seats, int)
        or total_seats <= 0
        or total_seats % SEATS_PER_ROW != 0
        or total_seats > MAX_SEATS
    ):
        raise InvalidSeatCount(total_seats)
    return total_seats


@lru_cache(maxsize=None, typed=True)
def labels_for(total_seats: int) -> tuple[str, ...]:
    """Ordered, duplicate-free seat labels for a trip with `total_seats` seats."""
    validate_total_seats(total_seats)
    return tuple(
        f"{ROW_LETTERS[i // SEATS_PER_ROW]}{i % SEATS_PER_ROW + 1}"
        for i in range(total_seats)
    )


def seat_positions(total_seats: int) -> dict[str, int]:
    return {label: index for index, label in enumerate(labels_for(total_seats))}


def ensure_seat(seat_label: str, total_seats: int) -> str:
    if seat_label not in seat_positions(total_seats):
        raise UnknownSeat(seat_label)
    return seat_label


def order_seats(seat_labels, total_seats: int) -> list[str]:
    """De-duplicate and sort labels into seat-map order. Unknown labels raise UnknownSeat."""
    positions = seat_positions(total_seats)
    for label in seat_labels:
        if label not in positions:
            raise UnknownSeat(label)
    return sorted(set(seat_labels), key=positions.__getitem__)
