"""
Tests for seat label generation.
"""

import pytest

from seatbook.core.exceptions import InvalidSeatCount, UnknownSeat
from seatbook.services.seat_map import ensure_seat, labels_for, order_seats


def test_labels_for_eight_seats():
    assert labels_for(8) == ("A1", "A2", "A3", "A4", "B1", "B2", "B3", "B4")


def test_labels_are_deterministic_and_unique():
    first = labels_for(32)
    second = labels_for(32)
    assert list(first) == list(second)
    assert len(first) == 32
    assert len(set(first)) == 32
    assert first[-1] == "H4"


def test_same_capacity_gives_same_layout_prefix():
    """A larger bus extends the layout of a smaller one row by row."""
    assert labels_for(40)[:32] == labels_for(32)


@pytest.mark.parametrize("total_seats", [0, -4, 6, 33, 108, 4.0, "32", True])
def test_invalid_seat_counts_fail_loudly(total_seats):
    with pytest.raises(InvalidSeatCount):
        labels_for(total_seats)


def test_largest_supported_layout_ends_at_row_z():
    assert labels_for(104)[-1] == "Z4"


def test_order_seats_sorts_by_layout_and_dedupes():
    assert order_seats(["B1", "A3", "A2", "B1"], 8) == ["A2", "A3", "B1"]


def test_order_seats_rejects_labels_outside_the_trip():
    with pytest.raises(UnknownSeat) as exc_info:
        order_seats(["A1", "C1"], 8)
    assert exc_info.value.seat == "C1"


def test_ensure_seat():
    assert ensure_seat("B4", 8) == "B4"
    with pytest.raises(UnknownSeat):
        ensure_seat("a1", 8)
