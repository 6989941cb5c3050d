"""Initial schema: trips, seat availability, seat locks, bookings, user booking index.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trips table (catalog-owned, read by the seat engine)
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bus_name", sa.String(255), nullable=False),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("departure_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ac_type", sa.String(20), nullable=False, server_default=sa.text("'Non AC'")),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("total_seats > 0", name="check_trip_total_seats_positive"),
        sa.CheckConstraint("total_seats % 4 = 0", name="check_trip_total_seats_row_layout"),
        sa.CheckConstraint("price >= 0", name="check_trip_price_non_negative"),
    )
    op.create_index("ix_trips_id", "trips", ["id"])
    # Search screen filters by route and sorts by departure
    op.create_index("ix_trips_route_departure", "trips", ["origin", "destination", "departure_at"])

    # Availability: one row per trip, booked seats only ever grow
    op.create_table(
        "seat_availability",
        sa.Column(
            "trip_id",
            sa.Integer(),
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("booked_seats", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
    )

    # Seat locks: the composite primary key makes a lock exclusive
    op.create_table(
        "seat_locks",
        sa.Column(
            "trip_id",
            sa.Integer(),
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("seat_label", sa.String(8), primary_key=True),
        sa.Column("holder", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ttl_seconds", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_seat_locks_expires_at", "seat_locks", ["expires_at"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("seat_labels", sa.JSON(), nullable=False),
        sa.Column("seat_count", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_reference", sa.String(128), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("seat_count > 0", name="check_booking_seat_count_positive"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_trip_id", "bookings", ["trip_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    # Admin verification screen lists newest first
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])

    # Reverse index: user -> bookings
    op.create_table(
        "user_booking_index",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("user_booking_index")
    op.drop_table("bookings")
    op.drop_table("seat_locks")
    op.drop_table("seat_availability")
    op.drop_table("trips")
