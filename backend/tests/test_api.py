"""
HTTP tests for trips, seat locks, bookings and admin endpoints.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from seatbook.core.config import get_settings


def trip_payload(**overrides) -> dict:
    payload = {
        "bus_name": "Hanif Express",
        "origin": "Dhaka",
        "destination": "Sylhet",
        "departure_at": (datetime.now(timezone.utc) + timedelta(days=2)).isoformat(),
        "ac_type": "AC",
        "total_seats": 8,
        "price": "650.00",
    }
    payload.update(overrides)
    return payload


async def lock_seat(client: AsyncClient, trip_id: int, seat: str, headers: dict):
    return await client.post(f"/api/v1/trips/{trip_id}/locks", json={"seat": seat}, headers=headers)


async def book_seats(client: AsyncClient, trip_id: int, seats: list, headers: dict, reference: str = "TX-55"):
    return await client.post(
        f"/api/v1/trips/{trip_id}/bookings",
        json={"seats": seats, "payment_reference": reference, "payment_method": "nagad"},
        headers=headers,
    )


async def seat_statuses(client: AsyncClient, trip_id: int, headers: dict = None) -> dict:
    response = await client.get(f"/api/v1/trips/{trip_id}/seats", headers=headers or {})
    assert response.status_code == 200
    return {seat["label"]: seat["status"] for seat in response.json()["seats"]}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["lock_backend"] == "database"
        assert data["redis"] == "unused"

    @pytest.mark.asyncio
    async def test_health_reports_disabled_redis(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(get_settings(), "LOCK_BACKEND", "redis")
        monkeypatch.setattr(get_settings(), "REDIS_ENABLED", False)

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["redis"] == "disabled"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "seat_lock_attempts_total" in response.text


class TestTrips:
    @pytest.mark.asyncio
    async def test_admin_creates_trip(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/trips/", json=trip_payload(), headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["total_seats"] == 8
        assert data["bus_name"] == "Hanif Express"

        statuses = await seat_statuses(client, data["id"])
        assert list(statuses) == ["A1", "A2", "A3", "A4", "B1", "B2", "B3", "B4"]

    @pytest.mark.asyncio
    async def test_passenger_cannot_create_trip(self, client: AsyncClient, alice_headers):
        response = await client.post("/api/v1/trips/", json=trip_payload(), headers=alice_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_cannot_create_trip(self, client: AsyncClient):
        response = await client.post("/api/v1/trips/", json=trip_payload())

        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total_seats", [0, 6, 30, 108])
    async def test_invalid_seat_count(self, client: AsyncClient, admin_headers, total_seats):
        response = await client.post(
            "/api/v1/trips/", json=trip_payload(total_seats=total_seats), headers=admin_headers
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_seat_count"

    @pytest.mark.asyncio
    async def test_get_trip(self, client: AsyncClient, small_trip):
        response = await client.get(f"/api/v1/trips/{small_trip.id}")

        assert response.status_code == 200
        assert response.json()["id"] == small_trip.id

    @pytest.mark.asyncio
    async def test_unknown_trip(self, client: AsyncClient):
        response = await client.get("/api/v1/trips/999")

        assert response.status_code == 404
        assert response.json()["code"] == "trip_not_found"

    @pytest.mark.asyncio
    async def test_seat_stream_unknown_trip(self, client: AsyncClient):
        response = await client.get("/api/v1/trips/999/seats/stream")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bad_token_is_rejected(self, client: AsyncClient, small_trip):
        response = await client.get(
            f"/api/v1/trips/{small_trip.id}/seats",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401


class TestLocks:
    @pytest.mark.asyncio
    async def test_lock_and_conflict(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        response = await lock_seat(client, small_trip.id, "A1", alice_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["outcome"] == "acquired"
        assert data["holder"] == "alice"

        response = await lock_seat(client, small_trip.id, "A1", bob_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "already_locked"
        assert response.json()["seat"] == "A1"

        response = await lock_seat(client, small_trip.id, "A1", alice_headers)
        assert response.status_code == 201
        assert response.json()["outcome"] == "renewed"

    @pytest.mark.asyncio
    async def test_seat_map_shows_viewer_locks(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        await lock_seat(client, small_trip.id, "A3", alice_headers)

        assert (await seat_statuses(client, small_trip.id, alice_headers))["A3"] == "locked_by_me"
        assert (await seat_statuses(client, small_trip.id, bob_headers))["A3"] == "locked_by_other"
        assert (await seat_statuses(client, small_trip.id))["A3"] == "locked_by_other"

    @pytest.mark.asyncio
    async def test_release(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        await lock_seat(client, small_trip.id, "A1", alice_headers)

        # another passenger's release leaves the lock alone
        response = await client.delete(f"/api/v1/trips/{small_trip.id}/locks/A1", headers=bob_headers)
        assert response.status_code == 204
        assert (await seat_statuses(client, small_trip.id, alice_headers))["A1"] == "locked_by_me"

        response = await client.delete(f"/api/v1/trips/{small_trip.id}/locks/A1", headers=alice_headers)
        assert response.status_code == 204
        assert (await seat_statuses(client, small_trip.id))["A1"] == "available"

        # releasing again is still fine
        response = await client.delete(f"/api/v1/trips/{small_trip.id}/locks/A1", headers=alice_headers)
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_unknown_seat(self, client: AsyncClient, small_trip, alice_headers):
        response = await lock_seat(client, small_trip.id, "Z9", alice_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "unknown_seat"

    @pytest.mark.asyncio
    async def test_disabled_redis_backend_is_unavailable(
        self, client: AsyncClient, small_trip, alice_headers, monkeypatch
    ):
        monkeypatch.setattr(get_settings(), "LOCK_BACKEND", "redis")
        monkeypatch.setattr(get_settings(), "REDIS_ENABLED", False)

        response = await lock_seat(client, small_trip.id, "A1", alice_headers)

        assert response.status_code == 503
        assert response.json()["code"] == "store_unavailable"

    @pytest.mark.asyncio
    async def test_lock_requires_token(self, client: AsyncClient, small_trip):
        response = await client.post(f"/api/v1/trips/{small_trip.id}/locks", json={"seat": "A1"})

        assert response.status_code == 401


class TestBookings:
    @pytest.mark.asyncio
    async def test_book_and_view_ticket(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        response = await book_seats(client, small_trip.id, ["A2", "A1"], alice_headers)

        assert response.status_code == 201
        booking = response.json()
        assert booking["seat_labels"] == ["A1", "A2"]
        assert float(booking["total_price"]) == 1000.0
        assert booking["payment_reference"] == "TX-55"
        assert booking["payment_verified"] is False

        response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=alice_headers)
        assert response.status_code == 200
        ticket = response.json()
        assert ticket["bus_name"] == "Green Line"
        assert ticket["origin"] == "Dhaka"
        assert ticket["destination"] == "Chittagong"
        assert ticket["seat_labels"] == ["A1", "A2"]

        # other passengers cannot see it
        response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=bob_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "booking_not_found"

    @pytest.mark.asyncio
    async def test_booking_history(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        await book_seats(client, small_trip.id, ["A1"], alice_headers)
        await book_seats(client, small_trip.id, ["B1"], bob_headers)
        await book_seats(client, small_trip.id, ["B2"], alice_headers)

        response = await client.get("/api/v1/bookings", headers=alice_headers)

        assert response.status_code == 200
        assert sorted(b["seat_labels"][0] for b in response.json()) == ["A1", "B2"]

    @pytest.mark.asyncio
    async def test_too_many_seats(self, client: AsyncClient, bus_trip, alice_headers):
        response = await book_seats(client, bus_trip.id, ["A1", "A2", "A3", "A4", "B1"], alice_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "too_many_seats"

    @pytest.mark.asyncio
    async def test_blank_payment_reference(self, client: AsyncClient, small_trip, alice_headers):
        response = await book_seats(client, small_trip.id, ["A1"], alice_headers, reference=" ")

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_payment_reference"

    @pytest.mark.asyncio
    async def test_seat_already_booked(self, client: AsyncClient, small_trip, alice_headers, bob_headers):
        await book_seats(client, small_trip.id, ["B1"], bob_headers)

        response = await book_seats(client, small_trip.id, ["A1", "B1"], alice_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "seat_already_booked"
        assert response.json()["seat"] == "B1"
        assert (await seat_statuses(client, small_trip.id))["A1"] == "available"

    @pytest.mark.asyncio
    async def test_booking_requires_token(self, client: AsyncClient, small_trip):
        response = await client.post(
            f"/api/v1/trips/{small_trip.id}/bookings",
            json={"seats": ["A1"], "payment_reference": "TX-1"},
        )

        assert response.status_code == 401


class TestAdmin:
    @pytest.mark.asyncio
    async def test_verify_payment(self, client: AsyncClient, small_trip, alice_headers, admin_headers):
        booking = (await book_seats(client, small_trip.id, ["A1"], alice_headers)).json()

        response = await client.get("/api/v1/admin/bookings?verified=false", headers=admin_headers)
        assert [b["id"] for b in response.json()] == [booking["id"]]

        for _ in range(2):
            response = await client.post(
                f"/api/v1/admin/bookings/{booking['id']}/verify-payment", headers=admin_headers
            )
            assert response.status_code == 200
            assert response.json()["payment_verified"] is True

        response = await client.get("/api/v1/admin/bookings?verified=true", headers=admin_headers)
        assert [b["id"] for b in response.json()] == [booking["id"]]
        response = await client.get("/api/v1/admin/bookings?verified=false", headers=admin_headers)
        assert response.json() == []

        ticket = (await client.get(f"/api/v1/bookings/{booking['id']}", headers=alice_headers)).json()
        assert ticket["payment_verified"] is True

    @pytest.mark.asyncio
    async def test_verify_unknown_booking(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/admin/bookings/4242/verify-payment", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_routes_need_admin_role(self, client: AsyncClient, small_trip, alice_headers):
        assert (await client.get("/api/v1/admin/bookings", headers=alice_headers)).status_code == 403
        response = await client.post(f"/api/v1/admin/trips/{small_trip.id}/sweep", headers=alice_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_expired(self, client: AsyncClient, small_trip, alice_headers, admin_headers):
        await lock_seat(client, small_trip.id, "A1", alice_headers)

        response = await client.post(f"/api/v1/admin/trips/{small_trip.id}/sweep", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"trip_id": small_trip.id, "deleted": 0}
        assert (await seat_statuses(client, small_trip.id, alice_headers))["A1"] == "locked_by_me"

    @pytest.mark.asyncio
    async def test_force_release(self, client: AsyncClient, small_trip, alice_headers, admin_headers):
        await lock_seat(client, small_trip.id, "A1", alice_headers)

        response = await client.delete(f"/api/v1/admin/trips/{small_trip.id}/locks/A1", headers=admin_headers)

        assert response.status_code == 204
        assert (await seat_statuses(client, small_trip.id, alice_headers))["A1"] == "available"


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_two_passengers_one_seat(
        self, client: AsyncClient, small_trip, alice_headers, bob_headers, carol_headers
    ):
        """Lock race, commit by the winner, then everyone sees the seat as sold."""
        responses = await asyncio.gather(
            lock_seat(client, small_trip.id, "A2", alice_headers),
            lock_seat(client, small_trip.id, "A2", bob_headers),
        )
        codes = sorted(r.status_code for r in responses)
        assert codes == [201, 409]

        winner = next(r for r in responses if r.status_code == 201).json()["holder"]
        winner_headers = alice_headers if winner == "alice" else bob_headers
        loser = next(r for r in responses if r.status_code == 409).json()
        assert loser["code"] == "already_locked"

        response = await book_seats(client, small_trip.id, ["A2"], winner_headers)
        assert response.status_code == 201
        assert response.json()["seat_labels"] == ["A2"]

        # the committed seat is booked, and the winner's lock is gone
        assert (await seat_statuses(client, small_trip.id, carol_headers))["A2"] == "booked"
        assert (await seat_statuses(client, small_trip.id, winner_headers))["A2"] == "booked"

        response = await lock_seat(client, small_trip.id, "A2", carol_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "already_booked"
