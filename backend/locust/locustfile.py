"""
Locust Load Test Suite

Tokens are minted locally with the server's SECRET_KEY, so run with the
same environment as the API.

Run scenarios:
  locust -f locustfile.py --tags contention  # Many passengers, one row of seats
  locust -f locustfile.py --tags read        # Seat map polling
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests
"""

import random
import uuid
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

from seatbook.core.security import create_access_token

# Shared state
CONTENTION_TRIP_ID = None
TRIP_IDS = []

CONTENTION_SEATS = ["A1", "A2", "A3", "A4"]


def passenger_headers() -> dict:
    token = create_access_token(data={"sub": f"load-{uuid.uuid4().hex[:10]}"})
    return {"Authorization": f"Bearer {token}"}


def admin_headers() -> dict:
    token = create_access_token(data={"sub": "load-admin", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def trip_payload(total_seats: int) -> dict:
    departure = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 30))
    return {
        "bus_name": f"Load Bus {random.randint(1, 10000)}",
        "origin": "Dhaka",
        "destination": "Chittagong",
        "departure_at": departure.isoformat(),
        "ac_type": random.choice(["AC", "Non AC"]),
        "total_seats": total_seats,
        "price": "500.00",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: trips are created by the first users to start")
    print("=" * 60)


class SeatRaceUser(HttpUser):
    """
    TEST 1: Contention - every user fights for the same four seats

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify no seat was sold twice:
      SELECT booked_seats FROM seat_availability WHERE trip_id = X;
      SELECT seat_labels FROM bookings WHERE trip_id = X;
    The booking seat lists must be disjoint and together equal booked_seats.
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = passenger_headers()

        if not CONTENTION_TRIP_ID:
            resp = self.client.post("/api/v1/trips/", json=trip_payload(32), headers=admin_headers())
            if resp.status_code == 201:
                globals()["CONTENTION_TRIP_ID"] = resp.json()["id"]
                print(f"\nCreated contention trip {CONTENTION_TRIP_ID}\n")

    @tag("contention")
    @task(3)
    def lock_seat(self):
        if not CONTENTION_TRIP_ID:
            return

        with self.client.post(
            f"/api/v1/trips/{CONTENTION_TRIP_ID}/locks",
            json={"seat": random.choice(CONTENTION_SEATS)},
            headers=self.headers,
            name="/api/v1/trips/{id}/locks",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: locked by someone else or sold
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def book_seats(self):
        if not CONTENTION_TRIP_ID:
            return

        seats = random.sample(CONTENTION_SEATS, random.randint(1, 2))
        with self.client.post(
            f"/api/v1/trips/{CONTENTION_TRIP_ID}/bookings",
            json={"seats": seats, "payment_reference": uuid.uuid4().hex[:12]},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: sold out or commit conflict
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class SeatMapUser(HttpUser):
    """
    TEST 2: Read path - seat map polling

    Run once per lock backend (LOCK_BACKEND=database, then redis) and compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """

    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(10)
    def poll_seat_map(self):
        trip_id = CONTENTION_TRIP_ID or (random.choice(TRIP_IDS) if TRIP_IDS else None)
        if trip_id:
            self.client.get(f"/api/v1/trips/{trip_id}/seats", name="/api/v1/trips/{id}/seats")

    @tag("read")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """

    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = passenger_headers()

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_trip(self):
        with self.client.post(
            "/api/v1/trips/999999/bookings",
            json={"seats": ["A1"], "payment_reference": "TX"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, [404])

    @tag("edge")
    @task
    def too_many_seats(self):
        trip_id = CONTENTION_TRIP_ID or 1
        with self.client.post(
            f"/api/v1/trips/{trip_id}/bookings",
            json={"seats": ["B1", "B2", "B3", "B4", "C1"], "payment_reference": "TX"},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings [too many]",
            catch_response=True,
        ) as resp:
            self.expect(resp, [404, 422])

    @tag("edge")
    @task
    def unknown_seat(self):
        trip_id = CONTENTION_TRIP_ID or 1
        with self.client.post(
            f"/api/v1/trips/{trip_id}/locks",
            json={"seat": "Z99"},
            headers=self.headers,
            name="/api/v1/trips/{id}/locks [unknown seat]",
            catch_response=True,
        ) as resp:
            self.expect(resp, [404, 422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/trips/1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/trips/1/locks",
            json={"seat": "A1"},
            catch_response=True,
        ) as resp:
            self.expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly seat map views, some lock taps, occasional bookings,
    rare trip registration.
    """

    wait_time = between(1, 3)

    def on_start(self):
        self.headers = passenger_headers()
        self.pick = None
        self.held = []

    @task(50)
    def view_seat_map(self):
        if not TRIP_IDS:
            return
        trip_id = random.choice(TRIP_IDS)
        resp = self.client.get(
            f"/api/v1/trips/{trip_id}/seats",
            headers=self.headers,
            name="/api/v1/trips/{id}/seats",
        )
        if resp.status_code == 200:
            free = [s["label"] for s in resp.json()["seats"] if s["status"] == "available"]
            if free:
                self.pick = (trip_id, random.choice(free))

    @task(15)
    def tap_seat(self):
        if not self.pick:
            return
        trip_id, seat = self.pick
        resp = self.client.post(
            f"/api/v1/trips/{trip_id}/locks",
            json={"seat": seat},
            headers=self.headers,
            name="/api/v1/trips/{id}/locks",
        )
        if resp.status_code == 201:
            self.held.append(self.pick)

    @task(5)
    def checkout(self):
        if not self.held:
            return
        trip_id = self.held[-1][0]
        seats = [seat for t, seat in self.held if t == trip_id][:4]
        self.client.post(
            f"/api/v1/trips/{trip_id}/bookings",
            json={"seats": seats, "payment_reference": uuid.uuid4().hex[:12], "payment_method": "bkash"},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings",
        )
        self.held = []

    @task(1)
    def register_trip(self):
        resp = self.client.post(
            "/api/v1/trips/",
            json=trip_payload(random.choice([28, 32, 36, 40])),
            headers=admin_headers(),
        )
        if resp.status_code == 201:
            TRIP_IDS.append(resp.json()["id"])
