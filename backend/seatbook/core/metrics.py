"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Seat lock metrics
seat_lock_attempts = Counter(
    'seat_lock_attempts_total',
    'Seat lock acquire attempts',
    ['result']  # acquired, renewed, already_locked, already_booked
)

seat_lock_latency = Histogram(
    'seat_lock_latency_seconds',
    'Seat lock acquire latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

seat_lock_releases = Counter(
    'seat_lock_releases_total',
    'Seat lock releases',
    ['result']  # released, absent
)

locks_swept = Counter(
    'seat_locks_swept_total',
    'Expired seat locks deleted by the sweeper'
)

# Booking commit metrics
booking_commits = Counter(
    'booking_commits_total',
    'Booking commit attempts',
    ['status']  # success, seat_already_booked, too_many_seats, conflict
)

booking_commit_latency = Histogram(
    'booking_commit_latency_seconds',
    'Booking commit latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

commit_retries = Counter(
    'booking_commit_retries_total',
    'Commit re-validations caused by availability version conflicts'
)

post_commit_failures = Counter(
    'booking_post_commit_failures_total',
    'Best-effort steps that failed after a successful commit',
    ['step']  # release_locks, user_index
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_lock_attempt(result: str):
    """Record lock attempt. Result: acquired, renewed, already_locked, already_booked"""
    seat_lock_attempts.labels(result=result).inc()


def record_commit(status: str):
    """Record commit attempt. Status: success, seat_already_booked, too_many_seats, conflict"""
    booking_commits.labels(status=status).inc()
