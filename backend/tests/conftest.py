"""
Pytest fixtures for test database, client, clock, and identities.

Each test gets a fresh SQLite file database. Transactions there start
with BEGIN IMMEDIATE, so concurrent sessions queue on the write lock the
way concurrent PostgreSQL transactions queue on row locks.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

_TEST_DIR = tempfile.mkdtemp(prefix="seatbook-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("LOCK_BACKEND", "database")
os.environ.setdefault("SWEEPER_ENABLED", "false")
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seatbook.core.security import create_access_token
from seatbook.db.base import Base
from seatbook.db.session import build_engine, get_db, get_session_factory
from seatbook.main import app
from seatbook.models.trip import Trip
from seatbook.schemas.trip import TripCreate
from seatbook.services.trip_service import create_trip


class FakeClock:
    """Deterministic UTC clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a per-test database, yield a session factory, then dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/seatbook.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session from the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc))


def _headers(sub: str, **claims) -> dict:
    token = create_access_token(data={"sub": sub, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers() -> dict:
    return _headers("alice")


@pytest.fixture
def bob_headers() -> dict:
    return _headers("bob")


@pytest.fixture
def carol_headers() -> dict:
    return _headers("carol")


@pytest.fixture
def admin_headers() -> dict:
    return _headers("admin-1", role="admin")


async def make_trip(session_factory: async_sessionmaker, total_seats: int = 8, price: str = "500") -> Trip:
    async with session_factory() as db:
        return await create_trip(
            db,
            TripCreate(
                bus_name="Green Line",
                origin="Dhaka",
                destination="Chittagong",
                departure_at=datetime.now(timezone.utc) + timedelta(days=3),
                ac_type="AC",
                total_seats=total_seats,
                price=Decimal(price),
            ),
        )


@pytest_asyncio.fixture
async def small_trip(session_factory: async_sessionmaker) -> Trip:
    """A trip with two rows of seats (A1-A4, B1-B4) at 500 per seat."""
    return await make_trip(session_factory, total_seats=8)


@pytest_asyncio.fixture
async def bus_trip(session_factory: async_sessionmaker) -> Trip:
    """A full 32-seat bus."""
    return await make_trip(session_factory, total_seats=32, price="750")


@pytest.fixture
def trip_factory(session_factory: async_sessionmaker):
    async def factory(total_seats: int = 8, price: str = "500") -> Trip:
        return await make_trip(session_factory, total_seats=total_seats, price=price)

    return factory
