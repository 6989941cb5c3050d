"""
Alembic migration environment for the booking schema.

Online runs go through the application's async engine URL (asyncpg), so
migrations and the API share one driver and one set of credentials.
Offline runs only render SQL and use DATABASE_URL_SYNC. SQLite targets
get batch mode, since SQLite cannot ALTER constraints in place.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from seatbook.core.config import get_settings
from seatbook.db.base import Base
from seatbook.models import Booking, SeatAvailability, SeatLock, Trip, UserBookingIndex  # noqa: F401 - registers tables

config = context.config
settings = get_settings()

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _configure(database_url: str, **kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=make_url(database_url).get_backend_name() == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Render the migration SQL to stdout without a database."""
    _configure(
        settings.DATABASE_URL_SYNC,
        url=settings.DATABASE_URL_SYNC,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    _configure(settings.DATABASE_URL, connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = settings.DATABASE_URL
    engine = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
