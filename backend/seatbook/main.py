"""
Seat Booking API - Main Application Entry Point

Seat reservation and booking for scheduled bus trips:
- Per-seat locks with TTL expiry for the interactive seat picker
- Atomic, all-or-nothing booking commits re-validated against sold seats
- Background sweeper for expired locks
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from seatbook.api.middleware import RequestLoggingMiddleware
from seatbook.api.router import api_router
from seatbook.core.config import get_settings
from seatbook.core.exceptions import register_exception_handlers
from seatbook.core.logging import get_logger, setup_logging
from seatbook.core.metrics import metrics_endpoint
from seatbook.db.session import async_session
from seatbook.infrastructure.redis_client import close_redis, ping_redis
from seatbook.services.strategy_factory import get_lock_store
from seatbook.services.sweeper import ExpirySweeper

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        lock_backend=settings.LOCK_BACKEND,
    )

    if settings.LOCK_BACKEND == "redis" and not settings.REDIS_ENABLED:
        logger.warning("redis_disabled", message="Seat locks will fail while REDIS_ENABLED is false")
    elif settings.LOCK_BACKEND == "redis":
        if await ping_redis():
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Seat locks will fail until Redis is reachable")

    sweeper = None
    if settings.SWEEPER_ENABLED:
        sweeper = ExpirySweeper(
            async_session,
            get_lock_store,
            interval=settings.SWEEP_INTERVAL_SECONDS,
        )
        sweeper.start()
    app.state.sweeper = sweeper

    yield

    if sweeper is not None:
        await sweeper.stop()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat reservation and booking commit engine for bus trips",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    redis_status = "unused"
    if settings.LOCK_BACKEND == "redis":
        if not settings.REDIS_ENABLED:
            redis_status = "disabled"
        else:
            redis_status = "connected" if await ping_redis() else "unavailable"
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "lock_backend": settings.LOCK_BACKEND,
        "redis": redis_status,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
