"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from seatbook.api.routes import admin, bookings, locks, trips

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(trips.router)
api_router.include_router(locks.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
