"""
Trip endpoints: registration, seat map, and the live seat stream.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sse_starlette.sse import EventSourceResponse

from seatbook.api.deps import get_store
from seatbook.core.logging import get_logger
from seatbook.core.security import get_optional_user_id, require_admin
from seatbook.db.session import get_db, get_session_factory
from seatbook.schemas.seat import SeatMapResponse
from seatbook.schemas.trip import TripCreate, TripResponse
from seatbook.services.availability_service import observe, read_seat_map
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.trip_service import create_trip, get_trip

logger = get_logger(__name__)
router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("/", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip_endpoint(
    trip_data: TripCreate,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Register a trip from the catalog and open its seat map for booking."""
    return await create_trip(db, trip_data)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip_endpoint(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await get_trip(db, trip_id)


@router.get("/{trip_id}/seats", response_model=SeatMapResponse)
async def get_seat_map(
    trip_id: int,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
    store: LockStore = Depends(get_store),
):
    """
    Every seat of the trip classified as available, locked_by_other,
    locked_by_me or booked. Pass a token to see your own locks.
    """
    return await read_seat_map(db, store, trip_id, holder=user_id)


@router.get("/{trip_id}/seats/stream")
async def stream_seat_map(
    trip_id: int,
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    Server-sent events carrying the seat map whenever it changes.

    The first event is `initial_status`, later ones `status_update`.
    """
    # 404 before opening the stream; the stream polls with its own sessions
    await get_trip(db, trip_id)
    await db.commit()

    async def event_generator():
        event_type = "initial_status"
        async for snapshot in observe(session_factory, trip_id, holder=user_id):
            if await request.is_disconnected():
                logger.info("seat_stream_disconnected", trip_id=trip_id)
                break
            yield {"event": event_type, "data": json.dumps(snapshot.model_dump(mode="json"))}
            event_type = "status_update"

    return EventSourceResponse(event_generator())
