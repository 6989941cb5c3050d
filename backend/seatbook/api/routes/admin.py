"""
Admin endpoints: payment verification and lock housekeeping.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.api.deps import get_lock_manager, get_store
from seatbook.core.clock import utcnow
from seatbook.core.security import require_admin
from seatbook.db.session import get_db
from seatbook.schemas.booking import BookingResponse, PaymentVerificationResponse
from seatbook.schemas.seat import SweepResponse
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.ledger_service import list_bookings, verify_payment
from seatbook.services.lock_service import LockManager
from seatbook.services.sweeper import sweep
from seatbook.services.trip_service import get_trip

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/bookings", response_model=list[BookingResponse])
async def list_all_bookings(
    verified: Optional[bool] = Query(None),
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All bookings, newest first. Filter on payment_verified with `verified`."""
    return await list_bookings(db, verified=verified)


@router.post("/bookings/{booking_id}/verify-payment", response_model=PaymentVerificationResponse)
async def verify_booking_payment(
    booking_id: int,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await verify_payment(db, booking_id, verified_by=admin_id)
    return PaymentVerificationResponse(
        message="Payment verified",
        booking_id=booking.id,
        payment_verified=booking.payment_verified,
    )


@router.post("/trips/{trip_id}/sweep", response_model=SweepResponse)
async def sweep_trip_locks(
    trip_id: int,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: LockStore = Depends(get_store),
):
    """Delete expired lock records of a trip now instead of waiting for the sweeper."""
    await get_trip(db, trip_id)
    deleted = await sweep(store, trip_id, utcnow())
    return SweepResponse(trip_id=trip_id, deleted=deleted)


@router.delete("/trips/{trip_id}/locks/{seat}", status_code=status.HTTP_204_NO_CONTENT)
async def force_release_seat_lock(
    trip_id: int,
    seat: str,
    admin_id: str = Depends(require_admin),
    manager: LockManager = Depends(get_lock_manager),
):
    """Release a seat lock whoever holds it."""
    await manager.release(trip_id, seat)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
