"""
Seat lock endpoints, called by the seat picker on every seat tap.
"""

from fastapi import APIRouter, Depends, Response, status

from seatbook.api.deps import get_lock_manager
from seatbook.core.exceptions import SeatUnavailable
from seatbook.core.security import get_current_user_id
from seatbook.schemas.seat import LockRequest, LockResponse
from seatbook.services.lock_service import LockManager

router = APIRouter(prefix="/trips/{trip_id}/locks", tags=["Seat Locks"])


@router.post("", response_model=LockResponse, status_code=status.HTTP_201_CREATED)
async def acquire_seat_lock(
    trip_id: int,
    lock_data: LockRequest,
    user_id: str = Depends(get_current_user_id),
    manager: LockManager = Depends(get_lock_manager),
):
    """
    Hold a seat for the lock TTL. Tapping a seat you already hold renews it.
    Returns 409 if the seat is booked or held by someone else.
    """
    result = await manager.acquire(trip_id, lock_data.seat, user_id)
    if not result.acquired:
        raise SeatUnavailable(lock_data.seat, result.outcome.value)
    return LockResponse(
        trip_id=trip_id,
        seat=result.seat_label,
        outcome=result.outcome.value,
        holder=result.lock.holder,
        expires_at=result.lock.expires_at,
    )


@router.delete("/{seat}", status_code=status.HTTP_204_NO_CONTENT)
async def release_seat_lock(
    trip_id: int,
    seat: str,
    user_id: str = Depends(get_current_user_id),
    manager: LockManager = Depends(get_lock_manager),
):
    """Release your lock on a seat. Always 204, whether or not a lock was held."""
    await manager.release(trip_id, seat, holder=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
