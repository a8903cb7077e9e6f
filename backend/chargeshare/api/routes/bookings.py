"""
Direct booking endpoints with concurrency-safe slot reservation.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.api.dependencies import require_driver
from chargeshare.db.session import get_db
from chargeshare.models.account import Account
from chargeshare.schemas.booking import (
    BookingCreate, BookingResponse, BookingCreatedResponse, BookingActionResponse,
)
from chargeshare.services.booking_service import (
    create_booking, complete_booking, cancel_booking, list_user_bookings,
)
from chargeshare.services.cache_service import invalidate_charger_cache

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a charger slot immediately.

    The slot is claimed with a conditional update, so concurrent bookings for
    the last slot cannot both succeed; the loser gets a retryable 409.
    """
    booking = await create_booking(
        db, driver.id, booking_data.charger_id, booking_data.start_time, booking_data.duration_hours,
    )
    await db.commit()
    await invalidate_charger_cache()
    return BookingCreatedResponse(
        message="Booking created successfully",
        booking=BookingResponse.model_validate(booking),
        green_points_earned=booking.green_points_earned,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_my_bookings(
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the calling driver."""
    return await list_user_bookings(db, driver.id)


@router.put("/{booking_id}/complete", response_model=BookingActionResponse)
async def complete_booking_endpoint(
    booking_id: int,
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    """Finish a booking and release its slot."""
    booking = await complete_booking(db, driver.id, booking_id)
    await db.commit()
    await invalidate_charger_cache()
    return BookingActionResponse(
        message="Booking completed successfully",
        booking=BookingResponse.model_validate(booking),
    )


@router.put("/{booking_id}/cancel", response_model=BookingActionResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking, release its slot and revoke the points it earned."""
    booking = await cancel_booking(db, driver.id, booking_id)
    await db.commit()
    await invalidate_charger_cache()
    return BookingActionResponse(
        message="Booking cancelled successfully",
        booking=BookingResponse.model_validate(booking),
    )
