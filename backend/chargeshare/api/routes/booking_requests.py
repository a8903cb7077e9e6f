"""
Booking request endpoints: driver proposals and owner decisions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.api.dependencies import get_current_account, require_driver, require_owner
from chargeshare.db.session import get_db
from chargeshare.models.account import Account
from chargeshare.models.booking_request import REQUEST_PENDING
from chargeshare.schemas.booking import BookingResponse
from chargeshare.schemas.booking_request import (
    BookingRequestCreate,
    BookingRequestReject,
    BookingRequestResponse,
    BookingRequestActionResponse,
)
from chargeshare.services import booking_request_service as requests
from chargeshare.services.cache_service import invalidate_charger_cache

router = APIRouter(prefix="/booking-requests", tags=["Booking Requests"])


def _action_response(message: str, request, booking=None) -> BookingRequestActionResponse:
    return BookingRequestActionResponse(
        message=message,
        request=BookingRequestResponse.model_validate(request),
        booking=BookingResponse.model_validate(booking) if booking is not None else None,
    )


# ---------- Driver routes ----------

@router.post("/", response_model=BookingRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request_endpoint(
    request_data: BookingRequestCreate,
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    """Ask the charger owner for a slot. Capacity is checked when the owner approves."""
    request = await requests.create_booking_request(
        db, driver.id, request_data.charger_id, request_data.start_time, request_data.duration_hours,
    )
    await db.commit()
    return request


@router.get("/", response_model=list[BookingRequestResponse])
async def list_my_requests(
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    return await requests.list_user_requests(db, driver.id)


@router.put("/{request_id}/cancel", response_model=BookingRequestActionResponse)
async def cancel_request_endpoint(
    request_id: int,
    driver: Account = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
):
    request = await requests.cancel_booking_request(db, driver.id, request_id)
    await db.commit()
    return _action_response("Booking request cancelled", request)


# ---------- Owner routes ----------

@router.get("/owner", response_model=list[BookingRequestResponse])
async def list_owner_requests_endpoint(
    request_status: Optional[str] = Query(REQUEST_PENDING, alias="status"),
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Requests for the caller's chargers, pending ones by default."""
    return await requests.list_owner_requests(db, owner.id, request_status)


@router.put("/{request_id}/approve", response_model=BookingRequestActionResponse)
async def approve_request_endpoint(
    request_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending request. 409 with retryable=true when the charger is full."""
    request, booking = await requests.approve_booking_request(db, owner.id, request_id)
    await db.commit()
    await invalidate_charger_cache()
    return _action_response("Booking request approved", request, booking)


@router.put("/{request_id}/reject", response_model=BookingRequestActionResponse)
async def reject_request_endpoint(
    request_id: int,
    rejection: BookingRequestReject,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    request = await requests.reject_booking_request(db, owner.id, request_id, rejection.reason)
    await db.commit()
    return _action_response("Booking request rejected", request)


@router.put("/{request_id}/session/start", response_model=BookingRequestActionResponse)
async def start_session_endpoint(
    request_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    request = await requests.start_charging_session(db, owner.id, request_id)
    await db.commit()
    return _action_response("Charging session started", request)


@router.put("/{request_id}/session/end", response_model=BookingRequestActionResponse)
async def end_session_endpoint(
    request_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    request = await requests.end_charging_session(db, owner.id, request_id)
    await db.commit()
    return _action_response("Charging session ended", request)


@router.put("/{request_id}/session/cancel", response_model=BookingRequestActionResponse)
async def cancel_session_endpoint(
    request_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Call off an approved session before it starts; the slot is released."""
    request, booking = await requests.cancel_approved_session(db, owner.id, request_id)
    await db.commit()
    await invalidate_charger_cache()
    return _action_response("Charging session cancelled", request, booking)


# ---------- Shared ----------

@router.get("/{request_id}", response_model=BookingRequestResponse)
async def get_request_endpoint(
    request_id: int,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Visible to the requesting driver and the charger owner."""
    return await requests.get_booking_request(db, account.id, request_id)
