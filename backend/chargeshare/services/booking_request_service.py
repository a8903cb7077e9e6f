"""
Booking request state machine.

    (none)   --create(driver)---------> pending
    pending  --approve(owner)---------> approved           reserve slot, materialize Booking
    pending  --reject(owner)----------> rejected           reason required
    pending  --cancel(driver)---------> cancelled
    approved --start_session(owner)---> session_active
    approved --cancel_session(owner)--> session_cancelled  release slot
    session_active --end_session(owner)--> session_ended

rejected, cancelled, session_ended and session_cancelled are terminal.

Capacity is not checked at creation: several pending requests may compete
for one slot and the first approval wins. A failed approval (no capacity)
leaves the request pending; the owner decides whether to reject it.

Ending a session does not release the slot or touch the ledger. The
materialized booking keeps the slot until the driver completes or cancels it.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import ReservationValidationError, ForbiddenError
from chargeshare.core.logging import get_logger
from chargeshare.models.booking import Booking, BOOKING_ACTIVE, BOOKING_CANCELLED
from chargeshare.models.booking_request import (
    BookingRequest,
    REQUEST_PENDING,
    REQUEST_APPROVED,
    REQUEST_REJECTED,
    REQUEST_CANCELLED,
    REQUEST_SESSION_ACTIVE,
    REQUEST_SESSION_ENDED,
    REQUEST_SESSION_CANCELLED,
)
from chargeshare.services.reservations import (
    ReservationKind,
    validate_duration,
    compute_end_time,
    ensure_party,
    instrumented,
    load,
    move,
    transition,
)
from chargeshare.services.resource_registry import get_charger, release_slot

logger = get_logger(__name__)
settings = get_settings()

REQUEST = ReservationKind.REQUEST


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _owned_request(db: AsyncSession, owner_id: int, request_id: int, action: str) -> BookingRequest:
    request = await load(db, REQUEST, request_id)
    # Authorize against the charger, not the role claim or the copied owner_id.
    charger = await get_charger(db, request.charger_id)
    ensure_party(request, owner_id, charger.owner_id, action)
    return request


@instrumented(REQUEST, "create")
async def create_booking_request(
    db: AsyncSession,
    driver_id: int,
    charger_id: int,
    start_time: datetime,
    duration_hours: float,
) -> BookingRequest:
    """Create a pending request. Capacity is checked at approval, not here."""
    if start_time is None:
        raise ReservationValidationError("Missing required fields")
    validate_duration(duration_hours)
    charger = await get_charger(db, charger_id)

    request = BookingRequest(
        user_id=driver_id,
        charger_id=charger.id,
        owner_id=charger.owner_id,
        start_time=start_time,
        duration_hours=duration_hours,
        status=REQUEST_PENDING,
    )
    db.add(request)
    await db.flush()
    await db.refresh(request)

    logger.info(
        "booking_request_created",
        request_id=request.id,
        user_id=driver_id,
        charger_id=charger_id,
        owner_id=charger.owner_id,
    )
    return request


@instrumented(REQUEST, "approve")
async def approve_booking_request(
    db: AsyncSession,
    owner_id: int,
    request_id: int,
) -> tuple[BookingRequest, Booking]:
    """Approve a pending request: claim a slot and materialize an active Booking."""
    request = await _owned_request(db, owner_id, request_id, "approve")

    await move(db, REQUEST, request, "approve", REQUEST_PENDING, REQUEST_APPROVED, approved_at=_now())

    booking = Booking(
        user_id=request.user_id,
        charger_id=request.charger_id,
        start_time=request.start_time,
        end_time=compute_end_time(request.start_time, request.duration_hours),
        duration_hours=request.duration_hours,
        status=BOOKING_ACTIVE,
        green_points_earned=settings.GREEN_POINTS_PER_BOOKING,
    )
    db.add(booking)
    await db.flush()

    request.booking_id = booking.id
    await db.flush()
    await db.refresh(request)
    await db.refresh(booking)

    logger.info(
        "booking_request_approved",
        request_id=request.id,
        booking_id=booking.id,
        charger_id=request.charger_id,
        owner_id=owner_id,
    )
    return request, booking


@instrumented(REQUEST, "reject")
async def reject_booking_request(
    db: AsyncSession,
    owner_id: int,
    request_id: int,
    reason: Optional[str],
) -> BookingRequest:
    if not reason or not reason.strip():
        raise ReservationValidationError("Rejection reason is required")

    request = await _owned_request(db, owner_id, request_id, "reject")
    await transition(
        db, REQUEST, request, "reject", REQUEST_PENDING, REQUEST_REJECTED,
        rejection_reason=reason.strip(),
    )

    logger.info("booking_request_rejected", request_id=request.id, owner_id=owner_id)
    return request


@instrumented(REQUEST, "cancel")
async def cancel_booking_request(db: AsyncSession, driver_id: int, request_id: int) -> BookingRequest:
    """Driver withdraws a request that has not been decided yet."""
    request = await load(db, REQUEST, request_id)
    ensure_party(request, driver_id, request.user_id, "cancel")
    await transition(db, REQUEST, request, "cancel", REQUEST_PENDING, REQUEST_CANCELLED)

    logger.info("booking_request_cancelled", request_id=request.id, user_id=driver_id)
    return request


@instrumented(REQUEST, "start_session")
async def start_charging_session(db: AsyncSession, owner_id: int, request_id: int) -> BookingRequest:
    request = await _owned_request(db, owner_id, request_id, "start a session for")
    await move(
        db, REQUEST, request, "start a session for", REQUEST_APPROVED, REQUEST_SESSION_ACTIVE,
        session_started_at=_now(),
    )

    logger.info("charging_session_started", request_id=request.id, charger_id=request.charger_id)
    return request


@instrumented(REQUEST, "end_session")
async def end_charging_session(db: AsyncSession, owner_id: int, request_id: int) -> BookingRequest:
    request = await _owned_request(db, owner_id, request_id, "end the session for")
    # Plain status write: the slot stays with the materialized booking.
    await transition(
        db, REQUEST, request, "end the session for", REQUEST_SESSION_ACTIVE, REQUEST_SESSION_ENDED,
        session_ended_at=_now(),
    )

    logger.info("charging_session_ended", request_id=request.id, charger_id=request.charger_id)
    return request


@instrumented(REQUEST, "cancel_session")
async def cancel_approved_session(
    db: AsyncSession,
    owner_id: int,
    request_id: int,
) -> tuple[BookingRequest, Optional[Booking]]:
    """Owner calls off an approved session before it starts and frees the slot."""
    request = await _owned_request(db, owner_id, request_id, "cancel the session for")
    await transition(
        db, REQUEST, request, "cancel the session for", REQUEST_APPROVED, REQUEST_SESSION_CANCELLED,
    )

    # The slot is held by the materialized booking. If the driver already
    # completed or cancelled it, the slot is back and must not be released twice.
    booking = None
    holds_slot = request.booking_id is None
    if request.booking_id is not None:
        booking = await load(db, ReservationKind.BOOKING, request.booking_id)
        if booking.status == BOOKING_ACTIVE:
            await transition(
                db, ReservationKind.BOOKING, booking, "cancel", BOOKING_ACTIVE, BOOKING_CANCELLED,
            )
            holds_slot = True
    if holds_slot:
        await release_slot(db, request.charger_id)

    logger.info(
        "charging_session_cancelled",
        request_id=request.id,
        booking_id=request.booking_id,
        charger_id=request.charger_id,
    )
    return request, booking


async def get_booking_request(db: AsyncSession, caller_id: int, request_id: int) -> BookingRequest:
    """Visible to the requesting driver and the charger owner only."""
    request = await load(db, REQUEST, request_id)
    charger = await get_charger(db, request.charger_id)
    if caller_id not in (request.user_id, charger.owner_id):
        raise ForbiddenError("You do not have permission to view this booking request")
    return request


async def list_user_requests(db: AsyncSession, driver_id: int) -> list[BookingRequest]:
    result = await db.execute(
        select(BookingRequest)
        .where(BookingRequest.user_id == driver_id)
        .order_by(BookingRequest.created_at.desc(), BookingRequest.id.desc())
    )
    return list(result.scalars().all())


async def list_owner_requests(
    db: AsyncSession,
    owner_id: int,
    status: Optional[str] = REQUEST_PENDING,
) -> list[BookingRequest]:
    """Requests for the owner's chargers, oldest first so they are handled in order."""
    query = select(BookingRequest).where(BookingRequest.owner_id == owner_id)
    if status is not None:
        query = query.where(BookingRequest.status == status)
    result = await db.execute(query.order_by(BookingRequest.created_at.asc(), BookingRequest.id.asc()))
    return list(result.scalars().all())
