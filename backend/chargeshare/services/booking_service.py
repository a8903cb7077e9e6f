"""
Direct booking lifecycle with concurrency-safe slot accounting.

A driver books a slot immediately, without owner approval:

    (none) --create--> active --complete--> completed
                       active --cancel----> cancelled

CONCURRENCY STRATEGY
====================

Problem:
  Two drivers book the last slot simultaneously.
  Both read available_slots=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  Capacity is claimed with reserve_slot's conditional UPDATE
  (`WHERE available_slots > 0`), so only one of them matches the row.
  Completion and cancellation flip the status with a compare-and-set on
  `status = 'active'`, so a booking cannot be completed and cancelled
  concurrently and its slot is released exactly once.

  The booking insert, slot decrement and ledger award share the request's
  transaction; a failure anywhere rolls all of them back.

Ledger rules:
  - create awards the session (hours, CO2, points) immediately
  - complete leaves the award in place
  - cancel revokes exactly `green_points_earned` recorded on the booking;
    session, CO2 and hour counters are not reversed
  - a booking materialized by an approved request was never awarded, so
    cancelling it revokes nothing

Materialized bookings:
  The booking and its request hold one slot between them. When the booking
  leaves `active`, the request leaves its occupying status in the same
  transaction (complete -> session_ended, cancel -> session_cancelled), so
  no request stays approved or in session without a slot.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import ReservationValidationError
from chargeshare.core.logging import get_logger
from chargeshare.models.booking import Booking, BOOKING_ACTIVE, BOOKING_COMPLETED, BOOKING_CANCELLED
from chargeshare.models.booking_request import (
    BookingRequest, REQUEST_SESSION_ENDED, REQUEST_SESSION_CANCELLED,
)
from chargeshare.services.account_ledger import award_session, revoke_points
from chargeshare.services.reservations import (
    OCCUPYING_STATUSES,
    ReservationKind,
    validate_duration,
    compute_end_time,
    ensure_party,
    instrumented,
    load,
    move,
    transition,
)
from chargeshare.services.resource_registry import reserve_slot, get_owned_charger

logger = get_logger(__name__)
settings = get_settings()

BOOKING = ReservationKind.BOOKING
REQUEST = ReservationKind.REQUEST


async def _linked_request(db: AsyncSession, booking: Booking) -> Optional[BookingRequest]:
    """The request this booking was materialized from, if any."""
    return await db.scalar(
        select(BookingRequest)
        .where(BookingRequest.booking_id == booking.id)
        .execution_options(populate_existing=True)
    )


async def _close_linked_request(db: AsyncSession, request: Optional[BookingRequest], target: str, **values) -> None:
    # Plain status write: the booking's move already released the shared slot.
    if request is None or request.status not in OCCUPYING_STATUSES[REQUEST]:
        return
    await transition(db, REQUEST, request, "close", request.status, target, **values)


@instrumented(BOOKING, "create")
async def create_booking(
    db: AsyncSession,
    driver_id: int,
    charger_id: int,
    start_time: datetime,
    duration_hours: float,
) -> Booking:
    """Book a slot directly and credit the driver's green score."""
    if start_time is None:
        raise ReservationValidationError("Missing required fields")
    validate_duration(duration_hours)

    # Raises NotFound / NoCapacity before anything is written.
    remaining = await reserve_slot(db, charger_id)

    points = settings.GREEN_POINTS_PER_BOOKING
    booking = Booking(
        user_id=driver_id,
        charger_id=charger_id,
        start_time=start_time,
        end_time=compute_end_time(start_time, duration_hours),
        duration_hours=duration_hours,
        status=BOOKING_ACTIVE,
        green_points_earned=points,
    )
    db.add(booking)
    await db.flush()

    score = await award_session(
        db,
        driver_id,
        hours=duration_hours,
        co2_kg=settings.CO2_KG_PER_SESSION,
        points=points,
    )
    await db.refresh(booking)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=driver_id,
        charger_id=charger_id,
        available=remaining,
        green_score=score,
    )
    return booking


@instrumented(BOOKING, "complete")
async def complete_booking(db: AsyncSession, driver_id: int, booking_id: int) -> Booking:
    """Finish an active booking and free its slot. Earned points stand."""
    booking = await load(db, BOOKING, booking_id)
    ensure_party(booking, driver_id, booking.user_id, "modify")

    await move(db, BOOKING, booking, "complete", BOOKING_ACTIVE, BOOKING_COMPLETED)
    request = await _linked_request(db, booking)
    await _close_linked_request(
        db, request, REQUEST_SESSION_ENDED, session_ended_at=datetime.now(timezone.utc),
    )

    logger.info(
        "booking_completed",
        booking_id=booking.id,
        user_id=driver_id,
        charger_id=booking.charger_id,
        request_id=request.id if request else None,
    )
    return booking


@instrumented(BOOKING, "cancel")
async def cancel_booking(db: AsyncSession, driver_id: int, booking_id: int) -> Booking:
    """Cancel an active booking, free its slot and take back the points it was awarded."""
    booking = await load(db, BOOKING, booking_id)
    ensure_party(booking, driver_id, booking.user_id, "modify")

    await move(db, BOOKING, booking, "cancel", BOOKING_ACTIVE, BOOKING_CANCELLED)
    request = await _linked_request(db, booking)
    await _close_linked_request(db, request, REQUEST_SESSION_CANCELLED)

    # Approval records the points on the booking but never awards them.
    revoked = 0 if request is not None else booking.green_points_earned
    score = await revoke_points(db, booking.user_id, revoked) if revoked else None

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=driver_id,
        charger_id=booking.charger_id,
        points_revoked=revoked,
        request_id=request.id if request else None,
        green_score=score,
    )
    return booking


async def list_user_bookings(db: AsyncSession, driver_id: int) -> list[Booking]:
    """Get all bookings for a driver, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == driver_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_charger_bookings(db: AsyncSession, owner_id: int, charger_id: int) -> list[Booking]:
    """Bookings at one charger, visible to its owner only."""
    await get_owned_charger(db, owner_id, charger_id, "view bookings for")
    result = await db.execute(
        select(Booking)
        .where(Booking.charger_id == charger_id)
        .order_by(Booking.start_time.desc())
    )
    return list(result.scalars().all())
