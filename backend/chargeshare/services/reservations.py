"""
Shared machinery for both reservation variants.

A reservation is either a direct Booking or a BookingRequest that goes
through owner approval. Both lifecycles use the helpers here so slot
accounting and status writes are implemented once:

- `OCCUPYING_STATUSES` says which statuses hold a slot for each variant.
- `slot_effect` derives reserve/release from a (from, to) status pair.
- `transition` performs a compare-and-set status write:

    UPDATE <table> SET status = :target, ...
     WHERE id = :id AND status = :expected

  If another transaction moved the reservation first, no row matches and
  the caller gets InvalidState naming the status it lost to. Any slot or
  ledger write already issued in the same transaction is rolled back with it.
"""

import enum
import time
from datetime import datetime, timedelta
from functools import wraps
from typing import Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import (
    ReservationError, ReservationValidationError, NotFoundError, ForbiddenError, InvalidStateError,
)
from chargeshare.core.logging import get_logger
from chargeshare.core.metrics import record_transition, reservation_latency
from chargeshare.models.booking import Booking, BOOKING_ACTIVE
from chargeshare.models.booking_request import (
    BookingRequest, REQUEST_APPROVED, REQUEST_SESSION_ACTIVE,
)
from chargeshare.services.resource_registry import reserve_slot, release_slot

logger = get_logger(__name__)
settings = get_settings()

Reservation = Union[Booking, BookingRequest]


class ReservationKind(str, enum.Enum):
    BOOKING = "booking"
    REQUEST = "request"


MODELS = {
    ReservationKind.BOOKING: Booking,
    ReservationKind.REQUEST: BookingRequest,
}

LABELS = {
    ReservationKind.BOOKING: "Booking",
    ReservationKind.REQUEST: "Booking request",
}

OCCUPYING_STATUSES = {
    ReservationKind.BOOKING: frozenset({BOOKING_ACTIVE}),
    ReservationKind.REQUEST: frozenset({REQUEST_APPROVED, REQUEST_SESSION_ACTIVE}),
}


def validate_duration(duration_hours: float) -> None:
    low, high = settings.MIN_DURATION_HOURS, settings.MAX_DURATION_HOURS
    if duration_hours is None or not (low <= duration_hours <= high):
        raise ReservationValidationError(
            f"Duration must be between {int(low * 60)} and {int(high * 60)} minutes"
        )


def compute_end_time(start_time: datetime, duration_hours: float) -> datetime:
    return start_time + timedelta(hours=duration_hours)


def slot_effect(kind: ReservationKind, from_status: str, to_status: str) -> int:
    """-1 when the reservation starts holding a slot, +1 when it gives one back."""
    occupying = OCCUPYING_STATUSES[kind]
    was, now = from_status in occupying, to_status in occupying
    if now and not was:
        return -1
    if was and not now:
        return 1
    return 0


async def apply_slot_effect(db: AsyncSession, charger_id: int, effect: int) -> None:
    if effect < 0:
        await reserve_slot(db, charger_id)
    elif effect > 0:
        await release_slot(db, charger_id)


async def load(db: AsyncSession, kind: ReservationKind, reservation_id: int) -> Reservation:
    model = MODELS[kind]
    result = await db.execute(
        select(model)
        .where(model.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError(LABELS[kind], reservation_id)
    return reservation


def ensure_party(reservation: Reservation, caller_id: int, party_id: int, action: str) -> None:
    if party_id != caller_id:
        logger.warning(
            "reservation_access_denied",
            reservation_id=reservation.id,
            caller_id=caller_id,
            action=action,
        )
        raise ForbiddenError(f"You do not have permission to {action} this reservation")


def ensure_status(kind: ReservationKind, reservation: Reservation, action: str, expected: str) -> None:
    if reservation.status != expected:
        raise InvalidStateError(
            f"Cannot {action} a {reservation.status} {LABELS[kind].lower()}",
            current_status=reservation.status,
        )


async def transition(
    db: AsyncSession,
    kind: ReservationKind,
    reservation: Reservation,
    action: str,
    expected: str,
    target: str,
    **values,
) -> Reservation:
    """Compare-and-set the status from `expected` to `target`, with any extra column values."""
    ensure_status(kind, reservation, action, expected)

    model = MODELS[kind]
    result = await db.execute(
        update(model)
        .where(model.id == reservation.id, model.status == expected)
        .values(status=target, **values)
        .returning(model.id)
        .execution_options(synchronize_session=False)
    )
    if result.scalar_one_or_none() is None:
        current = await db.scalar(select(model.status).where(model.id == reservation.id))
        logger.info(
            "reservation_transition_lost",
            kind=kind.value,
            reservation_id=reservation.id,
            expected=expected,
            current=current,
        )
        raise InvalidStateError(
            f"Cannot {action} a {current} {LABELS[kind].lower()}",
            current_status=current,
        )

    await db.refresh(reservation)
    return reservation


async def move(
    db: AsyncSession,
    kind: ReservationKind,
    reservation: Reservation,
    action: str,
    expected: str,
    target: str,
    **values,
) -> Reservation:
    """Status transition plus the slot reserve/release it implies.

    Capacity is claimed before the status write so a NoCapacity failure
    leaves nothing to undo; a release follows the status write.
    """
    effect = slot_effect(kind, expected, target)
    ensure_status(kind, reservation, action, expected)
    if effect < 0:
        await apply_slot_effect(db, reservation.charger_id, effect)
    await transition(db, kind, reservation, action, expected, target, **values)
    if effect > 0:
        await apply_slot_effect(db, reservation.charger_id, effect)
    return reservation


def instrumented(kind: ReservationKind, name: str):
    """Record latency and outcome of a reservation operation."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except ReservationError as exc:
                record_transition(kind.value, name, exc.kind)
                raise
            finally:
                reservation_latency.labels(kind=kind.value).observe(time.perf_counter() - start)
            record_transition(kind.value, name)
            return result

        return wrapper

    return decorator
