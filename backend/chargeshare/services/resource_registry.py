"""
Resource registry: charger records and their slot inventory.

CONCURRENCY STRATEGY: Conditional Update
========================================

Problem:
  Two owners approve requests for the last free slot at the same time.
  Both read available_slots=1, both decrement, both succeed.
  Result: the charger is over-committed.

Solution:
  The capacity check and the decrement are one statement:

    UPDATE chargers
       SET available_slots = available_slots - 1, version = version + 1
     WHERE id = :charger_id AND available_slots > 0
    RETURNING available_slots

  The database serializes writers on the row, so the second approval sees
  available_slots=0, matches no row, and gets NoCapacity. No read-modify-write
  window exists and no retry loop is needed. Release mirrors this with
  `available_slots < total_slots` so a double release clamps instead of
  overflowing. The CHECK constraints on the table are the final safety net.

reserve_slot/release_slot are the only writers of available_slots.
"""

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import NotFoundError, NoCapacityError, ForbiddenError, InvalidStateError
from chargeshare.core.logging import get_logger
from chargeshare.core.metrics import record_slot_operation
from chargeshare.models.booking import Booking, BOOKING_ACTIVE
from chargeshare.models.booking_request import BookingRequest
from chargeshare.models.charger import Charger
from chargeshare.schemas.charger import ChargerCreate, ChargerUpdate

logger = get_logger(__name__)
settings = get_settings()


async def reserve_slot(db: AsyncSession, charger_id: int) -> int:
    """Take one slot. Returns the remaining available count."""
    result = await db.execute(
        update(Charger)
        .where(Charger.id == charger_id, Charger.available_slots > 0)
        .values(
            available_slots=Charger.available_slots - 1,
            version=Charger.version + 1,
        )
        .returning(Charger.available_slots)
        .execution_options(synchronize_session=False)
    )
    remaining = result.scalar_one_or_none()

    if remaining is None:
        exists = await db.scalar(select(Charger.id).where(Charger.id == charger_id))
        if exists is None:
            record_slot_operation("reserve", "not_found")
            raise NotFoundError("Charger", charger_id)
        record_slot_operation("reserve", "no_capacity")
        logger.warning("slot_reserve_no_capacity", charger_id=charger_id)
        raise NoCapacityError(charger_id)

    record_slot_operation("reserve", "ok")
    logger.info("slot_reserved", charger_id=charger_id, available=remaining)
    return remaining


async def release_slot(db: AsyncSession, charger_id: int) -> int:
    """Return one slot, never exceeding total_slots. Returns the available count."""
    result = await db.execute(
        update(Charger)
        .where(Charger.id == charger_id, Charger.available_slots < Charger.total_slots)
        .values(
            available_slots=Charger.available_slots + 1,
            version=Charger.version + 1,
        )
        .returning(Charger.available_slots)
        .execution_options(synchronize_session=False)
    )
    available = result.scalar_one_or_none()

    if available is None:
        current = await db.scalar(select(Charger.available_slots).where(Charger.id == charger_id))
        if current is None:
            record_slot_operation("release", "not_found")
            raise NotFoundError("Charger", charger_id)
        record_slot_operation("release", "clamped")
        logger.warning("slot_release_clamped", charger_id=charger_id, available=current)
        return current

    record_slot_operation("release", "ok")
    logger.info("slot_released", charger_id=charger_id, available=available)
    return available


async def get_charger(db: AsyncSession, charger_id: int) -> Charger:
    """Get a single charger with fresh slot counters."""
    result = await db.execute(
        select(Charger)
        .where(Charger.id == charger_id)
        .execution_options(populate_existing=True)
    )
    charger = result.scalar_one_or_none()
    if not charger:
        raise NotFoundError("Charger", charger_id)
    return charger


async def get_owned_charger(db: AsyncSession, owner_id: int, charger_id: int, action: str) -> Charger:
    charger = await get_charger(db, charger_id)
    if charger.owner_id != owner_id:
        logger.warning("charger_access_denied", charger_id=charger_id, caller_id=owner_id, action=action)
        raise ForbiddenError(f"You do not have permission to {action} this charger")
    return charger


async def create_charger(db: AsyncSession, owner_id: int, data: ChargerCreate) -> Charger:
    """Register a charger with every slot free."""
    total_slots = data.total_slots or settings.DEFAULT_CHARGER_SLOTS
    charger = Charger(
        owner_id=owner_id,
        name=data.name,
        description=data.description,
        address=data.address,
        latitude=data.latitude,
        longitude=data.longitude,
        charger_type=data.charger_type,
        price_per_hour=data.price_per_hour,
        total_slots=total_slots,
        available_slots=total_slots,
    )
    db.add(charger)
    await db.flush()
    await db.refresh(charger)

    logger.info("charger_created", charger_id=charger.id, owner_id=owner_id, slots=total_slots)
    return charger


async def list_chargers(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Charger], int]:
    """List chargers with pagination, newest first."""
    total = await db.scalar(select(func.count()).select_from(Charger))

    result = await db.execute(
        select(Charger)
        .order_by(Charger.created_at.desc(), Charger.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def list_owner_chargers(db: AsyncSession, owner_id: int) -> list[Charger]:
    result = await db.execute(
        select(Charger)
        .where(Charger.owner_id == owner_id)
        .order_by(Charger.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def update_charger(
    db: AsyncSession,
    owner_id: int,
    charger_id: int,
    changes: ChargerUpdate,
) -> Charger:
    """Apply an owner's update command. Only the fields ChargerUpdate declares can change."""
    charger = await get_owned_charger(db, owner_id, charger_id, "update")

    fields = changes.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in fields.items():
        setattr(charger, field, value)

    await db.flush()
    await db.refresh(charger)

    logger.info("charger_updated", charger_id=charger_id, fields=sorted(fields))
    return charger


async def delete_charger(db: AsyncSession, owner_id: int, charger_id: int) -> None:
    """Delete a charger that has no slot-occupying reservations."""
    charger = await get_owned_charger(db, owner_id, charger_id, "delete")

    # Every approved request materializes an active booking, so active
    # bookings cover all occupied slots.
    active = await db.scalar(
        select(func.count()).select_from(Booking).where(
            Booking.charger_id == charger_id,
            Booking.status == BOOKING_ACTIVE,
        )
    )
    if active:
        raise InvalidStateError(
            f"Cannot delete charger with {active} active booking(s)",
            current_status="occupied",
        )

    await db.execute(delete(BookingRequest).where(BookingRequest.charger_id == charger_id))
    await db.execute(delete(Booking).where(Booking.charger_id == charger_id))
    await db.delete(charger)
    await db.flush()
    logger.info("charger_deleted", charger_id=charger_id, owner_id=owner_id)
