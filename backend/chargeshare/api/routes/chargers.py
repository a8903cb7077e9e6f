"""
Charger endpoints with Redis caching on the public listing.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.api.dependencies import require_owner
from chargeshare.db.session import get_db
from chargeshare.models.account import Account
from chargeshare.schemas.booking import BookingResponse
from chargeshare.schemas.charger import ChargerCreate, ChargerUpdate, ChargerResponse, ChargerListResponse
from chargeshare.services.booking_service import list_charger_bookings
from chargeshare.services.cache_service import get_cached_chargers, set_cached_chargers, invalidate_charger_cache
from chargeshare.services.resource_registry import (
    create_charger, get_charger, list_chargers, list_owner_chargers, update_charger, delete_charger,
)
from chargeshare.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/chargers", tags=["Chargers"])


@router.post("/", response_model=ChargerResponse, status_code=status.HTTP_201_CREATED)
async def create_charger_endpoint(
    charger_data: ChargerCreate,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Register a charger. All slots start available."""
    charger = await create_charger(db, owner.id, charger_data)
    await db.commit()
    await invalidate_charger_cache()
    return charger


@router.get("/", response_model=ChargerListResponse)
async def list_chargers_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    List chargers with pagination.
    Results are cached in Redis briefly and invalidated on every slot change.
    """
    cached = await get_cached_chargers(page, page_size)
    if cached:
        logger.info("chargers_list_cache_hit", page=page)
        cached["cached"] = True
        return ChargerListResponse(**cached)

    chargers, total = await list_chargers(db, page, page_size)

    response_data = {
        "chargers": [ChargerResponse.model_validate(c).model_dump(mode="json") for c in chargers],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_chargers(page, page_size, response_data)

    return ChargerListResponse(**response_data)


@router.get("/mine", response_model=list[ChargerResponse])
async def list_my_chargers(
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    return await list_owner_chargers(db, owner.id)


@router.get("/{charger_id}", response_model=ChargerResponse)
async def get_charger_endpoint(
    charger_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single charger. Not cached (needs real-time slot counts)."""
    return await get_charger(db, charger_id)


@router.patch("/{charger_id}", response_model=ChargerResponse)
async def update_charger_endpoint(
    charger_id: int,
    changes: ChargerUpdate,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Update descriptive fields. Unknown fields are rejected with 422."""
    charger = await update_charger(db, owner.id, charger_id, changes)
    await db.commit()
    await invalidate_charger_cache()
    return charger


@router.delete("/{charger_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_charger_endpoint(
    charger_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    await delete_charger(db, owner.id, charger_id)
    await db.commit()
    await invalidate_charger_cache()


@router.get("/{charger_id}/bookings", response_model=list[BookingResponse])
async def list_charger_bookings_endpoint(
    charger_id: int,
    owner: Account = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    return await list_charger_bookings(db, owner.id, charger_id)
