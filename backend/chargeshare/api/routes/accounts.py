"""
Account endpoints: the caller's profile and charging impact.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.api.dependencies import get_current_account
from chargeshare.db.session import get_db
from chargeshare.models.account import Account
from chargeshare.schemas.account import AccountResponse, ImpactResponse
from chargeshare.services.account_ledger import get_impact

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("/me", response_model=AccountResponse)
async def read_profile(account: Account = Depends(get_current_account)):
    return account


@router.get("/me/impact", response_model=ImpactResponse)
async def read_impact(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Green score, sessions, estimated CO2 saved and hours charged."""
    return await get_impact(db, account.id)
