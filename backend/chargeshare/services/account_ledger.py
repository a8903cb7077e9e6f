"""
Account ledger: green score and charging-impact counters.

Both writers are single UPDATE statements with the clamp expressed in SQL,
so concurrent awards and revocations on one account never lose an update.
The ceiling is applied on award only: points above it are dropped, not banked.
"""

from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import NotFoundError
from chargeshare.core.logging import get_logger
from chargeshare.core.metrics import green_points_awarded, green_points_revoked
from chargeshare.models.account import Account

logger = get_logger(__name__)
settings = get_settings()


async def get_account(db: AsyncSession, user_id: int) -> Account:
    result = await db.execute(
        select(Account)
        .where(Account.id == user_id)
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if not account:
        raise NotFoundError("Account", user_id)
    return account


async def award_session(
    db: AsyncSession,
    user_id: int,
    hours: float,
    co2_kg: float,
    points: int,
) -> int:
    """Credit one charging session. Returns the new green score."""
    ceiling = settings.GREEN_SCORE_CEILING
    raised = Account.green_score + points

    result = await db.execute(
        update(Account)
        .where(Account.id == user_id)
        .values(
            total_sessions=Account.total_sessions + 1,
            total_charging_time=Account.total_charging_time + hours,
            estimated_co2_saved=Account.estimated_co2_saved + co2_kg,
            green_score=case((raised > ceiling, ceiling), else_=raised),
        )
        .returning(Account.green_score)
        .execution_options(synchronize_session=False)
    )
    score = result.scalar_one_or_none()
    if score is None:
        raise NotFoundError("Account", user_id)

    green_points_awarded.inc(points)
    logger.info(
        "session_awarded",
        user_id=user_id,
        hours=hours,
        co2_kg=co2_kg,
        points=points,
        green_score=score,
    )
    return score


async def revoke_points(db: AsyncSession, user_id: int, points: int) -> int:
    """Take back points granted earlier, floored at zero. Returns the new green score."""
    lowered = Account.green_score - points

    result = await db.execute(
        update(Account)
        .where(Account.id == user_id)
        .values(green_score=case((lowered < 0, 0), else_=lowered))
        .returning(Account.green_score)
        .execution_options(synchronize_session=False)
    )
    score = result.scalar_one_or_none()
    if score is None:
        raise NotFoundError("Account", user_id)

    green_points_revoked.inc(points)
    logger.info("points_revoked", user_id=user_id, points=points, green_score=score)
    return score


async def get_impact(db: AsyncSession, user_id: int) -> Account:
    """Charging impact view of an account (score, sessions, CO2, hours)."""
    return await get_account(db, user_id)
