"""
Caller identity and role checks for the gateway.

Authentication happens upstream; the authenticator forwards the caller's
account id in the X-User-Id header. The role is read from the stored
account, never from the request.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chargeshare.core.exceptions import NotFoundError
from chargeshare.db.session import get_db
from chargeshare.models.account import Account, ROLE_DRIVER, ROLE_OWNER
from chargeshare.services.account_ledger import get_account


async def get_current_account(
    x_user_id: Optional[int] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> Account:
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        account = await get_account(db, x_user_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown account",
        )

    structlog.contextvars.bind_contextvars(caller_id=account.id, caller_role=account.role)
    return account


def require_role(role: str):
    async def checker(account: Account = Depends(get_current_account)) -> Account:
        if account.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires the {role} role",
            )
        return account

    return checker


require_driver = require_role(ROLE_DRIVER)
require_owner = require_role(ROLE_OWNER)
