"""Account ledger access: get-or-create rows and input validation."""

from __future__ import annotations

import math
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.db.models import Account, UserLifetimeState, UserSeasonState
from vpe.errors import InvalidAmountError

logger = structlog.get_logger()


def check_amount(field: str, value: float, *, allow_zero: bool = True) -> float:
    """Return ``value`` as float or raise InvalidAmountError for negative/non-finite input."""
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(field, value) from exc
    if not math.isfinite(number) or number < 0 or (number == 0 and not allow_zero):
        raise InvalidAmountError(field, value)
    return number


async def get_account(db: AsyncSession, address: str, *, for_update: bool = False) -> Account | None:
    """Fetch an account row, optionally locking it for the rest of the transaction."""
    stmt = select(Account).where(Account.address == address)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_account(
    db: AsyncSession, address: str, now: datetime, *, for_update: bool = True
) -> Account:
    """Get the account, creating it on first reported event. Unknown addresses are never an error."""
    account = await get_account(db, address, for_update=for_update)
    if account is None:
        account = Account(
            address=address,
            current_score=0.0,
            lifetime_score=0.0,
            last_score_update_at=now,
            created_at=now,
            void_holdings=0.0,
            updated_at=now,
        )
        db.add(account)
        await db.flush()
        logger.info("account_created", account=address)
    return account


async def get_or_create_lifetime(db: AsyncSession, address: str, now: datetime) -> UserLifetimeState:
    """Get or create the cross-season XP row for an account."""
    lifetime = await get_lifetime(db, address)
    if lifetime is None:
        lifetime = UserLifetimeState(
            address=address,
            total_xp_earned=0,
            current_level=1,
            total_burned_all_time=0.0,
            updated_at=now,
        )
        db.add(lifetime)
        await db.flush()
    return lifetime


async def get_season_state(db: AsyncSession, address: str, season_id: int) -> UserSeasonState | None:
    result = await db.execute(
        select(UserSeasonState).where(
            UserSeasonState.address == address,
            UserSeasonState.season_id == season_id,
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_season_state(
    db: AsyncSession, address: str, season_id: int, now: datetime
) -> UserSeasonState:
    """Get or create the (account, season) row. Created on the first burn of the season."""
    state = await get_season_state(db, address, season_id)
    if state is None:
        state = UserSeasonState(
            address=address,
            season_id=season_id,
            daily_credits_used=0.0,
            daily_reset_day=None,
            seasonal_credits_used=0.0,
            xp_earned=0,
            airdrop_weight=0.0,
            updated_at=now,
        )
        db.add(state)
        await db.flush()
    return state


async def get_lifetime(db: AsyncSession, address: str) -> UserLifetimeState | None:
    result = await db.execute(select(UserLifetimeState).where(UserLifetimeState.address == address))
    return result.scalar_one_or_none()
