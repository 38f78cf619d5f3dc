"""Seasonal burn engine: VOID burned -> capped, zone-scheduled, multiplied XP.

Caps gate rewards, never utility: a burn past every cap still succeeds and
is recorded; it just earns zero XP.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.burn.levels import compute_level
from vpe.burn.multipliers import apply_multipliers
from vpe.burn.zones import compute_zone_xp
from vpe.db.models import Account, BurnLedger, Season, UserSeasonState
from vpe.engine_config import EngineConfig
from vpe.errors import IdempotencyConflictError
from vpe.ledger.service import check_amount, get_or_create_lifetime, get_or_create_season_state
from vpe.score.service import apply_decay
from vpe.score.tiers import derive_tier
from vpe.seasons.day_utils import ensure_utc, next_utc_midnight
from vpe.seasons.service import roll_daily_window

logger = structlog.get_logger()

BURN_MODULES: tuple[str, ...] = ("utility", "district", "land", "creator", "prestige", "miniapp")


@dataclass
class BurnResult:
    xp_awarded: int
    raw_xp: float
    burn_amount: float
    eligible_amount: float
    daily_remaining: int
    seasonal_remaining: int
    daily_resets_at: datetime
    seasonal_resets_at: datetime | None
    season_id: int
    zones: dict = field(default_factory=dict)
    old_level: int = 1
    new_level: int = 1
    duplicate: bool = False

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def daily_remaining(state: UserSeasonState | None, season: Season) -> int:
    """VOID left before today's credits reach the daily cap (zone 3)."""
    used = state.daily_credits_used if state else 0.0
    return max(0, math.floor(season.daily_credit_cap - used))


def seasonal_remaining(state: UserSeasonState | None, season: Season) -> int:
    used = state.seasonal_credits_used if state else 0.0
    return max(0, math.floor(season.seasonal_credit_cap - used))


async def get_burn_by_key(db: AsyncSession, idempotency_key: str) -> BurnLedger | None:
    result = await db.execute(select(BurnLedger).where(BurnLedger.idempotency_key == idempotency_key))
    return result.scalar_one_or_none()


async def replay_burn(
    db: AsyncSession, entry: BurnLedger, account: Account, season: Season, now: datetime
) -> BurnResult:
    """Result for an already-recorded burn. Grants nothing."""
    if entry.address != account.address:
        raise IdempotencyConflictError(entry.idempotency_key or "")
    state = await get_or_create_season_state(db, account.address, season.id, now)
    if season.active:
        roll_daily_window(state, now)
    level = (await get_or_create_lifetime(db, account.address, now)).current_level
    return BurnResult(
        xp_awarded=entry.xp_awarded,
        raw_xp=entry.raw_xp,
        burn_amount=entry.burn_amount,
        eligible_amount=entry.eligible_amount,
        daily_remaining=daily_remaining(state, season),
        seasonal_remaining=seasonal_remaining(state, season),
        daily_resets_at=next_utc_midnight(now),
        seasonal_resets_at=season.end_time,
        season_id=entry.season_id,
        old_level=level,
        new_level=level,
        duplicate=True,
    )


async def compute_burn_xp(
    db: AsyncSession,
    config: EngineConfig,
    account: Account,
    season: Season,
    burn_amount: float,
    now: datetime,
    multipliers: dict[str, float] | None = None,
    module: str = "utility",
    idempotency_key: str | None = None,
) -> BurnResult:
    """Convert a confirmed burn into XP and persist every counter.

    1. lazy daily reset
    2. clamp to what is left of the seasonal cap
    3. marginal zone schedule from today's credits
    4. multiplier stack
    5. persist credits (eligible amount only), XP, airdrop weight, level
    """
    burn_amount = check_amount("burn_amount", burn_amount, allow_zero=False)
    if module not in BURN_MODULES:
        msg = f"Unknown burn module {module!r}; expected one of {BURN_MODULES}"
        raise ValueError(msg)
    now = ensure_utc(now)
    multipliers = multipliers or {}

    state = await get_or_create_season_state(db, account.address, season.id, now)
    roll_daily_window(state, now)

    seasonal_eligible = max(0.0, season.seasonal_credit_cap - state.seasonal_credits_used)
    eligible_amount = min(burn_amount, seasonal_eligible)

    zones = compute_zone_xp(
        eligible_amount,
        state.daily_credits_used,
        season.daily_credit_cap,
        config.zone_rates,
        config.zone_split,
    )
    xp_awarded = apply_multipliers(
        zones["raw_xp"],
        prestige=multipliers.get("prestige", 1.0),
        creator_tier=multipliers.get("creator_tier", 1.0),
        district=multipliers.get("district", 1.0),
        mini_app=multipliers.get("mini_app", 1.0),
        mini_app_cap=config.mini_app_multiplier_cap,
    )

    tier = derive_tier(apply_decay(account, now, config.decay_rate), config.tier_thresholds)

    state.daily_credits_used += eligible_amount
    state.seasonal_credits_used += eligible_amount
    state.xp_earned += xp_awarded
    state.airdrop_weight += xp_awarded * config.airdrop_tier_multipliers[tier]
    state.updated_at = now

    lifetime = await get_or_create_lifetime(db, account.address, now)
    old_level = lifetime.current_level
    lifetime.total_xp_earned += xp_awarded
    lifetime.total_burned_all_time += burn_amount
    lifetime.current_level = compute_level(lifetime.total_xp_earned, config.xp_per_level)["level"]
    lifetime.updated_at = now

    db.add(BurnLedger(
        address=account.address,
        season_id=season.id,
        module=module,
        burn_amount=burn_amount,
        eligible_amount=eligible_amount,
        raw_xp=zones["raw_xp"],
        xp_awarded=xp_awarded,
        idempotency_key=idempotency_key,
        created_at=now,
    ))
    await db.flush()

    logger.info(
        "burn_recorded",
        account=account.address,
        season=season.id,
        module=module,
        burn_amount=burn_amount,
        eligible_amount=eligible_amount,
        raw_xp=zones["raw_xp"],
        xp_awarded=xp_awarded,
    )
    return BurnResult(
        xp_awarded=xp_awarded,
        raw_xp=zones["raw_xp"],
        burn_amount=burn_amount,
        eligible_amount=eligible_amount,
        daily_remaining=daily_remaining(state, season),
        seasonal_remaining=seasonal_remaining(state, season),
        daily_resets_at=next_utc_midnight(now),
        seasonal_resets_at=season.end_time,
        season_id=season.id,
        zones=zones,
        old_level=old_level,
        new_level=lifetime.current_level,
    )
