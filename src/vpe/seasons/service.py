"""Season lifecycle: lazy rollover, staged next-season caps, airdrop snapshots.

State progression: pending -> active -> ended
Exactly one season is active. Rollover happens on the first access after
the active season's end time, never on a timer.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.db.models import AirdropSnapshot, Season, UserSeasonState
from vpe.engine_config import EngineConfig
from vpe.errors import SeasonEndedError, UnknownSeasonError
from vpe.ledger.service import check_amount
from vpe.seasons.day_utils import ensure_utc, utc_day

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["active"],
    "active": ["ended"],
    "ended": [],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a season state transition. Raises ValueError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ValueError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


def season_progress(season: Season, now: datetime) -> dict:
    """Elapsed/remaining time of a season, clamped to its bounds."""
    now = ensure_utc(now)
    if season.start_time is None or season.end_time is None:
        return {"elapsed_seconds": 0, "remaining_seconds": 0, "percent_elapsed": 0.0}
    total = (season.end_time - season.start_time).total_seconds()
    elapsed = min(total, max(0.0, (now - season.start_time).total_seconds()))
    return {
        "elapsed_seconds": int(elapsed),
        "remaining_seconds": int(total - elapsed),
        "percent_elapsed": round(elapsed / total * 100, 2) if total > 0 else 100.0,
    }


def roll_daily_window(state: UserSeasonState, now: datetime) -> bool:
    """Zero the daily credits when the stored day is not today. Returns True if reset."""
    today = utc_day(now)
    if state.daily_reset_day == today:
        return False
    state.daily_credits_used = 0.0
    state.daily_reset_day = today
    return True


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_season(db: AsyncSession, season_id: int) -> Season | None:
    result = await db.execute(select(Season).where(Season.id == season_id))
    return result.scalar_one_or_none()


async def get_active_season(
    db: AsyncSession, *, for_update: bool = False, refresh: bool = False
) -> Season | None:
    stmt = select(Season).where(Season.status == "active")
    if for_update:
        stmt = stmt.with_for_update()
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def burn_season_query(season_id: int) -> Select:
    """Shared lock on the season row: a rollover's FOR UPDATE waits for in-flight burns."""
    return (
        select(Season)
        .where(Season.id == season_id)
        .with_for_update(read=True)
        .execution_options(populate_existing=True)
    )


async def resolve_burn_season(db: AsyncSession, season_id: int, now: datetime) -> Season:
    """Season a burn may be credited to: only the active, unexpired one.

    Re-reads the row so a rollover committed by another caller is seen, and
    holds it until the burn commits so the airdrop snapshot includes it.
    """
    result = await db.execute(burn_season_query(season_id))
    season = result.scalar_one_or_none()
    if season is None or season.status == "pending":
        raise UnknownSeasonError(season_id)
    if season.active and (season.end_time is None or season.end_time > ensure_utc(now)):
        return season

    active = await get_active_season(db)
    current_id = active.id if active is not None and active.id != season_id else season_id + 1
    raise SeasonEndedError(season_id, current_id)


async def get_airdrop_snapshot(db: AsyncSession, season_id: int) -> list[AirdropSnapshot]:
    """Snapshot rows of an ended season, heaviest weight first."""
    if await get_season(db, season_id) is None:
        raise UnknownSeasonError(season_id)
    result = await db.execute(
        select(AirdropSnapshot)
        .where(AirdropSnapshot.season_id == season_id)
        .order_by(AirdropSnapshot.airdrop_weight.desc(), AirdropSnapshot.address)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def _activate(season: Season, now: datetime) -> None:
    validate_transition(season.status, "active")
    season.status = "active"
    season.start_time = now
    season.end_time = now + timedelta(days=season.duration_days)


async def _create_and_activate(
    db: AsyncSession,
    season_id: int,
    now: datetime,
    duration_days: int,
    daily_credit_cap: float,
    seasonal_credit_cap: float,
) -> Season:
    pending = await get_season(db, season_id)
    if pending is None:
        pending = Season(
            id=season_id,
            status="pending",
            duration_days=duration_days,
            daily_credit_cap=daily_credit_cap,
            seasonal_credit_cap=seasonal_credit_cap,
            created_at=now,
        )
        db.add(pending)
    _activate(pending, now)
    await db.flush()
    return pending


async def snapshot_airdrop(db: AsyncSession, season_id: int, now: datetime) -> int:
    """Copy every account's final season XP and airdrop weight. Returns rows written."""
    result = await db.execute(select(UserSeasonState).where(UserSeasonState.season_id == season_id))
    count = 0
    for state in result.scalars():
        db.add(AirdropSnapshot(
            season_id=season_id,
            address=state.address,
            xp_earned=state.xp_earned,
            airdrop_weight=state.airdrop_weight,
            snapshot_at=now,
        ))
        count += 1
    await db.flush()
    return count


async def rollover_season(db: AsyncSession, active: Season, now: datetime) -> Season:
    """End ``active``, snapshot it, and activate the next season.

    A staged pending season supplies the new caps; otherwise the ended
    season's caps and duration carry over.
    """
    validate_transition(active.status, "ended")
    active.status = "ended"
    snapshotted = await snapshot_airdrop(db, active.id, now)

    new_season = await _create_and_activate(
        db,
        active.id + 1,
        now,
        active.duration_days,
        active.daily_credit_cap,
        active.seasonal_credit_cap,
    )
    logger.info(
        "season_rolled_over",
        ended_season=active.id,
        new_season=new_season.id,
        accounts_snapshotted=snapshotted,
        end_time=new_season.end_time.isoformat() if new_season.end_time else None,
    )
    return new_season


async def current_season(
    db: AsyncSession, config: EngineConfig, now: datetime
) -> tuple[Season, Season | None]:
    """Active season at ``now``, rolling over if it has expired.

    Returns (current, ended) where ``ended`` is the season closed by this
    call, if any. The caller commits.
    """
    now = ensure_utc(now)
    active = await get_active_season(db, for_update=True)

    if active is None:
        max_id = (await db.execute(select(func.max(Season.id)).where(Season.status != "pending"))).scalar()
        if max_id is not None:
            # Blocked behind a rollover that has since committed its new season
            active = await get_active_season(db, for_update=True, refresh=True)

    if active is None:
        season_id = config.first_season_id if max_id is None else max_id + 1
        season = await _create_and_activate(
            db,
            season_id,
            now,
            config.season_duration_days,
            config.default_daily_credit_cap,
            config.default_seasonal_credit_cap,
        )
        logger.info("season_started", season=season.id)
        return season, None

    if active.end_time is not None and active.end_time <= now:
        return await rollover_season(db, active, now), active

    return active, None


async def schedule_next_season(
    db: AsyncSession,
    config: EngineConfig,
    active: Season,
    daily_credit_cap: float,
    seasonal_credit_cap: float,
    now: datetime,
    duration_days: int | None = None,
) -> Season:
    """Stage caps for the season after ``active``. Re-staging replaces the caps."""
    daily_credit_cap = check_amount("daily_credit_cap", daily_credit_cap)
    seasonal_credit_cap = check_amount("seasonal_credit_cap", seasonal_credit_cap)
    duration = config.season_duration_days if duration_days is None else duration_days
    if duration <= 0:
        msg = f"duration_days must be positive, got {duration}"
        raise ValueError(msg)

    pending = await get_season(db, active.id + 1)
    if pending is None:
        pending = Season(id=active.id + 1, status="pending", created_at=now)
        db.add(pending)
    pending.duration_days = duration
    pending.daily_credit_cap = daily_credit_cap
    pending.seasonal_credit_cap = seasonal_credit_cap
    await db.flush()
    logger.info(
        "season_scheduled",
        season=pending.id,
        daily_credit_cap=daily_credit_cap,
        seasonal_credit_cap=seasonal_credit_cap,
    )
    return pending
