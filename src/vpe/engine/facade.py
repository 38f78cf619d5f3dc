"""Engine facade: the boundary operations external callers use.

Every mutating call runs under the account's lock inside one transaction:
it commits as a whole or rolls back as a whole. Season rollover runs under
a single engine-wide lock before any account work.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.burn.levels import compute_level
from vpe.burn.multipliers import MultiplierSource, StoredMultiplierSource
from vpe.burn.service import (
    BurnResult,
    compute_burn_xp,
    daily_remaining,
    get_burn_by_key,
    replay_burn,
    seasonal_remaining,
)
from vpe.burn.zones import zone_status
from vpe.db.models import Account, AccountMultiplier, AirdropSnapshot, Season
from vpe.engine.events import LEVEL_UP_CHANNEL, SEASON_ROLLOVER_CHANNEL, publish_event
from vpe.engine.locks import AccountLocks
from vpe.engine_config import CHANNELS, MULTIPLIER_KINDS, EngineConfig
from vpe.errors import StorageError, UnknownEventError
from vpe.ledger.service import (
    check_amount,
    get_account,
    get_lifetime,
    get_or_create_account,
    get_season_state,
)
from vpe.ratelimit.boost import HoldingsBoost, build_boost_curve
from vpe.ratelimit.service import (
    MessageResult,
    check_channel,
    messages_sent_today,
    prune_windows,
    record_message,
    remaining_messages,
)
from vpe.score import service as score_service
from vpe.score.decay import presented_score
from vpe.score.events import SCORE_EVENTS, get_event_points
from vpe.score.tiers import Tier, derive_tier, tier_progress
from vpe.seasons import service as season_service
from vpe.seasons.day_utils import age_in_days, ensure_utc, next_utc_midnight

logger = structlog.get_logger()


@dataclass(frozen=True)
class MessageReport:
    allowed: bool
    remaining: int
    cap: int
    resets_at: datetime
    points_awarded: float
    current_score: float


@dataclass(frozen=True)
class AccountSnapshot:
    address: str
    current_score: int
    lifetime_score: int
    tier: Tier
    tier_progress: dict
    per_channel_remaining: dict[str, int]
    void_holdings: float
    account_age_days: float
    season_id: int
    season_xp: int
    airdrop_weight: float
    daily_credits_used: float
    daily_remaining: int
    seasonal_remaining: int
    daily_resets_at: datetime
    seasonal_resets_at: datetime | None
    zone_status: dict
    lifetime_xp: int
    lifetime_level: int
    level_info: dict
    total_burned_all_time: float


class ProgressionEngine:
    """Composes score, rate limit, burn and season services over one ledger."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        multipliers: Mapping[str, MultiplierSource] | None = None,
        boost_curve: HoldingsBoost | None = None,
        redis: object = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.boost_curve = boost_curve or build_boost_curve(self.config)
        self.multipliers: dict[str, MultiplierSource] = {
            kind: StoredMultiplierSource(kind) for kind in MULTIPLIER_KINDS
        }
        self.multipliers.update(multipliers or {})
        self.redis = redis
        self._locks = AccountLocks()
        self._season_lock = asyncio.Lock()

    @asynccontextmanager
    async def _atomic(self, db: AsyncSession) -> AsyncIterator[None]:
        """Commit on success; roll back on any failure. Ledger faults become StorageError."""
        try:
            yield
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("ledger_write_failed", error=str(exc), exc_info=True)
            raise StorageError(str(exc)) from exc
        except BaseException:
            await db.rollback()
            raise

    # ------------------------------------------------------------------
    # Seasons
    # ------------------------------------------------------------------

    async def get_current_season(self, db: AsyncSession, now: datetime) -> Season:
        """Active season, rolling over lazily if the stored one has expired."""
        now = ensure_utc(now)
        ended: Season | None = None
        async with self._season_lock:
            try:
                season, ended = await season_service.current_season(db, self.config, now)
                await db.commit()
            except IntegrityError:
                # Another process inserted the same season id first
                await db.rollback()
                season = await season_service.get_active_season(db)
                ended = None
                if season is None:
                    raise StorageError("No active season after concurrent rollover") from None
                logger.info("season_rollover_observed", season=season.id)
            except SQLAlchemyError as exc:
                await db.rollback()
                raise StorageError(str(exc)) from exc

        if ended is not None:
            await publish_event(self.redis, SEASON_ROLLOVER_CHANNEL, {
                "ended_season": ended.id,
                "new_season": season.id,
                "end_time": season.end_time.isoformat() if season.end_time else None,
            })
        return season

    async def schedule_next_season(
        self,
        db: AsyncSession,
        daily_credit_cap: float,
        seasonal_credit_cap: float,
        now: datetime,
        duration_days: int | None = None,
    ) -> Season:
        """Stage caps for the next season (admin)."""
        now = ensure_utc(now)
        active = await self.get_current_season(db, now)
        async with self._season_lock:
            async with self._atomic(db):
                return await season_service.schedule_next_season(
                    db, self.config, active, daily_credit_cap, seasonal_credit_cap, now, duration_days
                )

    async def get_airdrop_snapshot(self, db: AsyncSession, season_id: int) -> list[AirdropSnapshot]:
        try:
            return await season_service.get_airdrop_snapshot(db, season_id)
        except SQLAlchemyError as exc:
            await db.rollback()
            raise StorageError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Score
    # ------------------------------------------------------------------

    async def apply_decay(self, db: AsyncSession, address: str, now: datetime) -> float:
        now = ensure_utc(now)
        async with self._locks.get(address), self._atomic(db):
            account = await get_or_create_account(db, address, now)
            return score_service.apply_decay(account, now, self.config.decay_rate)

    async def add_points(self, db: AsyncSession, address: str, amount: float, now: datetime) -> tuple[float, float]:
        """AddPoints; returns (current_score, lifetime_score)."""
        amount = check_amount("points", amount)
        now = ensure_utc(now)
        async with self._locks.get(address), self._atomic(db):
            account = await get_or_create_account(db, address, now)
            return score_service.add_points(account, amount, now, self.config.decay_rate)

    async def report_score_event(
        self, db: AsyncSession, address: str, event_type: str, now: datetime
    ) -> tuple[float, float]:
        if event_type not in SCORE_EVENTS:
            raise UnknownEventError(event_type)
        return await self.add_points(db, address, get_event_points(event_type), now)

    # ------------------------------------------------------------------
    # Externally reported inputs
    # ------------------------------------------------------------------

    async def report_holdings(self, db: AsyncSession, address: str, void_holdings: float, now: datetime) -> None:
        void_holdings = check_amount("void_holdings", void_holdings)
        now = ensure_utc(now)
        async with self._locks.get(address), self._atomic(db):
            account = await get_or_create_account(db, address, now)
            account.void_holdings = void_holdings
            account.updated_at = now

    async def report_multiplier(
        self, db: AsyncSession, address: str, kind: str, value: float, now: datetime
    ) -> None:
        if kind not in MULTIPLIER_KINDS:
            msg = f"Unknown multiplier kind {kind!r}; expected one of {MULTIPLIER_KINDS}"
            raise ValueError(msg)
        value = check_amount(f"{kind} multiplier", value)
        now = ensure_utc(now)
        async with self._locks.get(address), self._atomic(db):
            await get_or_create_account(db, address, now)
            row = await db.get(AccountMultiplier, (address, kind))
            if row is None:
                row = AccountMultiplier(address=address, kind=kind)
                db.add(row)
            row.value = value
            row.updated_at = now

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def report_message(self, db: AsyncSession, address: str, channel: str, now: datetime) -> MessageReport:
        """ReportMessage: rate-limit check, then channel points if allowed.

        The first allowed message of the UTC day, across all channels, also
        earns the first-message bonus.
        """
        check_channel(channel)
        now = ensure_utc(now)
        points = 0.0
        async with self._locks.get(address), self._atomic(db):
            account = await get_or_create_account(db, address, now)
            first_today = await messages_sent_today(db, address, now) == 0
            result: MessageResult = await record_message(
                db, self.config, account, channel, now, self.boost_curve
            )
            if result.allowed:
                points = self.config.channel_points[channel]
                if first_today:
                    points += self.config.first_daily_message_bonus
                score_service.add_points(account, points, now, self.config.decay_rate)

        return MessageReport(
            allowed=result.allowed,
            remaining=result.remaining,
            cap=result.cap,
            resets_at=result.resets_at,
            points_awarded=points,
            current_score=account.current_score,
        )

    async def prune_rate_limit_windows(self, db: AsyncSession, now: datetime) -> int:
        async with self._atomic(db):
            return await prune_windows(db, ensure_utc(now))

    # ------------------------------------------------------------------
    # Burns
    # ------------------------------------------------------------------

    async def _read_multipliers(self, db: AsyncSession, address: str) -> dict[str, float]:
        return {kind: await source.get_multiplier(db, address) for kind, source in self.multipliers.items()}

    async def report_burn(
        self,
        db: AsyncSession,
        address: str,
        season_id: int,
        amount: float,
        now: datetime,
        *,
        module: str = "utility",
        idempotency_key: str | None = None,
    ) -> BurnResult:
        """ReportBurn: credit a confirmed burn to the active season.

        Never fails because of a cap; a burn past the caps awards 0 XP.
        """
        amount = check_amount("burn_amount", amount, allow_zero=False)
        now = ensure_utc(now)
        await self.get_current_season(db, now)

        async with self._locks.get(address), self._atomic(db):
            entry = await get_burn_by_key(db, idempotency_key) if idempotency_key else None
            if entry is not None:
                # Replayed against the season it was credited to, even once ended
                season = await season_service.get_season(db, entry.season_id)
                account = await get_or_create_account(db, address, now)
                result = await replay_burn(db, entry, account, season, now)
            else:
                season = await season_service.resolve_burn_season(db, season_id, now)
                account = await get_or_create_account(db, address, now)
                result = await compute_burn_xp(
                    db,
                    self.config,
                    account,
                    season,
                    amount,
                    now,
                    multipliers=await self._read_multipliers(db, address),
                    module=module,
                    idempotency_key=idempotency_key,
                )

        if result.leveled_up:
            await publish_event(self.redis, LEVEL_UP_CHANNEL, {
                "account": address,
                "old_level": result.old_level,
                "new_level": result.new_level,
            })
        return result

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def get_account_snapshot(self, db: AsyncSession, address: str, now: datetime) -> AccountSnapshot:
        """Read current state. Applies decay and daily resets as a side effect.

        An address with no events yet is reported as a fresh account and is
        not persisted.
        """
        now = ensure_utc(now)
        season = await self.get_current_season(db, now)

        async with self._locks.get(address), self._atomic(db):
            account = await get_account(db, address, for_update=True)
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

            score = score_service.apply_decay(account, now, self.config.decay_rate)
            per_channel = {
                channel: await remaining_messages(db, self.config, account, channel, now, self.boost_curve)
                for channel in CHANNELS
            }

            state = await get_season_state(db, address, season.id)
            if state is not None:
                season_service.roll_daily_window(state, now)
            lifetime = await get_lifetime(db, address)

        total_xp = lifetime.total_xp_earned if lifetime else 0
        daily_used = state.daily_credits_used if state else 0.0
        return AccountSnapshot(
            address=address,
            current_score=presented_score(score),
            lifetime_score=presented_score(account.lifetime_score),
            tier=derive_tier(score, self.config.tier_thresholds),
            tier_progress=tier_progress(score, self.config.tier_thresholds),
            per_channel_remaining=per_channel,
            void_holdings=account.void_holdings,
            account_age_days=age_in_days(account.created_at, now),
            season_id=season.id,
            season_xp=state.xp_earned if state else 0,
            airdrop_weight=state.airdrop_weight if state else 0.0,
            daily_credits_used=daily_used,
            daily_remaining=daily_remaining(state, season),
            seasonal_remaining=seasonal_remaining(state, season),
            daily_resets_at=next_utc_midnight(now),
            seasonal_resets_at=season.end_time,
            zone_status=zone_status(daily_used, season.daily_credit_cap, self.config.zone_rates, self.config.zone_split),
            lifetime_xp=total_xp,
            lifetime_level=lifetime.current_level if lifetime else 1,
            level_info=compute_level(total_xp, self.config.xp_per_level),
            total_burned_all_time=lifetime.total_burned_all_time if lifetime else 0.0,
        )
