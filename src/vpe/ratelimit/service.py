"""Per-channel daily message caps.

Cap = floor(base * tier boost * fresh-wallet penalty * holdings boost).
Windows are keyed by UTC day and reset lazily: a new day simply has no row.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.db.models import Account, RateLimitWindow
from vpe.engine_config import CHANNELS, EngineConfig
from vpe.errors import UnknownChannelError
from vpe.ratelimit.boost import HoldingsBoost
from vpe.score.service import apply_decay
from vpe.score.tiers import Tier, derive_tier
from vpe.seasons.day_utils import age_in_days, next_utc_midnight, utc_day

logger = structlog.get_logger()


@dataclass(frozen=True)
class MessageResult:
    """Outcome of RecordMessage. A cap hit is a normal result, not an error."""

    outcome: str  # "ok" | "cap_exceeded"
    remaining: int
    cap: int
    resets_at: datetime

    @property
    def allowed(self) -> bool:
        return self.outcome == "ok"


def check_channel(channel: str) -> str:
    if channel not in CHANNELS:
        raise UnknownChannelError(channel)
    return channel


def channel_cap(
    config: EngineConfig,
    channel: str,
    tier: Tier,
    account_age_days: float,
    holdings: float,
    boost_curve: HoldingsBoost,
) -> int:
    """Daily cap for one channel. Pure."""
    cap = config.base_channel_caps[check_channel(channel)] * config.tier_rate_boosts[tier]
    if account_age_days < config.fresh_wallet_days:
        cap *= config.fresh_wallet_penalty
    if holdings >= config.holdings_boost_min:
        cap *= min(config.holdings_boost_max, boost_curve(holdings))
    # Guard against 59.999999 from float multiplication
    return max(0, math.floor(round(cap, 9)))


async def messages_sent(db: AsyncSession, address: str, channel: str, now: datetime) -> int:
    result = await db.execute(
        select(RateLimitWindow.messages_sent).where(
            RateLimitWindow.address == address,
            RateLimitWindow.channel == channel,
            RateLimitWindow.day == utc_day(now),
        )
    )
    return result.scalar_one_or_none() or 0


async def messages_sent_today(db: AsyncSession, address: str, now: datetime) -> int:
    """Total messages across all channels for the UTC day."""
    result = await db.execute(
        select(func.coalesce(func.sum(RateLimitWindow.messages_sent), 0)).where(
            RateLimitWindow.address == address,
            RateLimitWindow.day == utc_day(now),
        )
    )
    return int(result.scalar_one())


def account_cap(config: EngineConfig, account: Account, channel: str, now: datetime, boost_curve: HoldingsBoost) -> int:
    """Cap for ``account`` on ``channel`` after decaying its score to ``now``."""
    score = apply_decay(account, now, config.decay_rate)
    tier = derive_tier(score, config.tier_thresholds)
    return channel_cap(
        config,
        channel,
        tier,
        age_in_days(account.created_at, now),
        account.void_holdings,
        boost_curve,
    )


async def remaining_messages(
    db: AsyncSession,
    config: EngineConfig,
    account: Account,
    channel: str,
    now: datetime,
    boost_curve: HoldingsBoost,
) -> int:
    """Messages still allowed today on ``channel``. Never negative."""
    cap = account_cap(config, account, channel, now, boost_curve)
    sent = await messages_sent(db, account.address, channel, now)
    return max(0, cap - sent)


async def record_message(
    db: AsyncSession,
    config: EngineConfig,
    account: Account,
    channel: str,
    now: datetime,
    boost_curve: HoldingsBoost,
) -> MessageResult:
    """Count one message against today's window, or report the cap.

    Applies the lazy score decay to ``account`` (the cap depends on its
    tier) but awards nothing; message points are added by the caller.
    """
    cap = account_cap(config, account, channel, now, boost_curve)
    day = utc_day(now)
    result = await db.execute(
        select(RateLimitWindow)
        .where(
            RateLimitWindow.address == account.address,
            RateLimitWindow.channel == channel,
            RateLimitWindow.day == day,
        )
        .with_for_update()
    )
    window = result.scalar_one_or_none()
    sent = window.messages_sent if window else 0

    if sent >= cap:
        logger.info("message_cap_exceeded", account=account.address, channel=channel, cap=cap)
        return MessageResult(outcome="cap_exceeded", remaining=0, cap=cap, resets_at=next_utc_midnight(now))

    if window is None:
        window = RateLimitWindow(address=account.address, channel=channel, day=day, messages_sent=0)
        db.add(window)
    window.messages_sent = sent + 1
    await db.flush()
    return MessageResult(outcome="ok", remaining=cap - sent - 1, cap=cap, resets_at=next_utc_midnight(now))


async def prune_windows(db: AsyncSession, now: datetime) -> int:
    """Delete windows for days that have fully elapsed. Returns rows removed."""
    result = await db.execute(delete(RateLimitWindow).where(RateLimitWindow.day < utc_day(now)))
    removed = result.rowcount or 0
    logger.info("rate_limit_windows_pruned", removed=removed)
    return removed
