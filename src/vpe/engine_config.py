"""Immutable economy rules injected into the engine at construction.

Per-season credit caps are stored on each Season row; the values here are
only the defaults used when a season is created without staged caps.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from vpe.config import Settings
from vpe.score.tiers import TIER_THRESHOLDS, Tier

CHANNELS: tuple[str, ...] = ("global", "zone", "dm")

MULTIPLIER_KINDS: tuple[str, ...] = ("prestige", "creator_tier", "district", "mini_app")

# Lookup tables frozen into read-only views after construction
_TABLE_FIELDS: tuple[str, ...] = (
    "tier_thresholds",
    "base_channel_caps",
    "tier_rate_boosts",
    "channel_points",
    "airdrop_tier_multipliers",
)


@dataclass(frozen=True)
class EngineConfig:
    """Score, rate-limit, burn and season rules."""

    # Score
    decay_rate: float = 0.98
    tier_thresholds: Mapping[Tier, float] = field(default_factory=lambda: dict(TIER_THRESHOLDS))

    # Rate limiting
    base_channel_caps: Mapping[str, int] = field(
        default_factory=lambda: {"global": 50, "zone": 40, "dm": 20}
    )
    tier_rate_boosts: Mapping[Tier, float] = field(
        default_factory=lambda: {Tier.BRONZE: 1.0, Tier.SILVER: 1.2, Tier.GOLD: 1.5, Tier.S_TIER: 2.0}
    )
    fresh_wallet_days: int = 7
    fresh_wallet_penalty: float = 0.5
    holdings_boost_curve: str = "linear"
    holdings_boost_min: float = 100.0
    holdings_boost_full: float = 10_000.0
    holdings_boost_max: float = 2.0

    # Message points (score, not XP)
    channel_points: Mapping[str, float] = field(
        default_factory=lambda: {"global": 1.0, "zone": 1.0, "dm": 2.0}
    )
    first_daily_message_bonus: float = 5.0

    # Burn XP
    zone_split: float = 0.5
    zone_rates: tuple[float, float, float] = (1.0, 0.5, 0.0)
    mini_app_multiplier_cap: float = 1.5
    xp_per_level: int = 1000
    airdrop_tier_multipliers: Mapping[Tier, float] = field(
        default_factory=lambda: {Tier.BRONZE: 1.2, Tier.SILVER: 1.5, Tier.GOLD: 2.0, Tier.S_TIER: 3.0}
    )

    # Seasons
    first_season_id: int = 1
    season_duration_days: int = 90
    default_daily_credit_cap: float = 6000.0
    default_seasonal_credit_cap: float = 100_000.0

    def __post_init__(self) -> None:
        for name in _TABLE_FIELDS:
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

        ordered = [self.tier_thresholds[t] for t in sorted(self.tier_thresholds)]
        if ordered != sorted(ordered):
            msg = "tier thresholds must increase with tier"
            raise ValueError(msg)
        if not 0 < self.decay_rate <= 1:
            msg = f"decay_rate must be in (0, 1], got {self.decay_rate}"
            raise ValueError(msg)
        if not 0 < self.zone_split < 1:
            msg = f"zone_split must be in (0, 1), got {self.zone_split}"
            raise ValueError(msg)
        if set(self.base_channel_caps) != set(CHANNELS):
            msg = f"base_channel_caps must define exactly {CHANNELS}"
            raise ValueError(msg)

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineConfig:
        """Build a config with the deployment-tunable values taken from settings."""
        return cls(
            holdings_boost_curve=settings.holdings_boost_curve,
            holdings_boost_min=settings.holdings_boost_min,
            holdings_boost_full=settings.holdings_boost_full,
            holdings_boost_max=settings.holdings_boost_max,
            xp_per_level=settings.xp_per_level,
            first_season_id=settings.first_season_id,
            season_duration_days=settings.season_duration_days,
            default_daily_credit_cap=settings.default_daily_credit_cap,
            default_seasonal_credit_cap=settings.default_seasonal_credit_cap,
        )
