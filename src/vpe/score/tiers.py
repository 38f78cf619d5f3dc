"""Reputation tiers derived from current (decayed) score.

Tier is never stored. BRONZE is the floor tier: any score below the SILVER
threshold is BRONZE, including zero.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum


class Tier(IntEnum):
    BRONZE = 0
    SILVER = 1
    GOLD = 2
    S_TIER = 3


TIER_THRESHOLDS: dict[Tier, float] = {
    Tier.SILVER: 250.0,
    Tier.GOLD: 600.0,
    Tier.S_TIER: 1500.0,
}

TIER_LABELS: dict[Tier, str] = {
    Tier.BRONZE: "Bronze",
    Tier.SILVER: "Silver",
    Tier.GOLD: "Gold",
    Tier.S_TIER: "S-Tier",
}


def tier_floor(tier: Tier, thresholds: Mapping[Tier, float] = TIER_THRESHOLDS) -> float:
    """Lowest score that qualifies for ``tier``."""
    return thresholds.get(tier, 0.0)


def derive_tier(score: float, thresholds: Mapping[Tier, float] = TIER_THRESHOLDS) -> Tier:
    """Highest tier whose threshold ``score`` meets. Pure lookup."""
    for tier in sorted(thresholds, reverse=True):
        if score >= thresholds[tier]:
            return tier
    return Tier.BRONZE


def tier_progress(score: float, thresholds: Mapping[Tier, float] = TIER_THRESHOLDS) -> dict:
    """Progress (0-100) from the current tier's floor to the next tier.

    S_TIER is terminal: progress is 100 and there is no next tier.
    """
    current = derive_tier(score, thresholds)
    if current == Tier.S_TIER:
        return {
            "tier": current,
            "next_tier": None,
            "next_threshold": tier_floor(Tier.S_TIER, thresholds),
            "score_needed": 0.0,
            "progress": 100.0,
        }

    next_tier = Tier(current + 1)
    floor = tier_floor(current, thresholds)
    ceiling = tier_floor(next_tier, thresholds)
    span = ceiling - floor
    progress = 100.0 if span <= 0 else (score - floor) / span * 100
    return {
        "tier": current,
        "next_tier": next_tier,
        "next_threshold": ceiling,
        "score_needed": max(0.0, ceiling - score),
        "progress": min(100.0, max(0.0, progress)),
    }
