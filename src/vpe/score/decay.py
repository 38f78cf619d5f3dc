"""Pure exponential decay math.

A score decays by a fixed factor per whole elapsed day. Half-life is a
derived property: ln(0.5) / ln(rate), about 34.3 days at 0.98.
"""

from __future__ import annotations

import math

DEFAULT_DECAY_RATE = 0.98


def decay_factor(days: int, rate: float = DEFAULT_DECAY_RATE) -> float:
    """Multiplier applied after ``days`` whole days."""
    if days <= 0:
        return 1.0
    return rate**days


def decayed_score(score: float, days: int, rate: float = DEFAULT_DECAY_RATE) -> float:
    """Score after ``days`` of pure decay, floored at zero."""
    return max(0.0, score * decay_factor(days, rate))


def half_life_days(rate: float = DEFAULT_DECAY_RATE) -> float:
    return math.log(0.5) / math.log(rate)


def presented_score(score: float) -> int:
    """Integer score for display. Storage keeps the unrounded value."""
    return max(0, math.floor(score))
