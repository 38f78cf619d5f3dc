"""Asset-footprint boost curves for message caps.

Only the bounds are fixed (no boost below ``min_holding``, never above
``max_boost``). The shape between them is pluggable; both built-in curves
start at 1.0 at ``min_holding`` and reach ``max_boost`` at ``full_holding``.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from vpe.engine_config import EngineConfig

HoldingsBoost = Callable[[float], float]


def _validate_bounds(min_holding: float, full_holding: float, max_boost: float) -> None:
    if min_holding <= 0 or full_holding <= min_holding:
        msg = f"need 0 < min_holding < full_holding, got {min_holding}, {full_holding}"
        raise ValueError(msg)
    if max_boost < 1.0:
        msg = f"max_boost must be >= 1.0, got {max_boost}"
        raise ValueError(msg)


def linear_boost(min_holding: float = 100.0, full_holding: float = 10_000.0, max_boost: float = 2.0) -> HoldingsBoost:
    """Linear ramp from 1.0 at min_holding to max_boost at full_holding, flat after."""
    _validate_bounds(min_holding, full_holding, max_boost)

    def curve(holdings: float) -> float:
        if holdings < min_holding:
            return 1.0
        fraction = min(1.0, (holdings - min_holding) / (full_holding - min_holding))
        return 1.0 + (max_boost - 1.0) * fraction

    return curve


def log_boost(min_holding: float = 100.0, full_holding: float = 10_000.0, max_boost: float = 2.0) -> HoldingsBoost:
    """Logarithmic ramp: each 10x in holdings adds the same boost, capped at max_boost."""
    _validate_bounds(min_holding, full_holding, max_boost)
    span = math.log10(full_holding / min_holding)

    def curve(holdings: float) -> float:
        if holdings < min_holding:
            return 1.0
        fraction = min(1.0, math.log10(holdings / min_holding) / span)
        return 1.0 + (max_boost - 1.0) * fraction

    return curve


BOOST_CURVES: dict[str, Callable[[float, float, float], HoldingsBoost]] = {
    "linear": linear_boost,
    "log": log_boost,
}


def build_boost_curve(config: EngineConfig) -> HoldingsBoost:
    """Build the curve named in config."""
    try:
        factory = BOOST_CURVES[config.holdings_boost_curve]
    except KeyError:
        msg = f"Unknown holdings boost curve {config.holdings_boost_curve!r}; expected one of {sorted(BOOST_CURVES)}"
        raise ValueError(msg) from None
    return factory(config.holdings_boost_min, config.holdings_boost_full, config.holdings_boost_max)
