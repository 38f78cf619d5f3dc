"""Three-zone marginal XP schedule over a day's burn credits.

With daily credit cap D and the default split of 0.5:
  zone 1  [0, D/2)   1.0 XP per VOID
  zone 2  [D/2, D)   0.5 XP per VOID
  zone 3  [D, inf)   0.0 XP per VOID
A burn is consumed from ``already_used`` upward and split across every zone
it touches.
"""

from __future__ import annotations

DEFAULT_ZONE_RATES: tuple[float, float, float] = (1.0, 0.5, 0.0)
DEFAULT_ZONE_SPLIT = 0.5


def zone_bounds(daily_cap: float, split: float = DEFAULT_ZONE_SPLIT) -> tuple[float, float]:
    """(end of zone 1, end of zone 2) in credits."""
    cap = max(0.0, daily_cap)
    return cap * split, cap


def compute_zone_xp(
    amount: float,
    already_used: float,
    daily_cap: float,
    rates: tuple[float, float, float] = DEFAULT_ZONE_RATES,
    split: float = DEFAULT_ZONE_SPLIT,
) -> dict:
    """Raw XP for burning ``amount`` credits starting at ``already_used``."""
    zone1_end, zone2_end = zone_bounds(daily_cap, split)
    edges = (0.0, zone1_end, zone2_end, float("inf"))

    position = max(0.0, already_used)
    remaining = max(0.0, amount)
    zone_xp = [0.0, 0.0, 0.0]
    final_zone = zone_of(position, daily_cap, split)

    for index in range(3):
        if remaining <= 0:
            break
        upper = edges[index + 1]
        if position >= upper:
            continue
        consumed = min(remaining, upper - position)
        zone_xp[index] = consumed * rates[index]
        position += consumed
        remaining -= consumed
        final_zone = index + 1

    return {
        "raw_xp": zone_xp[0] + zone_xp[1] + zone_xp[2],
        "zone1_xp": zone_xp[0],
        "zone2_xp": zone_xp[1],
        "zone3_xp": zone_xp[2],
        "final_zone": final_zone,
    }


def zone_of(used: float, daily_cap: float, split: float = DEFAULT_ZONE_SPLIT) -> int:
    zone1_end, zone2_end = zone_bounds(daily_cap, split)
    if used >= zone2_end:
        return 3
    if used >= zone1_end:
        return 2
    return 1


def zone_status(
    used: float,
    daily_cap: float,
    rates: tuple[float, float, float] = DEFAULT_ZONE_RATES,
    split: float = DEFAULT_ZONE_SPLIT,
) -> dict:
    """Current zone, its rate as a percentage, and where the next zone starts."""
    zone1_end, zone2_end = zone_bounds(daily_cap, split)
    zone = zone_of(used, daily_cap, split)
    next_zone_at = {1: zone1_end, 2: zone2_end, 3: None}[zone]
    return {"zone": zone, "rate_pct": rates[zone - 1] * 100, "next_zone_at": next_zone_at}
