"""Lifetime level from total XP: a flat XP-per-level ladder starting at level 1."""

from __future__ import annotations

DEFAULT_XP_PER_LEVEL = 1000


def compute_level(total_xp: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> dict:
    """Level info for ``total_xp``. Level 1 at 0 XP."""
    total_xp = max(0, total_xp)
    level = total_xp // xp_per_level + 1
    return {
        "level": level,
        "xp_into_level": total_xp - (level - 1) * xp_per_level,
        "xp_for_level": xp_per_level,
        "next_level": level + 1,
    }
