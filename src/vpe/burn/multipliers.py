"""Reward multiplier sources and the multiplicative stack.

Each multiplier (prestige, creator tier, district, mini-app) is owned by a
separate subsystem. The burn engine only sees the MultiplierSource protocol.
"""

from __future__ import annotations

import math
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.db.models import AccountMultiplier
from vpe.errors import InvalidAmountError


class MultiplierSource(Protocol):
    """Read-only capability: current multiplier for an account."""

    async def get_multiplier(self, db: AsyncSession, account: str) -> float: ...


class StaticMultiplierSource:
    """Same multiplier for every account."""

    def __init__(self, value: float = 1.0) -> None:
        self.value = value

    async def get_multiplier(self, db: AsyncSession, account: str) -> float:
        return self.value


class StoredMultiplierSource:
    """Multiplier last reported for the account via ReportMultiplier; 1.0 if never reported."""

    def __init__(self, kind: str) -> None:
        self.kind = kind

    async def get_multiplier(self, db: AsyncSession, account: str) -> float:
        result = await db.execute(
            select(AccountMultiplier.value).where(
                AccountMultiplier.address == account,
                AccountMultiplier.kind == self.kind,
            )
        )
        value = result.scalar_one_or_none()
        return 1.0 if value is None else value


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def apply_multipliers(
    raw_xp: float,
    prestige: float = 1.0,
    creator_tier: float = 1.0,
    district: float = 1.0,
    mini_app: float = 1.0,
    mini_app_cap: float = 1.5,
) -> int:
    """round(raw * prestige * creator * district * min(mini_app, cap))."""
    factors = {
        "prestige": prestige,
        "creator_tier": creator_tier,
        "district": district,
        "mini_app": mini_app,
    }
    for name, factor in factors.items():
        if not math.isfinite(factor) or factor < 0:
            raise InvalidAmountError(f"{name} multiplier", factor)
    total = prestige * creator_tier * district * min(mini_app, mini_app_cap)
    return round_half_up(raw_xp * total)
