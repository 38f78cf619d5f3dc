"""Multiplier stack tests."""

import itertools

import pytest

from vpe.burn.multipliers import StaticMultiplierSource, apply_multipliers, round_half_up
from vpe.errors import InvalidAmountError


class TestApplyMultipliers:

    def test_no_multipliers(self):
        assert apply_multipliers(3500) == 3500

    def test_prestige_and_creator(self):
        assert apply_multipliers(1000, prestige=2.0, creator_tier=1.5) == 3000

    def test_order_does_not_matter(self):
        """Every assignment of the same factors to slots yields the same XP."""
        factors = (1.5, 1.25, 1.1, 1.2)
        results = {
            apply_multipliers(777, prestige=a, creator_tier=b, district=c, mini_app=d)
            for a, b, c, d in itertools.permutations(factors)
        }
        assert len(results) == 1

    def test_mini_app_capped(self):
        assert apply_multipliers(1000, mini_app=3.0) == 1500
        assert apply_multipliers(1000, mini_app=1.2) == 1200

    def test_zero_raw_stays_zero(self):
        assert apply_multipliers(0, prestige=5.0, district=3.0) == 0

    def test_rounds_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4999) == 2
        assert apply_multipliers(1, prestige=1.5) == 2

    @pytest.mark.parametrize("bad", [-1.0, float("nan"), float("inf")])
    def test_rejects_invalid_factor(self, bad):
        with pytest.raises(InvalidAmountError):
            apply_multipliers(100, district=bad)


class TestStaticMultiplierSource:

    @pytest.mark.asyncio
    async def test_returns_value_for_any_account(self):
        source = StaticMultiplierSource(1.25)
        assert await source.get_multiplier(None, "anyone") == 1.25
