"""Tier derivation and progress tests."""

from vpe.score.tiers import TIER_THRESHOLDS, Tier, derive_tier, tier_floor, tier_progress


class TestDeriveTier:
    """Pure threshold lookup."""

    def test_zero_score_is_bronze(self):
        assert derive_tier(0.0) == Tier.BRONZE

    def test_exact_thresholds(self):
        assert derive_tier(250.0) == Tier.SILVER
        assert derive_tier(600.0) == Tier.GOLD
        assert derive_tier(1500.0) == Tier.S_TIER

    def test_just_below_threshold(self):
        assert derive_tier(249.999) == Tier.BRONZE
        assert derive_tier(1499.99) == Tier.GOLD

    def test_huge_score_is_s_tier(self):
        assert derive_tier(1e12) == Tier.S_TIER

    def test_monotonic_in_score(self):
        """Increasing score never lowers the tier."""
        previous = Tier.BRONZE
        for score in range(0, 3001, 7):
            tier = derive_tier(float(score))
            assert tier >= previous
            previous = tier

    def test_custom_thresholds(self):
        thresholds = {Tier.SILVER: 10.0, Tier.GOLD: 20.0, Tier.S_TIER: 30.0}
        assert derive_tier(15.0, thresholds) == Tier.SILVER
        assert derive_tier(30.0, thresholds) == Tier.S_TIER


class TestTierProgress:

    def test_bronze_floor_is_zero(self):
        assert tier_floor(Tier.BRONZE) == 0.0
        assert tier_floor(Tier.GOLD) == TIER_THRESHOLDS[Tier.GOLD]

    def test_halfway_to_silver(self):
        result = tier_progress(125.0)
        assert result["tier"] == Tier.BRONZE
        assert result["next_tier"] == Tier.SILVER
        assert result["next_threshold"] == 250.0
        assert result["score_needed"] == 125.0
        assert result["progress"] == 50.0

    def test_progress_between_silver_and_gold(self):
        result = tier_progress(425.0)
        assert result["tier"] == Tier.SILVER
        assert result["progress"] == 50.0

    def test_s_tier_is_terminal(self):
        result = tier_progress(5000.0)
        assert result["next_tier"] is None
        assert result["score_needed"] == 0.0
        assert result["progress"] == 100.0
