"""Score decay tests: pure math and the lazy apply on an Account row."""

from datetime import timedelta

import pytest

from conftest import ALICE, T0
from vpe.db.models import Account
from vpe.errors import InvalidAmountError
from vpe.score.decay import decay_factor, decayed_score, half_life_days, presented_score
from vpe.score.service import add_points, apply_decay


def _account(score: float = 0.0, age_days: int = 30) -> Account:
    created = T0 - timedelta(days=age_days)
    return Account(
        address=ALICE,
        current_score=score,
        lifetime_score=score,
        last_score_update_at=T0,
        created_at=created,
        void_holdings=0.0,
        updated_at=T0,
    )


class TestDecayMath:

    def test_zero_days_is_identity(self):
        assert decay_factor(0) == 1.0
        assert decayed_score(123.4, 0) == 123.4

    @pytest.mark.parametrize("days", [1, 7, 30, 90])
    def test_factor_is_rate_to_the_days(self, days):
        assert decayed_score(1000.0, days) == pytest.approx(1000.0 * 0.98**days)

    def test_half_life_about_34_days(self):
        assert half_life_days() == pytest.approx(34.31, abs=0.01)

    def test_long_decay_never_negative(self):
        score = 1000.0
        for days in (1000, 500, 500):
            score = decayed_score(score, days)
            assert score >= 0.0
        assert score < 1e-6

    def test_presented_score_floors(self):
        assert presented_score(99.99) == 99
        assert presented_score(0.0) == 0


class TestApplyDecay:

    def test_same_day_is_noop(self):
        account = _account(500.0)
        assert apply_decay(account, T0 + timedelta(hours=23)) == 500.0
        assert account.last_score_update_at == T0

    def test_repeat_within_day_is_idempotent(self):
        account = _account(500.0)
        first = apply_decay(account, T0 + timedelta(days=3))
        second = apply_decay(account, T0 + timedelta(days=3, hours=5))
        assert first == second == pytest.approx(500.0 * 0.98**3)

    def test_fractional_day_carries_over(self):
        """Reading at 1.5 days then 2.0 days applies exactly two days in total."""
        account = _account(1000.0)
        apply_decay(account, T0 + timedelta(days=1, hours=12))
        apply_decay(account, T0 + timedelta(days=2))
        assert account.current_score == pytest.approx(1000.0 * 0.98**2)
        assert account.last_score_update_at == T0 + timedelta(days=2)

    def test_split_reads_match_single_read(self):
        split = _account(800.0)
        for day in range(1, 11):
            apply_decay(split, T0 + timedelta(days=day))
        single = _account(800.0)
        apply_decay(single, T0 + timedelta(days=10))
        assert split.current_score == pytest.approx(single.current_score)


class TestAddPoints:

    def test_decays_before_adding(self):
        account = _account(100.0)
        current, lifetime = add_points(account, 10.0, T0 + timedelta(days=1))
        assert current == pytest.approx(98.0 + 10.0)
        assert lifetime == pytest.approx(110.0)

    def test_lifetime_never_decays(self):
        account = _account(0.0)
        add_points(account, 50.0, T0)
        add_points(account, 0.0, T0 + timedelta(days=100))
        assert account.lifetime_score == 50.0
        assert account.current_score < 50.0

    @pytest.mark.parametrize("amount", [-1.0, float("nan"), float("inf")])
    def test_rejects_invalid_amount_without_mutation(self, amount):
        account = _account(100.0)
        with pytest.raises(InvalidAmountError):
            add_points(account, amount, T0 + timedelta(days=5))
        assert account.current_score == 100.0
        assert account.last_score_update_at == T0
