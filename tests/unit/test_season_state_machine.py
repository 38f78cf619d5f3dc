"""Season state machine and pure lifecycle helper tests."""

from datetime import date, datetime, timedelta, timezone

import pytest

from vpe.db.models import Season, UserSeasonState
from vpe.seasons.service import VALID_TRANSITIONS, roll_daily_window, season_progress, validate_transition

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestSeasonStateMachine:
    """pending -> active -> ended, nothing else."""

    def test_valid_transitions_structure(self):
        assert set(VALID_TRANSITIONS.keys()) == {"pending", "active", "ended"}

    def test_pending_to_active(self):
        validate_transition("pending", "active")

    def test_active_to_ended(self):
        validate_transition("active", "ended")

    def test_ended_is_terminal(self):
        assert VALID_TRANSITIONS["ended"] == []

    def test_cannot_skip_active(self):
        with pytest.raises(ValueError, match="Invalid transition"):
            validate_transition("pending", "ended")

    def test_cannot_reactivate(self):
        with pytest.raises(ValueError, match="Invalid transition"):
            validate_transition("ended", "active")


class TestSeasonProgress:

    def _season(self) -> Season:
        return Season(
            id=1,
            status="active",
            start_time=START,
            end_time=START + timedelta(days=90),
            duration_days=90,
            daily_credit_cap=6000.0,
            seasonal_credit_cap=100_000.0,
            created_at=START,
        )

    def test_halfway(self):
        result = season_progress(self._season(), START + timedelta(days=45))
        assert result["percent_elapsed"] == 50.0
        assert result["remaining_seconds"] == 45 * 86_400

    def test_clamped_after_end(self):
        result = season_progress(self._season(), START + timedelta(days=200))
        assert result["percent_elapsed"] == 100.0
        assert result["remaining_seconds"] == 0

    def test_pending_has_no_progress(self):
        pending = Season(id=2, status="pending", duration_days=90, daily_credit_cap=1, seasonal_credit_cap=1)
        assert season_progress(pending, START)["percent_elapsed"] == 0.0


class TestRollDailyWindow:

    def _state(self, day: date | None, used: float) -> UserSeasonState:
        return UserSeasonState(
            address="a",
            season_id=1,
            daily_credits_used=used,
            daily_reset_day=day,
            seasonal_credits_used=used,
            xp_earned=0,
            airdrop_weight=0.0,
        )

    def test_same_day_keeps_credits(self):
        state = self._state(date(2026, 1, 5), 2500.0)
        assert roll_daily_window(state, datetime(2026, 1, 5, 23, 59, tzinfo=timezone.utc)) is False
        assert state.daily_credits_used == 2500.0

    def test_new_day_resets_daily_only(self):
        state = self._state(date(2026, 1, 5), 2500.0)
        assert roll_daily_window(state, datetime(2026, 1, 6, 0, 0, tzinfo=timezone.utc)) is True
        assert state.daily_credits_used == 0.0
        assert state.seasonal_credits_used == 2500.0
        assert state.daily_reset_day == date(2026, 1, 6)
