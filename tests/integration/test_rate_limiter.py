"""Rate limiter against the ledger: daily windows, caps and pruning."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import ALICE, BOB, T0
from vpe.db.models import RateLimitWindow
from vpe.engine_config import EngineConfig
from vpe.ledger.service import get_or_create_account
from vpe.ratelimit.boost import linear_boost
from vpe.ratelimit.service import (
    messages_sent_today,
    prune_windows,
    record_message,
    remaining_messages,
)

SMALL = EngineConfig(base_channel_caps={"global": 3, "zone": 2, "dm": 1})
LINEAR = linear_boost()


async def _aged_account(db: AsyncSession, address: str = ALICE, days: int = 30):
    account = await get_or_create_account(db, address, T0 - timedelta(days=days))
    await db.commit()
    return account


class TestRecordMessage:

    @pytest.mark.asyncio
    async def test_remaining_decreases_by_one(self, db_session):
        account = await _aged_account(db_session)
        before = await remaining_messages(db_session, SMALL, account, "global", T0, LINEAR)
        result = await record_message(db_session, SMALL, account, "global", T0, LINEAR)
        after = await remaining_messages(db_session, SMALL, account, "global", T0, LINEAR)

        assert before == 3
        assert result.allowed
        assert result.remaining == after == 2

    @pytest.mark.asyncio
    async def test_applies_lazy_decay_without_awarding(self, db_session):
        account = await _aged_account(db_session)
        account.current_score = 100.0
        account.lifetime_score = 100.0
        account.last_score_update_at = T0 - timedelta(days=2)

        await record_message(db_session, SMALL, account, "global", T0, LINEAR)

        assert account.current_score == pytest.approx(100.0 * 0.98**2)
        assert account.lifetime_score == 100.0
        assert account.last_score_update_at == T0

    @pytest.mark.asyncio
    async def test_cap_exceeded_once_exhausted(self, db_session):
        account = await _aged_account(db_session)
        for _ in range(3):
            assert (await record_message(db_session, SMALL, account, "global", T0, LINEAR)).allowed

        for _ in range(2):
            result = await record_message(db_session, SMALL, account, "global", T0, LINEAR)
            assert result.outcome == "cap_exceeded"
            assert result.remaining == 0
            assert result.resets_at == T0.replace(hour=0) + timedelta(days=1)

        assert await remaining_messages(db_session, SMALL, account, "global", T0, LINEAR) == 0

    @pytest.mark.asyncio
    async def test_channels_are_independent(self, db_session):
        account = await _aged_account(db_session)
        await record_message(db_session, SMALL, account, "dm", T0, LINEAR)
        assert not (await record_message(db_session, SMALL, account, "dm", T0, LINEAR)).allowed
        assert (await record_message(db_session, SMALL, account, "zone", T0, LINEAR)).allowed

    @pytest.mark.asyncio
    async def test_new_utc_day_resets(self, db_session):
        account = await _aged_account(db_session)
        await record_message(db_session, SMALL, account, "dm", T0, LINEAR)
        tomorrow = T0 + timedelta(days=1)
        assert await remaining_messages(db_session, SMALL, account, "dm", tomorrow, LINEAR) == 1
        assert (await record_message(db_session, SMALL, account, "dm", tomorrow, LINEAR)).allowed

    @pytest.mark.asyncio
    async def test_fresh_wallet_gets_half(self, db_session):
        account = await get_or_create_account(db_session, BOB, T0)
        assert await remaining_messages(db_session, EngineConfig(), account, "global", T0, LINEAR) == 25

    @pytest.mark.asyncio
    async def test_tier_from_decayed_score(self, db_session):
        """A GOLD score that decays below the threshold loses the GOLD boost."""
        account = await _aged_account(db_session)
        account.current_score = 610.0
        account.last_score_update_at = T0
        config = EngineConfig()
        assert await remaining_messages(db_session, config, account, "global", T0, LINEAR) == 75
        later = T0 + timedelta(days=2)
        assert await remaining_messages(db_session, config, account, "global", later, LINEAR) == 60

    @pytest.mark.asyncio
    async def test_messages_sent_today_sums_channels(self, db_session):
        account = await _aged_account(db_session)
        await record_message(db_session, SMALL, account, "global", T0, LINEAR)
        await record_message(db_session, SMALL, account, "zone", T0, LINEAR)
        assert await messages_sent_today(db_session, ALICE, T0) == 2
        assert await messages_sent_today(db_session, ALICE, T0 + timedelta(days=1)) == 0


class TestPruneWindows:

    @pytest.mark.asyncio
    async def test_prunes_only_past_days(self, db_session):
        account = await _aged_account(db_session)
        yesterday = T0 - timedelta(days=1)
        await record_message(db_session, SMALL, account, "global", yesterday, LINEAR)
        await record_message(db_session, SMALL, account, "global", T0, LINEAR)
        await db_session.commit()

        removed = await prune_windows(db_session, T0)
        await db_session.commit()

        assert removed == 1
        count = (await db_session.execute(select(func.count()).select_from(RateLimitWindow))).scalar_one()
        assert count == 1
