"""Season lifecycle: bootstrap, lazy rollover, staged caps and airdrop snapshots."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from conftest import ALICE, BOB, T0
from vpe.database import get_session_factory
from vpe.db.models import Season
from vpe.errors import SeasonEndedError, UnknownSeasonError
from vpe.seasons import service as season_service
from vpe.seasons.service import (
    burn_season_query,
    current_season,
    get_airdrop_snapshot,
    resolve_burn_season,
)

END = T0 + timedelta(days=90)


class TestCurrentSeason:

    @pytest.mark.asyncio
    async def test_bootstraps_first_season(self, db_session, config):
        season, ended = await current_season(db_session, config, T0)
        await db_session.commit()

        assert ended is None
        assert season.id == 1
        assert season.active
        assert season.start_time == T0
        assert season.end_time == END
        assert season.daily_credit_cap == 6000
        assert season.seasonal_credit_cap == 100_000

    @pytest.mark.asyncio
    async def test_same_season_before_end(self, db_session, config):
        first, _ = await current_season(db_session, config, T0)
        again, ended = await current_season(db_session, config, END - timedelta(seconds=1))
        assert again.id == first.id
        assert ended is None

    @pytest.mark.asyncio
    async def test_rollover_at_end_time(self, db_session, config):
        await current_season(db_session, config, T0)
        await db_session.commit()

        later = END + timedelta(hours=3)
        season, ended = await current_season(db_session, config, later)
        await db_session.commit()

        assert season.id == 2
        assert season.active
        assert season.start_time == later
        assert season.end_time == later + timedelta(days=90)
        assert ended.id == 1
        assert ended.status == "ended"

    @pytest.mark.asyncio
    async def test_long_gap_creates_one_season(self, db_session, config):
        await current_season(db_session, config, T0)
        season, _ = await current_season(db_session, config, T0 + timedelta(days=400))
        await db_session.commit()

        assert season.id == 2
        count = (await db_session.execute(select(func.count()).select_from(Season))).scalar_one()
        assert count == 2


class TestSingleActiveSeason:

    @pytest.mark.asyncio
    async def test_second_active_season_rejected(self, db_session, config):
        await current_season(db_session, config, T0)
        await db_session.commit()

        db_session.add(Season(
            id=5,
            status="active",
            duration_days=90,
            daily_credit_cap=6000.0,
            seasonal_credit_cap=100_000.0,
            created_at=T0,
        ))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_caller_behind_committed_rollover_joins_it(self, db_session, config, monkeypatch):
        await current_season(db_session, config, T0)
        await current_season(db_session, config, END)
        await db_session.commit()

        real = season_service.get_active_season
        calls = 0

        async def stale_first_read(db, **kwargs):
            # The first read ran before the rollover committed
            nonlocal calls
            calls += 1
            if calls == 1:
                return None
            return await real(db, **kwargs)

        monkeypatch.setattr(season_service, "get_active_season", stale_first_read)
        season, ended = await current_season(db_session, config, END + timedelta(minutes=5))
        await db_session.commit()

        assert season.id == 2
        assert ended is None
        active = (await db_session.execute(select(func.count()).where(Season.status == "active"))).scalar_one()
        total = (await db_session.execute(select(func.count()).select_from(Season))).scalar_one()
        assert active == 1
        assert total == 2


class TestScheduledSeason:

    @pytest.mark.asyncio
    async def test_zero_duration_rejected(self, engine, db_session):
        await engine.get_current_season(db_session, T0)
        with pytest.raises(ValueError, match="duration_days"):
            await engine.schedule_next_season(db_session, 8000, 150_000, T0, duration_days=0)

    @pytest.mark.asyncio
    async def test_staged_caps_used_at_rollover(self, engine, db_session):
        await engine.get_current_season(db_session, T0)
        pending = await engine.schedule_next_season(db_session, 8000, 150_000, T0, duration_days=30)
        assert pending.id == 2
        assert pending.status == "pending"

        season = await engine.get_current_season(db_session, END)
        assert season.id == 2
        assert season.daily_credit_cap == 8000
        assert season.seasonal_credit_cap == 150_000
        assert season.end_time == END + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_restaging_replaces_caps(self, engine, db_session):
        await engine.get_current_season(db_session, T0)
        await engine.schedule_next_season(db_session, 8000, 150_000, T0)
        await engine.schedule_next_season(db_session, 7000, 120_000, T0)

        season = await engine.get_current_season(db_session, END)
        assert season.daily_credit_cap == 7000

    @pytest.mark.asyncio
    async def test_caps_not_retroactive(self, engine, db_session):
        """Staging new caps leaves the active season's caps alone."""
        active = await engine.get_current_season(db_session, T0)
        await engine.schedule_next_season(db_session, 100, 200, T0)
        again = await engine.get_current_season(db_session, T0 + timedelta(days=1))
        assert again.id == active.id
        assert again.daily_credit_cap == 6000


class TestResolveBurnSeason:

    @pytest.mark.asyncio
    async def test_active_season_accepted(self, db_session, config):
        season, _ = await current_season(db_session, config, T0)
        assert (await resolve_burn_season(db_session, season.id, T0)).id == 1

    @pytest.mark.asyncio
    async def test_ended_season_names_current(self, db_session, config):
        await current_season(db_session, config, T0)
        await current_season(db_session, config, END)

        with pytest.raises(SeasonEndedError) as exc_info:
            await resolve_burn_season(db_session, 1, END)
        assert exc_info.value.current_season_id == 2

    @pytest.mark.asyncio
    async def test_expired_but_not_rolled_over(self, db_session, config):
        await current_season(db_session, config, T0)
        with pytest.raises(SeasonEndedError) as exc_info:
            await resolve_burn_season(db_session, 1, END)
        assert exc_info.value.current_season_id == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("season_id", [0, 2, 99])
    async def test_unknown_or_pending_season(self, engine, db_session, season_id):
        await engine.get_current_season(db_session, T0)
        await engine.schedule_next_season(db_session, 8000, 150_000, T0)
        with pytest.raises(UnknownSeasonError):
            await resolve_burn_season(db_session, season_id, T0)


    def test_burn_holds_shared_lock_on_season(self):
        sql = str(burn_season_query(1).compile(dialect=postgresql.dialect()))
        assert "FOR SHARE" in sql


class TestAirdropSnapshot:

    @pytest.mark.asyncio
    async def test_snapshot_taken_at_rollover(self, engine, db_session):
        season = await engine.get_current_season(db_session, T0)
        await engine.report_burn(db_session, ALICE, season.id, 1000, T0)
        await engine.report_burn(db_session, BOB, season.id, 3000, T0)

        assert await engine.get_airdrop_snapshot(db_session, season.id) == []
        await engine.get_current_season(db_session, END)

        rows = await get_airdrop_snapshot(db_session, season.id)
        assert [r.address for r in rows] == [BOB, ALICE]
        assert rows[0].xp_earned == 3000
        assert rows[0].airdrop_weight == pytest.approx(3000 * 1.2)

    @pytest.mark.asyncio
    async def test_unknown_season(self, engine, db_session):
        with pytest.raises(UnknownSeasonError):
            await engine.get_airdrop_snapshot(db_session, 42)


class TestConcurrentRollover:

    @pytest.mark.asyncio
    async def test_concurrent_callers_see_same_season(self, engine, database):
        factory = get_session_factory()
        async with factory() as db:
            await engine.get_current_season(db, T0)

        async def call() -> int:
            async with factory() as db:
                return (await engine.get_current_season(db, END + timedelta(minutes=5))).id

        ids = await asyncio.gather(*(call() for _ in range(8)))
        assert set(ids) == {2}

        async with factory() as db:
            count = (await db.execute(select(func.count()).select_from(Season))).scalar_one()
            active = (await db.execute(select(func.count()).where(Season.status == "active"))).scalar_one()
        assert count == 2
        assert active == 1
