"""Progression API endpoints.

Callers report events that already happened (a message sent, a burn
confirmed on-chain); every handler stamps them with the server's UTC clock.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.dependencies import get_db, get_engine
from vpe.db.models import Season
from vpe.engine.facade import ProgressionEngine
from vpe.engine.schemas import (
    AccountResponse,
    AirdropEntry,
    AirdropResponse,
    AllTiersResponse,
    BurnRequest,
    BurnResponse,
    HoldingsRequest,
    LevelResponse,
    MessageRequest,
    MessageResponse,
    MultiplierKind,
    MultiplierRequest,
    NextSeasonRequest,
    ScoreEventRequest,
    ScoreResponse,
    SeasonProgress,
    SeasonResponse,
    TierEntry,
    TierProgressResponse,
    ZoneStatusResponse,
)
from vpe.score.decay import presented_score
from vpe.score.tiers import TIER_LABELS, Tier, derive_tier, tier_floor
from vpe.seasons.service import season_progress

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _season_response(season: Season, now: datetime) -> SeasonResponse:
    return SeasonResponse(
        id=season.id,
        status=season.status,
        start_time=season.start_time,
        end_time=season.end_time,
        duration_days=season.duration_days,
        daily_credit_cap=season.daily_credit_cap,
        seasonal_credit_cap=season.seasonal_credit_cap,
        progress=SeasonProgress(**season_progress(season, now)) if season.active else None,
    )


# ── Accounts ──


@router.post("/accounts/{address}/messages", response_model=MessageResponse)
async def report_message(
    address: str,
    body: MessageRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Count a message against the channel's daily cap. A capped message is a 200 with allowed=false."""
    report = await engine.report_message(db, address, body.channel, _now())
    return MessageResponse(
        allowed=report.allowed,
        outcome="ok" if report.allowed else "cap_exceeded",
        remaining=report.remaining,
        cap=report.cap,
        resets_at=report.resets_at,
        points_awarded=report.points_awarded,
        current_score=presented_score(report.current_score),
    )


@router.post("/accounts/{address}/burns", response_model=BurnResponse)
async def report_burn(
    address: str,
    body: BurnRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Credit a confirmed burn. Burns past the caps succeed with zero XP."""
    result = await engine.report_burn(
        db,
        address,
        body.season_id,
        body.amount,
        _now(),
        module=body.module,
        idempotency_key=body.idempotency_key,
    )
    return BurnResponse(
        season_id=result.season_id,
        xp_awarded=result.xp_awarded,
        raw_xp=result.raw_xp,
        burn_amount=result.burn_amount,
        eligible_amount=result.eligible_amount,
        daily_remaining=result.daily_remaining,
        seasonal_remaining=result.seasonal_remaining,
        daily_resets_at=result.daily_resets_at,
        seasonal_resets_at=result.seasonal_resets_at,
        zones=result.zones,
        level=result.new_level,
        leveled_up=result.leveled_up,
        duplicate=result.duplicate,
    )


@router.post("/accounts/{address}/events", response_model=ScoreResponse)
async def report_score_event(
    address: str,
    body: ScoreEventRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    current, lifetime = await engine.report_score_event(db, address, body.event_type, _now())
    return ScoreResponse(
        current_score=presented_score(current),
        lifetime_score=presented_score(lifetime),
        tier=derive_tier(current, engine.config.tier_thresholds).name,
    )


@router.put("/accounts/{address}/holdings", status_code=204)
async def report_holdings(
    address: str,
    body: HoldingsRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
) -> None:
    await engine.report_holdings(db, address, body.void_holdings, _now())


@router.put("/accounts/{address}/multipliers/{kind}", status_code=204)
async def report_multiplier(
    address: str,
    kind: MultiplierKind,
    body: MultiplierRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
) -> None:
    await engine.report_multiplier(db, address, kind, body.value, _now())


@router.get("/accounts/{address}", response_model=AccountResponse)
async def get_account(
    address: str,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Account snapshot. Unknown addresses read as fresh accounts."""
    snap = await engine.get_account_snapshot(db, address, _now())
    progress = snap.tier_progress
    return AccountResponse(
        address=snap.address,
        current_score=snap.current_score,
        lifetime_score=snap.lifetime_score,
        tier=snap.tier.name,
        tier_progress=TierProgressResponse(
            next_tier=progress["next_tier"].name if progress["next_tier"] is not None else None,
            next_threshold=progress["next_threshold"],
            score_needed=progress["score_needed"],
            progress=round(progress["progress"], 2),
        ),
        per_channel_remaining=snap.per_channel_remaining,
        void_holdings=snap.void_holdings,
        account_age_days=round(snap.account_age_days, 4),
        season_id=snap.season_id,
        season_xp=snap.season_xp,
        airdrop_weight=snap.airdrop_weight,
        daily_credits_used=snap.daily_credits_used,
        daily_remaining=snap.daily_remaining,
        seasonal_remaining=snap.seasonal_remaining,
        daily_resets_at=snap.daily_resets_at,
        seasonal_resets_at=snap.seasonal_resets_at,
        zone_status=ZoneStatusResponse(**snap.zone_status),
        lifetime_xp=snap.lifetime_xp,
        level=LevelResponse(**snap.level_info),
        total_burned_all_time=snap.total_burned_all_time,
    )


# ── Seasons ──


@router.get("/seasons/current", response_model=SeasonResponse)
async def get_current_season(
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Active season. Rolls over first if the stored one has expired."""
    now = _now()
    season = await engine.get_current_season(db, now)
    return _season_response(season, now)


@router.post("/seasons/next", response_model=SeasonResponse, status_code=201)
async def schedule_next_season(
    body: NextSeasonRequest,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Stage caps for the season after the current one."""
    now = _now()
    season = await engine.schedule_next_season(
        db, body.daily_credit_cap, body.seasonal_credit_cap, now, body.duration_days
    )
    return _season_response(season, now)


@router.get("/seasons/{season_id}/airdrop", response_model=AirdropResponse)
async def get_airdrop(
    season_id: int,
    db: AsyncSession = Depends(get_db),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Final per-account weights of an ended season. Empty until the season rolls over."""
    rows = await engine.get_airdrop_snapshot(db, season_id)
    total = sum(r.airdrop_weight for r in rows)
    return AirdropResponse(
        season_id=season_id,
        total_weight=total,
        entries=[
            AirdropEntry(
                address=r.address,
                xp_earned=r.xp_earned,
                airdrop_weight=r.airdrop_weight,
                share_pct=round(r.airdrop_weight / total * 100, 4) if total > 0 else 0.0,
            )
            for r in rows
        ],
    )


# ── Tiers ──


@router.get("/tiers", response_model=AllTiersResponse)
async def list_tiers(engine: ProgressionEngine = Depends(get_engine)):
    """Tier ladder with the rate-limit boost and airdrop multiplier of each tier."""
    config = engine.config
    return AllTiersResponse(tiers=[
        TierEntry(
            tier=tier.name,
            label=TIER_LABELS[tier],
            threshold=tier_floor(tier, config.tier_thresholds),
            rate_boost=config.tier_rate_boosts[tier],
            airdrop_multiplier=config.airdrop_tier_multipliers[tier],
        )
        for tier in Tier
    ])
