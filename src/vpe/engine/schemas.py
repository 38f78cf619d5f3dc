"""Pydantic request and response models for the progression API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Channel = Literal["global", "zone", "dm"]
BurnModule = Literal["utility", "district", "land", "creator", "prestige", "miniapp"]
MultiplierKind = Literal["prestige", "creator_tier", "district", "mini_app"]


# --- Requests ---


class MessageRequest(BaseModel):
    channel: Channel


class BurnRequest(BaseModel):
    season_id: int
    amount: float
    module: BurnModule = "utility"
    idempotency_key: str | None = Field(default=None, max_length=128)


class ScoreEventRequest(BaseModel):
    event_type: str


class HoldingsRequest(BaseModel):
    void_holdings: float


class MultiplierRequest(BaseModel):
    value: float


class NextSeasonRequest(BaseModel):
    daily_credit_cap: float
    seasonal_credit_cap: float
    duration_days: int | None = Field(default=None, gt=0)


# --- Responses ---


class MessageResponse(BaseModel):
    allowed: bool
    outcome: Literal["ok", "cap_exceeded"]
    remaining: int
    cap: int
    resets_at: datetime
    points_awarded: float
    current_score: int


class BurnResponse(BaseModel):
    season_id: int
    xp_awarded: int
    raw_xp: float
    burn_amount: float
    eligible_amount: float
    daily_remaining: int
    seasonal_remaining: int
    daily_resets_at: datetime
    seasonal_resets_at: datetime | None
    zones: dict = {}
    level: int
    leveled_up: bool
    duplicate: bool


class ScoreResponse(BaseModel):
    current_score: int
    lifetime_score: int
    tier: str


class TierProgressResponse(BaseModel):
    next_tier: str | None
    next_threshold: float
    score_needed: float
    progress: float


class LevelResponse(BaseModel):
    level: int
    xp_into_level: int
    xp_for_level: int
    next_level: int


class ZoneStatusResponse(BaseModel):
    zone: int
    rate_pct: float
    next_zone_at: float | None


class AccountResponse(BaseModel):
    address: str
    current_score: int
    lifetime_score: int
    tier: str
    tier_progress: TierProgressResponse
    per_channel_remaining: dict[str, int]
    void_holdings: float
    account_age_days: float
    season_id: int
    season_xp: int
    airdrop_weight: float
    daily_credits_used: float
    daily_remaining: int
    seasonal_remaining: int
    daily_resets_at: datetime
    seasonal_resets_at: datetime | None
    zone_status: ZoneStatusResponse
    lifetime_xp: int
    level: LevelResponse
    total_burned_all_time: float


class SeasonProgress(BaseModel):
    elapsed_seconds: int
    remaining_seconds: int
    percent_elapsed: float


class SeasonResponse(BaseModel):
    id: int
    status: str
    start_time: datetime | None
    end_time: datetime | None
    duration_days: int
    daily_credit_cap: float
    seasonal_credit_cap: float
    progress: SeasonProgress | None = None


class AirdropEntry(BaseModel):
    address: str
    xp_earned: int
    airdrop_weight: float
    share_pct: float


class AirdropResponse(BaseModel):
    season_id: int
    total_weight: float
    entries: list[AirdropEntry]


class TierEntry(BaseModel):
    tier: str
    label: str
    threshold: float
    rate_boost: float
    airdrop_multiplier: float


class AllTiersResponse(BaseModel):
    tiers: list[TierEntry]
