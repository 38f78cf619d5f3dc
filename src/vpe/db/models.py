"""ORM models for the progression ledger.

All timestamps are UTC-aware (see UtcDateTime). Scores, holdings and VOID
credit amounts are stored unrounded; flooring happens only when presented.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from vpe.db.base import Base, BigIntegerPK, UtcDateTime


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """One row per address, created on the first reported event."""

    __tablename__ = "accounts"

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    current_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    lifetime_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    last_score_update_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    void_holdings: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class AccountMultiplier(Base):
    """Externally reported reward multiplier (prestige, creator tier, ...)."""

    __tablename__ = "account_multipliers"

    address: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.address", ondelete="CASCADE"), primary_key=True
    )
    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=1.0, server_default="1")
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class RateLimitWindow(Base):
    """Messages sent per (account, channel, UTC day). Old days are prunable."""

    __tablename__ = "rate_limit_windows"
    __table_args__ = (
        UniqueConstraint("address", "channel", "day", name="rate_limit_windows_address_channel_day_key"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.address", ondelete="CASCADE"), nullable=False
    )
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    messages_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------


class Season(Base):
    """A burn season. Immutable once activated except for its status.

    A PENDING row carries staged caps for the next season; its start/end are
    set when it is activated.
    """

    __tablename__ = "seasons"
    __table_args__ = (
        Index(
            "idx_seasons_single_active",
            "status",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    start_time: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_credit_cap: Mapped[float] = mapped_column(Float, nullable=False)
    seasonal_credit_cap: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)

    @property
    def active(self) -> bool:
        return self.status == "active"


class UserSeasonState(Base):
    """Per-account burn credits and XP for one season."""

    __tablename__ = "user_season_state"

    address: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.address", ondelete="CASCADE"), primary_key=True
    )
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), primary_key=True)
    daily_credits_used: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    daily_reset_day: Mapped[date | None] = mapped_column(Date, nullable=True)
    seasonal_credits_used: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    xp_earned: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    airdrop_weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class UserLifetimeState(Base):
    """Cross-season XP totals. Never reset."""

    __tablename__ = "user_lifetime_state"

    address: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.address", ondelete="CASCADE"), primary_key=True
    )
    total_xp_earned: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_burned_all_time: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class BurnLedger(Base):
    """Immutable record of each reported burn with idempotency key."""

    __tablename__ = "burn_ledger"

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.address", ondelete="CASCADE"), nullable=False
    )
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    module: Mapped[str] = mapped_column(String(16), nullable=False, default="utility")
    burn_amount: Mapped[float] = mapped_column(Float, nullable=False)
    eligible_amount: Mapped[float] = mapped_column(Float, nullable=False)
    raw_xp: Mapped[float] = mapped_column(Float, nullable=False)
    xp_awarded: Mapped[int] = mapped_column(BigInteger, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class AirdropSnapshot(Base):
    """Final per-account airdrop weight of an ended season."""

    __tablename__ = "airdrop_snapshots"

    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), primary_key=True)
    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    xp_earned: Mapped[int] = mapped_column(BigInteger, nullable=False)
    airdrop_weight: Mapped[float] = mapped_column(Float, nullable=False)
    snapshot_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
