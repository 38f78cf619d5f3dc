"""Progression ledger tables.

Creates accounts, account_multipliers, rate_limit_windows, seasons,
user_season_state, user_lifetime_state, burn_ledger and airdrop_snapshots.

Revision ID: 001_progression_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            address VARCHAR(64) PRIMARY KEY,
            current_score DOUBLE PRECISION NOT NULL DEFAULT 0,
            lifetime_score DOUBLE PRECISION NOT NULL DEFAULT 0,
            last_score_update_at TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            void_holdings DOUBLE PRECISION NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS account_multipliers (
            address VARCHAR(64) NOT NULL REFERENCES accounts(address) ON DELETE CASCADE,
            kind VARCHAR(16) NOT NULL,
            value DOUBLE PRECISION NOT NULL DEFAULT 1,
            updated_at TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (address, kind)
        )
    """)

    # --- Rate limit windows ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rate_limit_windows (
            id BIGSERIAL PRIMARY KEY,
            address VARCHAR(64) NOT NULL REFERENCES accounts(address) ON DELETE CASCADE,
            channel VARCHAR(16) NOT NULL,
            day DATE NOT NULL,
            messages_sent INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT rate_limit_windows_address_channel_day_key UNIQUE (address, channel, day)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_rate_limit_windows_day
        ON rate_limit_windows(day)
    """)

    # --- Seasons ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS seasons (
            id INTEGER PRIMARY KEY,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            start_time TIMESTAMPTZ,
            end_time TIMESTAMPTZ,
            duration_days INTEGER NOT NULL,
            daily_credit_cap DOUBLE PRECISION NOT NULL,
            seasonal_credit_cap DOUBLE PRECISION NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    # At most one active season
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_seasons_single_active
        ON seasons(status)
        WHERE status = 'active'
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_season_state (
            address VARCHAR(64) NOT NULL REFERENCES accounts(address) ON DELETE CASCADE,
            season_id INTEGER NOT NULL REFERENCES seasons(id),
            daily_credits_used DOUBLE PRECISION NOT NULL DEFAULT 0,
            daily_reset_day DATE,
            seasonal_credits_used DOUBLE PRECISION NOT NULL DEFAULT 0,
            xp_earned BIGINT NOT NULL DEFAULT 0,
            airdrop_weight DOUBLE PRECISION NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (address, season_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_lifetime_state (
            address VARCHAR(64) PRIMARY KEY REFERENCES accounts(address) ON DELETE CASCADE,
            total_xp_earned BIGINT NOT NULL DEFAULT 0,
            current_level INTEGER NOT NULL DEFAULT 1,
            total_burned_all_time DOUBLE PRECISION NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL
        )
    """)

    # --- Burns ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS burn_ledger (
            id BIGSERIAL PRIMARY KEY,
            address VARCHAR(64) NOT NULL REFERENCES accounts(address) ON DELETE CASCADE,
            season_id INTEGER NOT NULL REFERENCES seasons(id),
            module VARCHAR(16) NOT NULL DEFAULT 'utility',
            burn_amount DOUBLE PRECISION NOT NULL,
            eligible_amount DOUBLE PRECISION NOT NULL,
            raw_xp DOUBLE PRECISION NOT NULL,
            xp_awarded BIGINT NOT NULL,
            idempotency_key VARCHAR(128) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_burn_ledger_address_season
        ON burn_ledger(address, season_id, created_at DESC)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS airdrop_snapshots (
            season_id INTEGER NOT NULL REFERENCES seasons(id),
            address VARCHAR(64) NOT NULL,
            xp_earned BIGINT NOT NULL,
            airdrop_weight DOUBLE PRECISION NOT NULL,
            snapshot_at TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (season_id, address)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS airdrop_snapshots CASCADE")
    op.execute("DROP TABLE IF EXISTS burn_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS user_lifetime_state CASCADE")
    op.execute("DROP TABLE IF EXISTS user_season_state CASCADE")
    op.execute("DROP TABLE IF EXISTS seasons CASCADE")
    op.execute("DROP TABLE IF EXISTS rate_limit_windows CASCADE")
    op.execute("DROP TABLE IF EXISTS account_multipliers CASCADE")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE")
