"""Rewards ledger tables.

Creates users, earnings, ledger_totals, referrals, daily_checkins, devices
and global_stats.

Revision ID: 001_rewards_ledger
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_rewards_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE,
            referral_code VARCHAR(16) UNIQUE NOT NULL,
            unclaimed_reward NUMERIC(20, 8) NOT NULL DEFAULT 0,
            task_completed INTEGER NOT NULL DEFAULT 0,
            subscription_tier VARCHAR(16) NOT NULL DEFAULT 'free',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_login_at TIMESTAMPTZ,
            CONSTRAINT users_unclaimed_reward_non_negative CHECK (unclaimed_reward >= 0),
            CONSTRAINT users_task_completed_non_negative CHECK (task_completed >= 0)
        )
    """)

    # --- Earning Record Log ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS earnings (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount NUMERIC(20, 8) NOT NULL,
            source VARCHAR(32) NOT NULL,
            is_claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            description VARCHAR(256),
            metadata JSONB NOT NULL DEFAULT '{}',
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT earnings_amount_positive CHECK (amount > 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_earnings_user_unclaimed
        ON earnings(user_id, is_claimed)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_earnings_user_created
        ON earnings(user_id, created_at)
    """)

    # --- Running-Total Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS ledger_totals (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_amount NUMERIC(20, 8) NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ledger_totals_total_non_negative CHECK (total_amount >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_ledger_totals_rank
        ON ledger_totals(total_amount)
    """)

    # --- Referral Graph ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS referrals (
            id BIGSERIAL PRIMARY KEY,
            referrer_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            referred_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            referral_code VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            reward_amount NUMERIC(20, 8) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT referrals_referred_id_key UNIQUE (referred_id),
            CONSTRAINT referrals_no_self_referral CHECK (referrer_id <> referred_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_referrals_referrer
        ON referrals(referrer_id)
    """)

    # --- Daily Check-ins ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_checkins (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            checkin_date DATE NOT NULL,
            streak_count INTEGER NOT NULL,
            day_number INTEGER NOT NULL,
            reward_amount NUMERIC(20, 8) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT daily_checkins_user_id_date_key UNIQUE (user_id, checkin_date),
            CONSTRAINT daily_checkins_day_number_range CHECK (day_number BETWEEN 1 AND 7)
        )
    """)

    # --- Devices ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS devices (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            device_name VARCHAR(128) NOT NULL,
            device_type VARCHAR(32) NOT NULL DEFAULT 'desktop',
            gpu_model TEXT,
            status VARCHAR(16) NOT NULL DEFAULT 'offline',
            uptime_seconds INTEGER NOT NULL DEFAULT 0,
            uptime_mode VARCHAR(16) NOT NULL DEFAULT 'countdown',
            last_seen_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ,
            CONSTRAINT devices_uptime_non_negative CHECK (uptime_seconds >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_devices_owner
        ON devices(owner_id)
    """)

    # --- Platform statistics ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS global_stats (
            id VARCHAR(64) PRIMARY KEY,
            total BIGINT NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS global_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS devices CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_checkins CASCADE")
    op.execute("DROP TABLE IF EXISTS referrals CASCADE")
    op.execute("DROP TABLE IF EXISTS ledger_totals CASCADE")
    op.execute("DROP TABLE IF EXISTS earnings CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
