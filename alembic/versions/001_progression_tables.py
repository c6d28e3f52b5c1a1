"""Progression tables.

Creates users, billing mirrors, user_progress, practice_sessions, the login
reward calendar and claim log, badges, gifts and weekly challenge tables.

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users & billing ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE,
            display_name VARCHAR(64),
            stripe_customer_id VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_stripe_customer_id ON users(stripe_customer_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS subscriptions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            tier VARCHAR(16) NOT NULL DEFAULT 'free',
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT subscriptions_tier_check CHECK (tier IN ('free', 'plus', 'pro')),
            CONSTRAINT subscriptions_status_check CHECK (status IN ('active', 'inactive', 'cancelled'))
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS stripe_products (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}',
            active BOOLEAN NOT NULL DEFAULT true
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS stripe_subscriptions (
            id VARCHAR(64) PRIMARY KEY,
            customer_id VARCHAR(64) NOT NULL,
            status VARCHAR(32) NOT NULL,
            product_id VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_stripe_subscriptions_customer_id ON stripe_subscriptions(customer_id)")

    # --- Progress & practice ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_progress (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_xp INTEGER NOT NULL DEFAULT 0,
            total_pp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            current_streak INTEGER NOT NULL DEFAULT 0,
            best_streak INTEGER NOT NULL DEFAULT 0,
            last_check_in TIMESTAMPTZ,
            practice_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_progress_total_xp_check CHECK (total_xp >= 0),
            CONSTRAINT user_progress_total_pp_check CHECK (total_pp >= 0),
            CONSTRAINT user_progress_level_check CHECK (level >= 1),
            CONSTRAINT user_progress_current_streak_check CHECK (current_streak >= 0),
            CONSTRAINT user_progress_best_streak_check CHECK (best_streak >= current_streak),
            CONSTRAINT user_progress_practice_count_check CHECK (practice_count >= 0)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS practice_sessions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            prompt TEXT,
            mode VARCHAR(16) NOT NULL,
            category VARCHAR(64),
            tone VARCHAR(64),
            score INTEGER NOT NULL,
            xp_earned INTEGER NOT NULL DEFAULT 0,
            pp_earned INTEGER NOT NULL DEFAULT 0,
            is_favorite BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT practice_sessions_score_check CHECK (score BETWEEN 0 AND 100)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_practice_sessions_user_created ON practice_sessions(user_id, created_at)"
    )

    # --- Login rewards ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_login_rewards (
            id BIGSERIAL PRIMARY KEY,
            day INTEGER NOT NULL UNIQUE,
            reward_type VARCHAR(8) NOT NULL,
            reward_value INTEGER NOT NULL,
            description VARCHAR(128),
            CONSTRAINT daily_login_rewards_day_check CHECK (day BETWEEN 1 AND 7),
            CONSTRAINT daily_login_rewards_type_check CHECK (reward_type IN ('xp', 'pp'))
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_login_rewards (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            claimed_day INTEGER NOT NULL,
            claimed_at TIMESTAMPTZ NOT NULL,
            claim_date DATE NOT NULL,
            cycle_start_date DATE NOT NULL,
            CONSTRAINT user_login_rewards_user_id_claim_date_key UNIQUE (user_id, claim_date),
            CONSTRAINT user_login_rewards_day_check CHECK (claimed_day BETWEEN 1 AND 7)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_user_login_rewards_user_claimed ON user_login_rewards(user_id, claimed_at)"
    )

    # --- Badges & gifts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id BIGSERIAL PRIMARY KEY,
            slug VARCHAR(64) NOT NULL UNIQUE,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(64) NOT NULL,
            requirement JSONB NOT NULL,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            pp_reward INTEGER NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id BIGINT NOT NULL REFERENCES badges(id),
            earned_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS gifts (
            id BIGSERIAL PRIMARY KEY,
            sender_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            recipient_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            item VARCHAR(64) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_gifts_sender_id ON gifts(sender_id)")

    # --- Weekly challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS weekly_challenges (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(64),
            goal_type VARCHAR(32) NOT NULL,
            goal_value INTEGER NOT NULL,
            goal_threshold INTEGER,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            pp_reward INTEGER NOT NULL DEFAULT 0,
            week_start_date DATE NOT NULL,
            week_end_date DATE NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            CONSTRAINT weekly_challenges_week_goal_key UNIQUE (week_start_date, goal_type)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_weekly_challenges_week_start_date ON weekly_challenges(week_start_date)"
    )

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_weekly_challenge_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            challenge_id BIGINT NOT NULL REFERENCES weekly_challenges(id) ON DELETE CASCADE,
            progress INTEGER NOT NULL DEFAULT 0,
            progress_data JSONB NOT NULL DEFAULT '{}',
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            reward_claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            CONSTRAINT user_weekly_challenge_progress_user_challenge_key UNIQUE (user_id, challenge_id)
        )
    """)


def downgrade() -> None:
    for table in [
        "user_weekly_challenge_progress",
        "weekly_challenges",
        "gifts",
        "user_badges",
        "badges",
        "user_login_rewards",
        "daily_login_rewards",
        "practice_sessions",
        "user_progress",
        "stripe_subscriptions",
        "stripe_products",
        "subscriptions",
        "users",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
