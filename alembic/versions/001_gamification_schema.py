"""Gamification schema.

Creates users, user_stats, xp_ledger, coin_transactions, badge catalog and
user_badges, streak bonuses and grants, quests and user_quests, rewards and
user_rewards, and game_sessions.

Revision ID: 001_gamification_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_gamification_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            username VARCHAR(64) UNIQUE,
            name VARCHAR(128),
            role VARCHAR(16) NOT NULL DEFAULT 'USER',
            is_banned BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            xp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_active_date DATE,
            coins INTEGER NOT NULL DEFAULT 0 CHECK (coins >= 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_xp ON users(xp DESC)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            plans_created INTEGER NOT NULL DEFAULT 0,
            plans_approved INTEGER NOT NULL DEFAULT 0,
            likes_given INTEGER NOT NULL DEFAULT 0,
            likes_received INTEGER NOT NULL DEFAULT 0,
            views_received INTEGER NOT NULL DEFAULT 0,
            comments_given INTEGER NOT NULL DEFAULT 0,
            comments_received INTEGER NOT NULL DEFAULT 0,
            recipes_created INTEGER NOT NULL DEFAULT 0,
            weight_logs INTEGER NOT NULL DEFAULT 0,
            check_ins INTEGER NOT NULL DEFAULT 0,
            follows INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- XP and coin ledgers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_xp_ledger_user_created ON xp_ledger(user_id, created_at DESC)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS coin_transactions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            type VARCHAR(16) NOT NULL,
            reason VARCHAR(64) NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_coin_tx_user_created ON coin_transactions(user_id, created_at DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_coin_tx_type ON coin_transactions(type)")

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_definitions (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(64),
            category VARCHAR(32) NOT NULL,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badge_definitions(id),
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            metadata JSONB NOT NULL DEFAULT '{}',
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)

    # --- Streak milestones ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS streak_bonuses (
            id SERIAL PRIMARY KEY,
            streak_days INTEGER UNIQUE NOT NULL,
            coin_reward INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            badge_slug VARCHAR(64),
            description VARCHAR(256) NOT NULL DEFAULT ''
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS streak_bonus_grants (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            streak_bonus_id INTEGER NOT NULL REFERENCES streak_bonuses(id),
            granted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT streak_bonus_grants_user_bonus_key UNIQUE (user_id, streak_bonus_id)
        )
    """)

    # --- Quests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quests (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            type VARCHAR(16) NOT NULL,
            category VARCHAR(32) NOT NULL DEFAULT 'general',
            target_type VARCHAR(32) NOT NULL,
            target_value INTEGER NOT NULL DEFAULT 1,
            coin_reward INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            priority INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_quests (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            quest_id INTEGER NOT NULL REFERENCES quests(id) ON DELETE CASCADE,
            period_key VARCHAR(16) NOT NULL,
            progress INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            reward_claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ,
            CONSTRAINT user_quests_user_quest_period_key UNIQUE (user_id, quest_id, period_key)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_user_quests_user_expires ON user_quests(user_id, expires_at)")

    # --- Reward shop ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            type VARCHAR(32) NOT NULL,
            category VARCHAR(16) NOT NULL DEFAULT 'DIGITAL',
            price INTEGER NOT NULL CHECK (price >= 0),
            stock INTEGER CHECK (stock IS NULL OR stock >= 0),
            is_active BOOLEAN NOT NULL DEFAULT true,
            digital_data JSONB NOT NULL DEFAULT '{}',
            premium_days INTEGER,
            image_url VARCHAR(256),
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_rewards (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            reward_id INTEGER NOT NULL REFERENCES rewards(id),
            coins_paid INTEGER NOT NULL,
            reward_data JSONB NOT NULL DEFAULT '{}',
            is_used BOOLEAN NOT NULL DEFAULT false,
            used_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            purchased_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_user_rewards_user ON user_rewards(user_id, purchased_at DESC)")

    # --- Mini-games ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS game_sessions (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            game_type VARCHAR(32) NOT NULL,
            score INTEGER NOT NULL DEFAULT 0,
            coins_earned INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ,
            duration_seconds INTEGER,
            game_data JSONB NOT NULL DEFAULT '{}'
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_game_sessions_user_type_started "
        "ON game_sessions(user_id, game_type, started_at)"
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_game_sessions_type_score ON game_sessions(game_type, score DESC)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS game_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS user_quests CASCADE")
    op.execute("DROP TABLE IF EXISTS quests CASCADE")
    op.execute("DROP TABLE IF EXISTS streak_bonus_grants CASCADE")
    op.execute("DROP TABLE IF EXISTS streak_bonuses CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_definitions CASCADE")
    op.execute("DROP TABLE IF EXISTS coin_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS user_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
