"""Initial SnapQuest schema.

Creates profiles, challenges, hunts, events, photos, likes, the XP ledger,
the badge catalog and quest progress tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            username VARCHAR(64),
            display_name VARCHAR(64),
            avatar_url TEXT,
            xp INTEGER NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT profiles_xp_non_negative_check CHECK (xp >= 0),
            CONSTRAINT profiles_level_positive_check CHECK (level >= 1),
            CONSTRAINT profiles_streak_non_negative_check CHECK (streak >= 0),
            CONSTRAINT profiles_longest_streak_covers_streak_check CHECK (longest_streak >= streak)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_profiles_xp ON profiles(xp)")

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(200) NOT NULL,
            description TEXT,
            category VARCHAR(32) NOT NULL DEFAULT 'general',
            difficulty VARCHAR(16) NOT NULL DEFAULT 'medium',
            xp_reward INTEGER NOT NULL DEFAULT 50,
            day_number INTEGER,
            is_daily BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT challenges_xp_reward_positive_check CHECK (xp_reward > 0),
            CONSTRAINT challenges_difficulty_valid_check CHECK (difficulty IN ('easy', 'medium', 'hard'))
        )
    """)

    # --- Hunts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS hunts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(200) NOT NULL,
            description TEXT,
            cover_image TEXT,
            theme VARCHAR(32) NOT NULL DEFAULT 'general',
            difficulty VARCHAR(16) NOT NULL DEFAULT 'medium',
            duration VARCHAR(32) NOT NULL DEFAULT 'day',
            is_active BOOLEAN NOT NULL DEFAULT true,
            starts_at TIMESTAMPTZ,
            ends_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS hunt_tasks (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            hunt_id UUID NOT NULL REFERENCES hunts(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            order_num INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 20,
            hint TEXT,
            CONSTRAINT hunt_tasks_xp_reward_positive_check CHECK (xp_reward > 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_hunt_tasks_hunt ON hunt_tasks(hunt_id, order_num)")

    # --- Events ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(200) NOT NULL,
            description TEXT,
            access_code VARCHAR(6) UNIQUE NOT NULL,
            creator_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            event_type VARCHAR(32) NOT NULL DEFAULT 'party',
            status VARCHAR(16) NOT NULL DEFAULT 'active',
            start_date TIMESTAMPTZ,
            end_date TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS event_challenges (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_id UUID NOT NULL REFERENCES events(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT,
            order_num INTEGER NOT NULL DEFAULT 0,
            xp_reward INTEGER NOT NULL DEFAULT 30,
            CONSTRAINT event_challenges_xp_reward_positive_check CHECK (xp_reward > 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_event_challenges_event ON event_challenges(event_id, order_num)")

    # --- Photos & likes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            image_url TEXT NOT NULL,
            challenge_id UUID REFERENCES challenges(id) ON DELETE SET NULL,
            event_challenge_id UUID REFERENCES event_challenges(id) ON DELETE SET NULL,
            hunt_task_id UUID REFERENCES hunt_tasks(id) ON DELETE SET NULL,
            filter_applied VARCHAR(32),
            xp_earned INTEGER NOT NULL DEFAULT 0,
            likes_count INTEGER NOT NULL DEFAULT 0,
            verification_status VARCHAR(32) NOT NULL,
            verification_confidence DOUBLE PRECISION NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT photos_single_target_check CHECK (
                (CASE WHEN challenge_id IS NULL THEN 0 ELSE 1 END)
                + (CASE WHEN event_challenge_id IS NULL THEN 0 ELSE 1 END)
                + (CASE WHEN hunt_task_id IS NULL THEN 0 ELSE 1 END) <= 1
            ),
            CONSTRAINT photos_likes_non_negative_check CHECK (likes_count >= 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_photos_user_created ON photos(user_id, created_at)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS photo_likes (
            id SERIAL PRIMARY KEY,
            photo_id UUID NOT NULL REFERENCES photos(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(photo_id, user_id)
        )
    """)

    # --- XP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT xp_ledger_amount_positive_check CHECK (amount > 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_xp_ledger_user_created ON xp_ledger(user_id, created_at)")

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_definitions (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL DEFAULT 'general',
            requirement_type VARCHAR(32) NOT NULL,
            requirement_value INTEGER NOT NULL DEFAULT 1,
            icon VARCHAR(32) NOT NULL DEFAULT 'award',
            color VARCHAR(32) NOT NULL DEFAULT 'primary',
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badge_definitions(id),
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(user_id, badge_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_user_badges_user ON user_badges(user_id)")

    # --- Quest progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_progress (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            quest_kind VARCHAR(16) NOT NULL,
            quest_id UUID NOT NULL,
            total_xp_earned INTEGER NOT NULL DEFAULT 0,
            started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ,
            UNIQUE(user_id, quest_kind, quest_id),
            CONSTRAINT quest_progress_quest_kind_valid_check CHECK (quest_kind IN ('hunt', 'event'))
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quest_task_completions (
            id SERIAL PRIMARY KEY,
            progress_id INTEGER NOT NULL REFERENCES quest_progress(id) ON DELETE CASCADE,
            task_id UUID NOT NULL,
            photo_id UUID REFERENCES photos(id) ON DELETE SET NULL,
            xp_awarded INTEGER NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(progress_id, task_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS quest_task_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS quest_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_definitions CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS photo_likes CASCADE")
    op.execute("DROP TABLE IF EXISTS photos CASCADE")
    op.execute("DROP TABLE IF EXISTS event_challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS events CASCADE")
    op.execute("DROP TABLE IF EXISTS hunt_tasks CASCADE")
    op.execute("DROP TABLE IF EXISTS hunts CASCADE")
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
