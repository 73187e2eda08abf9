"""Security training tables.

Creates users, user_xp, xp_ledger, task_progress, user_achievements,
missions and permission_decisions. Catalog, achievement and level
definitions are static in code and have no tables.

Revision ID: 001_security_training_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_security_training_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) NOT NULL,
            current_day INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_login_at TIMESTAMPTZ
        )
    """)

    # --- XP summary (level is derived, never stored) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_xp (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_xp INTEGER NOT NULL DEFAULT 0,
            tasks_completed INTEGER NOT NULL DEFAULT 0,
            achievements_unlocked INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ
        )
    """)

    # --- XP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_xp_ledger_user
        ON xp_ledger(user_id, created_at DESC)
    """)

    # --- Task progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS task_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            task_id VARCHAR(64) NOT NULL,
            status VARCHAR(16) NOT NULL,
            started_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            verified_at TIMESTAMPTZ,
            failed_at TIMESTAMPTZ,
            notes TEXT NOT NULL DEFAULT '',
            xp_earned INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ,
            CONSTRAINT uq_task_progress_user_task UNIQUE(user_id, task_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_task_progress_status
        ON task_progress(user_id, status)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id VARCHAR(64) NOT NULL,
            xp_awarded INTEGER NOT NULL DEFAULT 0,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievement UNIQUE(user_id, achievement_id)
        )
    """)

    # --- Missions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            mission_id VARCHAR(128) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            xp_reward INTEGER NOT NULL DEFAULT 0,
            passed BOOLEAN NOT NULL DEFAULT false,
            is_completed BOOLEAN NOT NULL DEFAULT false,
            xp_awarded INTEGER NOT NULL DEFAULT 0,
            fix_instructions TEXT NOT NULL DEFAULT '',
            completed_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ,
            CONSTRAINT uq_mission_user_mission UNIQUE(user_id, mission_id)
        )
    """)

    # --- Permission decisions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS permission_decisions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT REFERENCES users(id) ON DELETE SET NULL,
            bundle_identifier VARCHAR(256) NOT NULL,
            app_name VARCHAR(256) NOT NULL,
            app_version VARCHAR(64),
            decision VARCHAR(16) NOT NULL,
            permissions JSON NOT NULL DEFAULT '[]',
            highest_risk VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_permission_decisions_bundle
        ON permission_decisions(bundle_identifier, created_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS permission_decisions CASCADE")
    op.execute("DROP TABLE IF EXISTS missions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS task_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS user_xp CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
