"""Baseline: users, works, tags, tallies, goals, leaderboards.

Users are owned by the identity layer; the table is created here so the
ledger can reference it in development databases.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            display_name VARCHAR(64) NOT NULL DEFAULT '',
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Works ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS works (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            phase VARCHAR(16) NOT NULL DEFAULT 'planning',
            starting_balance JSON NOT NULL DEFAULT '{}',
            starred BOOLEAN NOT NULL DEFAULT false,
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_works_owner_id ON works(owner_id)")

    # --- Tags ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tags (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name VARCHAR(128) NOT NULL,
            color VARCHAR(16) NOT NULL DEFAULT 'default',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT tags_owner_name_key UNIQUE (owner_id, name)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_tags_owner_id ON tags(owner_id)")

    # --- Tallies ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS tallies (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            work_id BIGINT REFERENCES works(id) ON DELETE SET NULL,
            date DATE NOT NULL,
            measure VARCHAR(16) NOT NULL,
            count INTEGER NOT NULL,
            note TEXT NOT NULL DEFAULT '',
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_tallies_owner_id ON tallies(owner_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_tallies_work_id ON tallies(work_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_tallies_date ON tallies(date)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS tally_tags (
            tally_id BIGINT NOT NULL REFERENCES tallies(id) ON DELETE CASCADE,
            tag_id BIGINT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (tally_id, tag_id)
        )
    """)

    # --- Goals ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS goals (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            type VARCHAR(16) NOT NULL,
            parameters JSON NOT NULL,
            start_date DATE,
            end_date DATE,
            starred BOOLEAN NOT NULL DEFAULT false,
            display_on_profile BOOLEAN NOT NULL DEFAULT false,
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_goals_owner_id ON goals(owner_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS goal_works (
            goal_id BIGINT NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
            work_id BIGINT NOT NULL REFERENCES works(id) ON DELETE CASCADE,
            PRIMARY KEY (goal_id, work_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS goal_tags (
            goal_id BIGINT NOT NULL REFERENCES goals(id) ON DELETE CASCADE,
            tag_id BIGINT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (goal_id, tag_id)
        )
    """)

    # --- Leaderboards ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboards (
            id BIGSERIAL PRIMARY KEY,
            owner_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            measures JSON NOT NULL DEFAULT '[]',
            start_date DATE,
            end_date DATE,
            goal JSON NOT NULL DEFAULT '{}',
            individual_goal_mode BOOLEAN NOT NULL DEFAULT false,
            fundraiser_mode BOOLEAN NOT NULL DEFAULT false,
            enable_teams BOOLEAN NOT NULL DEFAULT false,
            is_joinable BOOLEAN NOT NULL DEFAULT false,
            is_public BOOLEAN NOT NULL DEFAULT false,
            join_code VARCHAR(32) UNIQUE NOT NULL,
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_teams (
            id BIGSERIAL PRIMARY KEY,
            leaderboard_id BIGINT NOT NULL REFERENCES leaderboards(id) ON DELETE CASCADE,
            name VARCHAR(128) NOT NULL,
            color VARCHAR(32) NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_leaderboard_teams_leaderboard_id ON leaderboard_teams(leaderboard_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_members (
            id BIGSERIAL PRIMARY KEY,
            leaderboard_id BIGINT NOT NULL REFERENCES leaderboards(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            is_owner BOOLEAN NOT NULL DEFAULT false,
            is_participant BOOLEAN NOT NULL DEFAULT false,
            team_id BIGINT REFERENCES leaderboard_teams(id) ON DELETE SET NULL,
            display_name VARCHAR(64) NOT NULL DEFAULT '',
            color VARCHAR(32) NOT NULL DEFAULT '',
            goal JSON,
            starred BOOLEAN NOT NULL DEFAULT false,
            state VARCHAR(16) NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT leaderboard_members_board_user_key UNIQUE (leaderboard_id, user_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_leaderboard_members_leaderboard_id ON leaderboard_members(leaderboard_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_leaderboard_members_user_id ON leaderboard_members(user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_member_works (
            member_id BIGINT NOT NULL REFERENCES leaderboard_members(id) ON DELETE CASCADE,
            work_id BIGINT NOT NULL REFERENCES works(id) ON DELETE CASCADE,
            PRIMARY KEY (member_id, work_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_member_tags (
            member_id BIGINT NOT NULL REFERENCES leaderboard_members(id) ON DELETE CASCADE,
            tag_id BIGINT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (member_id, tag_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS leaderboard_member_tags CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_member_works CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_members CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_teams CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboards CASCADE")
    op.execute("DROP TABLE IF EXISTS goal_tags CASCADE")
    op.execute("DROP TABLE IF EXISTS goal_works CASCADE")
    op.execute("DROP TABLE IF EXISTS goals CASCADE")
    op.execute("DROP TABLE IF EXISTS tally_tags CASCADE")
    op.execute("DROP TABLE IF EXISTS tallies CASCADE")
    op.execute("DROP TABLE IF EXISTS tags CASCADE")
    op.execute("DROP TABLE IF EXISTS works CASCADE")
    # users belongs to the identity layer in production; dropped only in dev resets
    op.execute("DROP TABLE IF EXISTS users CASCADE")
