"""Initial PostgreSQL schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create challenge, week, catalog, ledger and goal tables."""

    # 1. challenges
    op.create_table(
        "challenges",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("server_id", sa.BigInteger(), nullable=False),
        sa.Column("quarter_number", sa.SmallInteger(), nullable=False),
        sa.Column("theme", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("week_count", sa.Integer(), nullable=False),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_started", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.CheckConstraint(
            "quarter_number BETWEEN 1 AND 4", name="challenges_quarter_check"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_challenges_server", "challenges", ["server_id"])

    # 2. weeks (one per challenge cycle, 0 = goal collection)
    op.create_table(
        "weeks",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("thread_id", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("goal_thread_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "leaderboard_posted", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.ForeignKeyConstraint(
            ["challenge_id"], ["challenges.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("challenge_id", "week_number", name="weeks_number_unique"),
    )
    op.create_index("idx_weeks_thread_id", "weeks", ["thread_id"])
    op.create_index("idx_weeks_goal_thread_id", "weeks", ["goal_thread_id"])

    # 3. emojis (catalog; challenge_id NULL = server-wide)
    op.create_table(
        "emojis",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("server_id", sa.BigInteger(), nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), nullable=True),
        sa.Column("emoji_code", sa.String(length=255), nullable=False),
        sa.Column("point_value", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.CheckConstraint(
            "point_value BETWEEN 1 AND 999", name="emojis_point_value_check"
        ),
        sa.CheckConstraint(
            "category IN ('pomodoro', 'bonus', 'goal', 'reward')",
            name="emojis_category_check",
        ),
        sa.ForeignKeyConstraint(
            ["challenge_id"], ["challenges.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_emojis_scope", "emojis", ["server_id", "challenge_id", "is_active"]
    )

    # 4. message_logs (one row per chat message)
    op.create_table(
        "message_logs",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("message_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("week_id", sa.BigInteger(), nullable=False),
        sa.Column("pomodoro_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bonus_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goal_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["week_id"], ["weeks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", name="message_logs_message_id_unique"),
    )
    op.create_index(
        "idx_message_logs_week_user", "message_logs", ["week_id", "user_id"]
    )

    # 5. user_goals (one row per user and week)
    op.create_table(
        "user_goals",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("week_id", sa.BigInteger(), nullable=False),
        sa.Column("goal_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "actual_pomodoro_points", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "actual_bonus_points", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("is_achieved", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("reward_emoji", sa.String(length=255), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["week_id"], ["weeks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "week_id", name="user_goals_user_week_unique"),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("user_goals")
    op.drop_index("idx_message_logs_week_user", table_name="message_logs")
    op.drop_table("message_logs")
    op.drop_index("idx_emojis_scope", table_name="emojis")
    op.drop_table("emojis")
    op.drop_index("idx_weeks_goal_thread_id", table_name="weeks")
    op.drop_index("idx_weeks_thread_id", table_name="weeks")
    op.drop_table("weeks")
    op.drop_index("idx_challenges_server", table_name="challenges")
    op.drop_table("challenges")
