"""SQLite repository adapter for local storage.

Implements RepositoryProtocol with SQLite backend. Chat ids are snowflakes
below 2**63 and fit SQLite's 64-bit INTEGER.
"""

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Final

import pytz

from pomo_counter.config.logging_config import get_logger
from pomo_counter.domain.exceptions import RepositoryError
from pomo_counter.domain.models import (
    Challenge,
    Emoji,
    EmojiCategory,
    MessageLog,
    PointsBreakdown,
    UserGoal,
    UserPointsAggregate,
    Week,
)

logger = get_logger(__name__)

DELETE_CHUNK_SIZE: Final[int] = 500


def _utc_now_iso() -> str:
    return datetime.now(tz=pytz.UTC).isoformat()


class SQLiteRepository:
    """SQLite-based repository for single-process deployments and tests."""

    def __init__(self, db_path: str) -> None:
        """Initialize repository and ensure schema.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure data directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._create_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with foreign keys enforced.

        Returns:
            SQLite connection
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Run statements in one transaction, wrapping driver errors.

        Args:
            action: Short description used in the RepositoryError message

        Raises:
            RepositoryError: On storage errors (the transaction is rolled back)
        """
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RepositoryError(f"Failed to {action}: {exc}") from exc
        finally:
            conn.close()

    def _create_schema(self) -> None:
        """Create database schema if not exists."""
        logger.info("sqlite_schema_creation_started", db_path=str(self.db_path))
        with self._transaction("create schema") as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS challenges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    server_id INTEGER NOT NULL,
                    quarter_number INTEGER NOT NULL,
                    theme TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    week_count INTEGER NOT NULL,
                    is_current INTEGER NOT NULL DEFAULT 0,
                    is_started INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1
                );

                CREATE TABLE IF NOT EXISTS weeks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    challenge_id INTEGER NOT NULL
                        REFERENCES challenges(id) ON DELETE CASCADE,
                    week_number INTEGER NOT NULL,
                    thread_id INTEGER NOT NULL DEFAULT 0,
                    goal_thread_id INTEGER,
                    leaderboard_posted INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (challenge_id, week_number)
                );

                CREATE INDEX IF NOT EXISTS idx_weeks_thread_id ON weeks(thread_id);
                CREATE INDEX IF NOT EXISTS idx_weeks_goal_thread_id
                    ON weeks(goal_thread_id);

                CREATE TABLE IF NOT EXISTS emojis (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    server_id INTEGER NOT NULL,
                    challenge_id INTEGER
                        REFERENCES challenges(id) ON DELETE CASCADE,
                    emoji_code TEXT NOT NULL,
                    point_value INTEGER NOT NULL
                        CHECK (point_value BETWEEN 1 AND 999),
                    category TEXT NOT NULL
                        CHECK (category IN ('pomodoro', 'bonus', 'goal', 'reward')),
                    is_active INTEGER NOT NULL DEFAULT 1
                );

                CREATE INDEX IF NOT EXISTS idx_emojis_scope
                    ON emojis(server_id, challenge_id, is_active);

                CREATE TABLE IF NOT EXISTS message_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id INTEGER NOT NULL UNIQUE,
                    user_id INTEGER NOT NULL,
                    week_id INTEGER NOT NULL REFERENCES weeks(id) ON DELETE CASCADE,
                    pomodoro_points INTEGER NOT NULL DEFAULT 0,
                    bonus_points INTEGER NOT NULL DEFAULT 0,
                    goal_points INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_message_logs_week_user
                    ON message_logs(week_id, user_id);

                CREATE TABLE IF NOT EXISTS user_goals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    week_id INTEGER NOT NULL REFERENCES weeks(id) ON DELETE CASCADE,
                    goal_points INTEGER NOT NULL DEFAULT 0,
                    actual_pomodoro_points INTEGER NOT NULL DEFAULT 0,
                    actual_bonus_points INTEGER NOT NULL DEFAULT 0,
                    is_achieved INTEGER NOT NULL DEFAULT 0,
                    reward_emoji TEXT,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, week_id)
                );
                """
            )
        logger.info("sqlite_schema_creation_completed", db_path=str(self.db_path))

    # --- row mapping ---

    @staticmethod
    def _row_to_challenge(row: sqlite3.Row) -> Challenge:
        return Challenge(**dict(row))

    @staticmethod
    def _row_to_week(row: sqlite3.Row) -> Week:
        return Week(**dict(row))

    @staticmethod
    def _row_to_emoji(row: sqlite3.Row) -> Emoji:
        return Emoji(**dict(row))

    @staticmethod
    def _row_to_message_log(row: sqlite3.Row) -> MessageLog:
        data: dict[str, Any] = dict(row)
        return MessageLog(
            message_id=data["message_id"],
            user_id=data["user_id"],
            week_id=data["week_id"],
            pomodoro_points=data["pomodoro_points"],
            bonus_points=data["bonus_points"],
            goal_points=data["goal_points"],
        )

    @staticmethod
    def _row_to_user_goal(row: sqlite3.Row) -> UserGoal:
        data: dict[str, Any] = dict(row)
        data.pop("id", None)
        data.pop("updated_at", None)
        return UserGoal(**data)

    # --- challenges and weeks ---

    def add_challenge(self, challenge: Challenge) -> Challenge:
        """Insert a challenge and return it with its id set."""
        with self._transaction("add challenge") as conn:
            cursor = conn.execute(
                """
                INSERT INTO challenges (
                    server_id, quarter_number, theme, start_date, end_date,
                    week_count, is_current, is_started, is_active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    challenge.server_id,
                    challenge.quarter_number,
                    challenge.theme,
                    challenge.start_date.isoformat(),
                    challenge.end_date.isoformat(),
                    challenge.week_count,
                    int(challenge.is_current),
                    int(challenge.is_started),
                    int(challenge.is_active),
                ),
            )
            challenge_id = cursor.lastrowid
        logger.info("challenge_added", challenge_id=challenge_id)
        return challenge.model_copy(update={"id": challenge_id})

    def get_challenge(self, challenge_id: int) -> Challenge | None:
        """Get a challenge by id."""
        with self._transaction("get challenge") as conn:
            row = conn.execute(
                "SELECT * FROM challenges WHERE id = ?", (challenge_id,)
            ).fetchone()
        return self._row_to_challenge(row) if row else None

    def set_challenge_active(self, challenge_id: int, is_active: bool) -> bool:
        """Toggle message processing for a challenge."""
        with self._transaction("update challenge") as conn:
            cursor = conn.execute(
                "UPDATE challenges SET is_active = ? WHERE id = ?",
                (int(is_active), challenge_id),
            )
        return cursor.rowcount > 0

    def delete_challenge(self, challenge_id: int) -> bool:
        """Delete a challenge; weeks, ledger rows, goals and scoped emoji cascade."""
        with self._transaction("delete challenge") as conn:
            cursor = conn.execute("DELETE FROM challenges WHERE id = ?", (challenge_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("challenge_deleted", challenge_id=challenge_id)
        return deleted

    def add_week(self, week: Week) -> Week:
        """Insert a week and return it with its id set."""
        with self._transaction("add week") as conn:
            cursor = conn.execute(
                """
                INSERT INTO weeks (
                    challenge_id, week_number, thread_id, goal_thread_id,
                    leaderboard_posted
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    week.challenge_id,
                    week.week_number,
                    week.thread_id,
                    week.goal_thread_id,
                    int(week.leaderboard_posted),
                ),
            )
            week_id = cursor.lastrowid
        return week.model_copy(update={"id": week_id})

    def get_week(self, week_id: int) -> Week | None:
        """Get a week by id."""
        with self._transaction("get week") as conn:
            row = conn.execute("SELECT * FROM weeks WHERE id = ?", (week_id,)).fetchone()
        return self._row_to_week(row) if row else None

    def get_challenge_weeks(self, challenge_id: int) -> list[Week]:
        """Get all weeks of a challenge ordered by week number."""
        with self._transaction("get challenge weeks") as conn:
            rows = conn.execute(
                "SELECT * FROM weeks WHERE challenge_id = ? ORDER BY week_number",
                (challenge_id,),
            ).fetchall()
        return [self._row_to_week(row) for row in rows]

    def find_active_week_by_channel(self, channel_id: int | None) -> Week | None:
        """Find the week bound to a thread under an active challenge."""
        if not channel_id:
            return None

        with self._transaction("resolve active week") as conn:
            row = conn.execute(
                """
                SELECT w.* FROM weeks w
                JOIN challenges c ON c.id = w.challenge_id
                WHERE c.is_active = 1
                  AND (w.thread_id = ? OR w.goal_thread_id = ?)
                ORDER BY w.id DESC
                LIMIT 1
                """,
                (channel_id, channel_id),
            ).fetchone()
        return self._row_to_week(row) if row else None

    def set_week_threads(
        self,
        week_id: int,
        thread_id: int | None = None,
        goal_thread_id: int | None = None,
    ) -> bool:
        """Bind thread ids to a week. None leaves a field unchanged."""
        with self._transaction("set week threads") as conn:
            cursor = conn.execute(
                """
                UPDATE weeks SET
                    thread_id = COALESCE(?, thread_id),
                    goal_thread_id = COALESCE(?, goal_thread_id)
                WHERE id = ?
                """,
                (thread_id, goal_thread_id, week_id),
            )
        return cursor.rowcount > 0

    def mark_leaderboard_posted(self, week_id: int) -> bool:
        """Set the leaderboard-posted flag of a week."""
        with self._transaction("mark leaderboard posted") as conn:
            cursor = conn.execute(
                "UPDATE weeks SET leaderboard_posted = 1 WHERE id = ?", (week_id,)
            )
        return cursor.rowcount > 0

    # --- emoji catalog ---

    def add_emoji(self, emoji: Emoji) -> Emoji:
        """Insert a catalog row and return it with its id set."""
        with self._transaction("add emoji") as conn:
            cursor = conn.execute(
                """
                INSERT INTO emojis (
                    server_id, challenge_id, emoji_code, point_value, category,
                    is_active
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    emoji.server_id,
                    emoji.challenge_id,
                    emoji.emoji_code,
                    emoji.point_value,
                    emoji.category.value,
                    int(emoji.is_active),
                ),
            )
            emoji_id = cursor.lastrowid
        return emoji.model_copy(update={"id": emoji_id})

    def set_emoji_active(self, emoji_id: int, is_active: bool) -> bool:
        """Soft-delete or restore a catalog row."""
        with self._transaction("update emoji") as conn:
            cursor = conn.execute(
                "UPDATE emojis SET is_active = ? WHERE id = ?",
                (int(is_active), emoji_id),
            )
        return cursor.rowcount > 0

    def get_active_emojis(
        self,
        server_id: int,
        challenge_id: int | None = None,
        category: EmojiCategory | None = None,
    ) -> list[Emoji]:
        """Get active emoji rows visible at a scope, challenge-scoped rows first."""
        query = "SELECT * FROM emojis WHERE server_id = ? AND is_active = 1"
        params: list[Any] = [server_id]

        if challenge_id is None:
            query += " AND challenge_id IS NULL"
        else:
            query += " AND (challenge_id IS NULL OR challenge_id = ?)"
            params.append(challenge_id)

        if category is not None:
            query += " AND category = ?"
            params.append(category.value)

        query += " ORDER BY challenge_id IS NULL, id"

        with self._transaction("get active emojis") as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_emoji(row) for row in rows]

    # --- message ledger ---

    def get_message_log(self, message_id: int) -> MessageLog | None:
        """Get the ledger row for a message id."""
        with self._transaction("get message log") as conn:
            row = conn.execute(
                "SELECT * FROM message_logs WHERE message_id = ?", (message_id,)
            ).fetchone()
        return self._row_to_message_log(row) if row else None

    def insert_message_log(self, log: MessageLog) -> bool:
        """Insert a ledger row unless one exists for the message id."""
        now = _utc_now_iso()
        with self._transaction("insert message log") as conn:
            cursor = conn.execute(
                """
                INSERT INTO message_logs (
                    message_id, user_id, week_id, pomodoro_points, bonus_points,
                    goal_points, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(message_id) DO NOTHING
                """,
                (
                    log.message_id,
                    log.user_id,
                    log.week_id,
                    log.pomodoro_points,
                    log.bonus_points,
                    log.goal_points,
                    now,
                    now,
                ),
            )
        return cursor.rowcount == 1

    def upsert_message_log(self, log: MessageLog) -> MessageLog:
        """Insert a ledger row or overwrite only the points of the existing one."""
        now = _utc_now_iso()
        with self._transaction("upsert message log") as conn:
            conn.execute(
                """
                INSERT INTO message_logs (
                    message_id, user_id, week_id, pomodoro_points, bonus_points,
                    goal_points, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(message_id) DO UPDATE SET
                    pomodoro_points = excluded.pomodoro_points,
                    bonus_points = excluded.bonus_points,
                    goal_points = excluded.goal_points,
                    updated_at = excluded.updated_at
                """,
                (
                    log.message_id,
                    log.user_id,
                    log.week_id,
                    log.pomodoro_points,
                    log.bonus_points,
                    log.goal_points,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                "SELECT * FROM message_logs WHERE message_id = ?", (log.message_id,)
            ).fetchone()
        return self._row_to_message_log(row)

    def update_message_points(self, message_id: int, points: PointsBreakdown) -> bool:
        """Overwrite the point columns of an existing row."""
        with self._transaction("update message points") as conn:
            cursor = conn.execute(
                """
                UPDATE message_logs SET
                    pomodoro_points = ?,
                    bonus_points = ?,
                    goal_points = ?,
                    updated_at = ?
                WHERE message_id = ?
                """,
                (
                    points.pomodoro_points,
                    points.bonus_points,
                    points.goal_points,
                    _utc_now_iso(),
                    message_id,
                ),
            )
        return cursor.rowcount > 0

    def delete_message_log(self, message_id: int) -> bool:
        """Delete the ledger row for a message id."""
        with self._transaction("delete message log") as conn:
            cursor = conn.execute(
                "DELETE FROM message_logs WHERE message_id = ?", (message_id,)
            )
        return cursor.rowcount > 0

    def delete_week_message_logs_except(
        self, week_id: int, keep_message_ids: Iterable[int]
    ) -> int:
        """Delete rows of a week whose message id is not in keep_message_ids."""
        keep = set(keep_message_ids)
        with self._transaction("prune week message logs") as conn:
            rows = conn.execute(
                "SELECT message_id FROM message_logs WHERE week_id = ?", (week_id,)
            ).fetchall()
            obsolete = [
                row["message_id"] for row in rows if row["message_id"] not in keep
            ]
            for start in range(0, len(obsolete), DELETE_CHUNK_SIZE):
                chunk = obsolete[start : start + DELETE_CHUNK_SIZE]
                conn.executemany(
                    "DELETE FROM message_logs WHERE message_id = ?",
                    [(message_id,) for message_id in chunk],
                )
        return len(obsolete)

    def count_week_message_logs(self, week_id: int) -> int:
        """Count ledger rows booked under a week."""
        with self._transaction("count message logs") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM message_logs WHERE week_id = ?",
                (week_id,),
            ).fetchone()
        return int(row["total"])

    def aggregate_user_points(self, week_ids: Iterable[int]) -> list[UserPointsAggregate]:
        """Sum ledger rows per user over a set of weeks, ordered by user id."""
        ids = sorted(set(week_ids))
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        with self._transaction("aggregate user points") as conn:
            rows = conn.execute(
                f"""
                SELECT
                    user_id,
                    SUM(pomodoro_points) AS pomodoro_points,
                    SUM(bonus_points) AS bonus_points,
                    SUM(goal_points) AS goal_points,
                    COUNT(*) AS message_count
                FROM message_logs
                WHERE week_id IN ({placeholders})
                GROUP BY user_id
                ORDER BY user_id
                """,
                ids,
            ).fetchall()
        return [UserPointsAggregate(**dict(row)) for row in rows]

    # --- user goals ---

    def get_user_goal(self, user_id: int, week_id: int) -> UserGoal | None:
        """Get a user's goal row for a week."""
        with self._transaction("get user goal") as conn:
            row = conn.execute(
                "SELECT * FROM user_goals WHERE user_id = ? AND week_id = ?",
                (user_id, week_id),
            ).fetchone()
        return self._row_to_user_goal(row) if row else None

    def get_week_user_goals(self, week_id: int) -> list[UserGoal]:
        """Get all goal rows of a week ordered by user id."""
        with self._transaction("get week user goals") as conn:
            rows = conn.execute(
                "SELECT * FROM user_goals WHERE week_id = ? ORDER BY user_id",
                (week_id,),
            ).fetchall()
        return [self._row_to_user_goal(row) for row in rows]

    def save_user_goals(self, goals: list[UserGoal]) -> int:
        """Upsert goal rows in one transaction."""
        if not goals:
            return 0

        now = _utc_now_iso()
        with self._transaction("save user goals") as conn:
            conn.executemany(
                """
                INSERT INTO user_goals (
                    user_id, week_id, goal_points, actual_pomodoro_points,
                    actual_bonus_points, is_achieved, reward_emoji, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, week_id) DO UPDATE SET
                    goal_points = excluded.goal_points,
                    actual_pomodoro_points = excluded.actual_pomodoro_points,
                    actual_bonus_points = excluded.actual_bonus_points,
                    is_achieved = excluded.is_achieved,
                    reward_emoji = excluded.reward_emoji,
                    updated_at = excluded.updated_at
                """,
                [
                    (
                        goal.user_id,
                        goal.week_id,
                        goal.goal_points,
                        goal.actual_pomodoro_points,
                        goal.actual_bonus_points,
                        int(goal.is_achieved),
                        goal.reward_emoji,
                        now,
                    )
                    for goal in goals
                ],
            )
        logger.debug("user_goals_saved", count=len(goals))
        return len(goals)

    def close(self) -> None:
        """Connections are opened per call; nothing to release."""
