"""PostgreSQL repository implementation using psycopg2 with connection pooling.

The schema is owned by alembic migrations (alembic/versions); this adapter
never creates tables.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from threading import Lock
from time import sleep
from typing import TYPE_CHECKING, Any, Final

from psycopg2 import Error as PsycopgError
from psycopg2 import extensions
from psycopg2 import pool as psycopg2_pool
from psycopg2.extras import RealDictCursor, execute_batch

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

if TYPE_CHECKING:
    from pomo_counter.config.settings import Settings

DEFAULT_POOL_MIN_CONNECTIONS: Final[int] = 1
DEFAULT_POOL_MAX_CONNECTIONS: Final[int] = 10
POOL_ACQUIRE_MAX_ATTEMPTS_DEFAULT: Final[int] = 5
POOL_ACQUIRE_BASE_DELAY_SECONDS: Final[float] = 0.1
POOL_ACQUIRE_MAX_DELAY_SECONDS: Final[float] = 2.0

logger = get_logger(__name__)

_MESSAGE_LOG_COLUMNS: Final[str] = (
    "message_id, user_id, week_id, pomodoro_points, bonus_points, goal_points"
)
_USER_GOAL_COLUMNS: Final[str] = (
    "user_id, week_id, goal_points, actual_pomodoro_points, actual_bonus_points, "
    "is_achieved, reward_emoji"
)


class PostgresRepository:
    """PostgreSQL repository backed by a connection pool."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        settings: "Settings | None" = None,
    ):
        """Initialize PostgreSQL repository with pooled connections."""
        self._host = host
        self._port = port
        self._database = database
        self._user = user
        self._password = password

        self._statement_timeout_ms = (
            settings.postgres_statement_timeout_ms if settings else 10_000
        )
        self._connect_timeout_seconds = (
            settings.postgres_connect_timeout_seconds if settings else 10
        )
        self._application_name = (
            settings.postgres_application_name if settings else "pomo_counter"
        )
        self._pool_min_connections = (
            settings.postgres_min_connections
            if settings
            else DEFAULT_POOL_MIN_CONNECTIONS
        )
        self._pool_max_connections = (
            settings.postgres_max_connections
            if settings
            else DEFAULT_POOL_MAX_CONNECTIONS
        )
        self._ssl_mode = settings.postgres_ssl_mode if settings else None

        self._pool_acquire_max_attempts = POOL_ACQUIRE_MAX_ATTEMPTS_DEFAULT
        self._pool_in_use_count = 0
        self._pool_lock = Lock()

        if self._pool_max_connections < self._pool_min_connections:
            raise RepositoryError(
                "postgres_max_connections must be greater than or equal to "
                "postgres_min_connections"
            )

        self._pool = self._create_pool()

    def _create_pool(self) -> psycopg2_pool.ThreadedConnectionPool:
        """Create a PostgreSQL connection pool with validation."""
        options = (
            f"-c statement_timeout={self._statement_timeout_ms} "
            f"-c application_name={self._application_name}"
        )

        conn_kwargs: dict[str, Any] = {
            "host": self._host,
            "port": self._port,
            "database": self._database,
            "user": self._user,
            "password": self._password,
            "connect_timeout": self._connect_timeout_seconds,
            "options": options,
        }
        if self._ssl_mode:
            conn_kwargs["sslmode"] = self._ssl_mode

        try:
            pool = psycopg2_pool.ThreadedConnectionPool(
                self._pool_min_connections,
                self._pool_max_connections,
                **conn_kwargs,
            )
        except PsycopgError as exc:
            raise RepositoryError(
                f"Failed to initialize PostgreSQL pool: {exc}"
            ) from exc

        try:
            conn = pool.getconn()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
            finally:
                pool.putconn(conn)
        except PsycopgError as exc:
            pool.closeall()
            raise RepositoryError(f"PostgreSQL validation query failed: {exc}") from exc

        logger.info(
            "postgres_pool_initialized",
            host=self._host,
            port=self._port,
            database=self._database,
            min_connections=self._pool_min_connections,
            max_connections=self._pool_max_connections,
        )
        return pool

    def _acquire_connection_with_retry(self) -> extensions.connection:
        """Acquire a connection from the pool with exponential backoff."""
        attempt = 0
        delay = POOL_ACQUIRE_BASE_DELAY_SECONDS
        while True:
            attempt += 1
            try:
                conn = self._pool.getconn()
            except psycopg2_pool.PoolError as exc:
                if attempt >= self._pool_acquire_max_attempts:
                    logger.error(
                        "postgres_pool_acquire_failed",
                        attempts=attempt,
                        max_connections=self._pool_max_connections,
                    )
                    raise RepositoryError(
                        "Failed to acquire PostgreSQL connection from pool"
                    ) from exc

                logger.warning(
                    "postgres_pool_exhausted_retry",
                    attempt=attempt,
                    wait_seconds=delay,
                )
                sleep(delay)
                delay = min(delay * 2, POOL_ACQUIRE_MAX_DELAY_SECONDS)
                continue

            with self._pool_lock:
                self._pool_in_use_count += 1
            return conn

    def _release_connection(self, conn: extensions.connection, *, close: bool) -> None:
        """Return a connection to the pool."""
        try:
            self._pool.putconn(conn, close=close)
        except PsycopgError:
            logger.warning(
                "postgres_putconn_failed",
                database=self._database,
                close=close,
                exc_info=True,
            )
        finally:
            with self._pool_lock:
                if self._pool_in_use_count > 0:
                    self._pool_in_use_count -= 1

    def close(self) -> None:
        """Close all connections in the pool."""
        self._pool.closeall()
        with self._pool_lock:
            self._pool_in_use_count = 0
        logger.info("postgres_pool_closed", database=self._database)

    @contextmanager
    def _get_connection(self) -> Iterator[extensions.connection]:
        """Borrow a connection from the pool and ensure cleanup."""
        conn: extensions.connection | None = None
        try:
            conn = self._acquire_connection_with_retry()
            conn.autocommit = False
            yield conn
        except PsycopgError as exc:
            if conn is not None:
                try:
                    conn.rollback()
                except PsycopgError:
                    logger.warning(
                        "postgres_connection_rollback_failed",
                        database=self._database,
                        exc_info=True,
                    )
                finally:
                    self._release_connection(conn, close=True)
                    conn = None
            raise RepositoryError(f"PostgreSQL connection error: {exc}") from exc
        finally:
            if conn is not None:
                try:
                    status = conn.get_transaction_status()
                    if status in (
                        extensions.TRANSACTION_STATUS_INTRANS,
                        extensions.TRANSACTION_STATUS_INERROR,
                    ):
                        conn.rollback()
                except PsycopgError:
                    logger.warning(
                        "postgres_connection_cleanup_failed",
                        database=self._database,
                        exc_info=True,
                    )
                    self._release_connection(conn, close=True)
                else:
                    self._release_connection(conn, close=False)

    def _fetch_one(
        self, action: str, query: str, params: Iterable[Any]
    ) -> dict[str, Any] | None:
        row: dict[str, Any] | None = None
        with self._get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(query, tuple(params))
                    row = cur.fetchone()
                conn.commit()
            except PsycopgError as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to {action}: {exc}") from exc
        return row

    def _fetch_all(
        self, action: str, query: str, params: Iterable[Any]
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        with self._get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(query, tuple(params))
                    rows = list(cur.fetchall())
                conn.commit()
            except PsycopgError as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to {action}: {exc}") from exc
        return rows

    def _execute(self, action: str, query: str, params: Iterable[Any]) -> int:
        """Run one write statement and return the affected row count."""
        with self._get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(query, tuple(params))
                    affected = cur.rowcount
                conn.commit()
            except PsycopgError as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to {action}: {exc}") from exc
        return int(affected)

    # --- challenges and weeks ---

    def add_challenge(self, challenge: Challenge) -> Challenge:
        """Insert a challenge and return it with its id set."""
        row = self._fetch_one(
            "add challenge",
            """
            INSERT INTO challenges (
                server_id, quarter_number, theme, start_date, end_date,
                week_count, is_current, is_started, is_active
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                challenge.server_id,
                challenge.quarter_number,
                challenge.theme,
                challenge.start_date,
                challenge.end_date,
                challenge.week_count,
                challenge.is_current,
                challenge.is_started,
                challenge.is_active,
            ),
        )
        assert row is not None
        logger.info("challenge_added", challenge_id=row["id"])
        return challenge.model_copy(update={"id": row["id"]})

    def get_challenge(self, challenge_id: int) -> Challenge | None:
        """Get a challenge by id."""
        row = self._fetch_one(
            "get challenge", "SELECT * FROM challenges WHERE id = %s", (challenge_id,)
        )
        return Challenge(**row) if row else None

    def set_challenge_active(self, challenge_id: int, is_active: bool) -> bool:
        """Toggle message processing for a challenge."""
        return (
            self._execute(
                "update challenge",
                "UPDATE challenges SET is_active = %s WHERE id = %s",
                (is_active, challenge_id),
            )
            > 0
        )

    def delete_challenge(self, challenge_id: int) -> bool:
        """Delete a challenge; weeks, ledger rows, goals and scoped emoji cascade."""
        deleted = (
            self._execute(
                "delete challenge",
                "DELETE FROM challenges WHERE id = %s",
                (challenge_id,),
            )
            > 0
        )
        if deleted:
            logger.info("challenge_deleted", challenge_id=challenge_id)
        return deleted

    def add_week(self, week: Week) -> Week:
        """Insert a week and return it with its id set."""
        row = self._fetch_one(
            "add week",
            """
            INSERT INTO weeks (
                challenge_id, week_number, thread_id, goal_thread_id,
                leaderboard_posted
            ) VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                week.challenge_id,
                week.week_number,
                week.thread_id,
                week.goal_thread_id,
                week.leaderboard_posted,
            ),
        )
        assert row is not None
        return week.model_copy(update={"id": row["id"]})

    def get_week(self, week_id: int) -> Week | None:
        """Get a week by id."""
        row = self._fetch_one("get week", "SELECT * FROM weeks WHERE id = %s", (week_id,))
        return Week(**row) if row else None

    def get_challenge_weeks(self, challenge_id: int) -> list[Week]:
        """Get all weeks of a challenge ordered by week number."""
        rows = self._fetch_all(
            "get challenge weeks",
            "SELECT * FROM weeks WHERE challenge_id = %s ORDER BY week_number",
            (challenge_id,),
        )
        return [Week(**row) for row in rows]

    def find_active_week_by_channel(self, channel_id: int | None) -> Week | None:
        """Find the week bound to a thread under an active challenge."""
        if not channel_id:
            return None

        row = self._fetch_one(
            "resolve active week",
            """
            SELECT w.* FROM weeks w
            JOIN challenges c ON c.id = w.challenge_id
            WHERE c.is_active
              AND (w.thread_id = %s OR w.goal_thread_id = %s)
            ORDER BY w.id DESC
            LIMIT 1
            """,
            (channel_id, channel_id),
        )
        return Week(**row) if row else None

    def set_week_threads(
        self,
        week_id: int,
        thread_id: int | None = None,
        goal_thread_id: int | None = None,
    ) -> bool:
        """Bind thread ids to a week. None leaves a field unchanged."""
        return (
            self._execute(
                "set week threads",
                """
                UPDATE weeks SET
                    thread_id = COALESCE(%s, thread_id),
                    goal_thread_id = COALESCE(%s, goal_thread_id)
                WHERE id = %s
                """,
                (thread_id, goal_thread_id, week_id),
            )
            > 0
        )

    def mark_leaderboard_posted(self, week_id: int) -> bool:
        """Set the leaderboard-posted flag of a week."""
        return (
            self._execute(
                "mark leaderboard posted",
                "UPDATE weeks SET leaderboard_posted = TRUE WHERE id = %s",
                (week_id,),
            )
            > 0
        )

    # --- emoji catalog ---

    def add_emoji(self, emoji: Emoji) -> Emoji:
        """Insert a catalog row and return it with its id set."""
        row = self._fetch_one(
            "add emoji",
            """
            INSERT INTO emojis (
                server_id, challenge_id, emoji_code, point_value, category, is_active
            ) VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                emoji.server_id,
                emoji.challenge_id,
                emoji.emoji_code,
                emoji.point_value,
                emoji.category.value,
                emoji.is_active,
            ),
        )
        assert row is not None
        return emoji.model_copy(update={"id": row["id"]})

    def set_emoji_active(self, emoji_id: int, is_active: bool) -> bool:
        """Soft-delete or restore a catalog row."""
        return (
            self._execute(
                "update emoji",
                "UPDATE emojis SET is_active = %s WHERE id = %s",
                (is_active, emoji_id),
            )
            > 0
        )

    def get_active_emojis(
        self,
        server_id: int,
        challenge_id: int | None = None,
        category: EmojiCategory | None = None,
    ) -> list[Emoji]:
        """Get active emoji rows visible at a scope, challenge-scoped rows first."""
        query = "SELECT * FROM emojis WHERE server_id = %s AND is_active"
        params: list[Any] = [server_id]

        if challenge_id is None:
            query += " AND challenge_id IS NULL"
        else:
            query += " AND (challenge_id IS NULL OR challenge_id = %s)"
            params.append(challenge_id)

        if category is not None:
            query += " AND category = %s"
            params.append(category.value)

        query += " ORDER BY (challenge_id IS NULL), id"

        rows = self._fetch_all("get active emojis", query, params)
        return [Emoji(**row) for row in rows]

    # --- message ledger ---

    def get_message_log(self, message_id: int) -> MessageLog | None:
        """Get the ledger row for a message id."""
        row = self._fetch_one(
            "get message log",
            f"SELECT {_MESSAGE_LOG_COLUMNS} FROM message_logs WHERE message_id = %s",
            (message_id,),
        )
        return MessageLog(**row) if row else None

    def insert_message_log(self, log: MessageLog) -> bool:
        """Insert a ledger row unless one exists for the message id."""
        inserted = self._execute(
            "insert message log",
            f"""
            INSERT INTO message_logs ({_MESSAGE_LOG_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (message_id) DO NOTHING
            """,
            (
                log.message_id,
                log.user_id,
                log.week_id,
                log.pomodoro_points,
                log.bonus_points,
                log.goal_points,
            ),
        )
        return inserted == 1

    def upsert_message_log(self, log: MessageLog) -> MessageLog:
        """Insert a ledger row or overwrite only the points of the existing one."""
        row = self._fetch_one(
            "upsert message log",
            f"""
            INSERT INTO message_logs ({_MESSAGE_LOG_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (message_id) DO UPDATE SET
                pomodoro_points = EXCLUDED.pomodoro_points,
                bonus_points = EXCLUDED.bonus_points,
                goal_points = EXCLUDED.goal_points,
                updated_at = NOW()
            RETURNING {_MESSAGE_LOG_COLUMNS}
            """,
            (
                log.message_id,
                log.user_id,
                log.week_id,
                log.pomodoro_points,
                log.bonus_points,
                log.goal_points,
            ),
        )
        assert row is not None
        return MessageLog(**row)

    def update_message_points(self, message_id: int, points: PointsBreakdown) -> bool:
        """Overwrite the point columns of an existing row."""
        return (
            self._execute(
                "update message points",
                """
                UPDATE message_logs SET
                    pomodoro_points = %s,
                    bonus_points = %s,
                    goal_points = %s,
                    updated_at = NOW()
                WHERE message_id = %s
                """,
                (
                    points.pomodoro_points,
                    points.bonus_points,
                    points.goal_points,
                    message_id,
                ),
            )
            > 0
        )

    def delete_message_log(self, message_id: int) -> bool:
        """Delete the ledger row for a message id."""
        return (
            self._execute(
                "delete message log",
                "DELETE FROM message_logs WHERE message_id = %s",
                (message_id,),
            )
            > 0
        )

    def delete_week_message_logs_except(
        self, week_id: int, keep_message_ids: Iterable[int]
    ) -> int:
        """Delete rows of a week whose message id is not in keep_message_ids."""
        return self._execute(
            "prune week message logs",
            """
            DELETE FROM message_logs
            WHERE week_id = %s AND NOT (message_id = ANY(%s::bigint[]))
            """,
            (week_id, sorted(set(keep_message_ids))),
        )

    def count_week_message_logs(self, week_id: int) -> int:
        """Count ledger rows booked under a week."""
        row = self._fetch_one(
            "count message logs",
            "SELECT COUNT(*) AS total FROM message_logs WHERE week_id = %s",
            (week_id,),
        )
        return int(row["total"]) if row else 0

    def aggregate_user_points(self, week_ids: Iterable[int]) -> list[UserPointsAggregate]:
        """Sum ledger rows per user over a set of weeks, ordered by user id."""
        ids = sorted(set(week_ids))
        if not ids:
            return []

        rows = self._fetch_all(
            "aggregate user points",
            """
            SELECT
                user_id,
                SUM(pomodoro_points)::bigint AS pomodoro_points,
                SUM(bonus_points)::bigint AS bonus_points,
                SUM(goal_points)::bigint AS goal_points,
                COUNT(*) AS message_count
            FROM message_logs
            WHERE week_id = ANY(%s)
            GROUP BY user_id
            ORDER BY user_id
            """,
            (ids,),
        )
        return [UserPointsAggregate(**row) for row in rows]

    # --- user goals ---

    def get_user_goal(self, user_id: int, week_id: int) -> UserGoal | None:
        """Get a user's goal row for a week."""
        row = self._fetch_one(
            "get user goal",
            f"SELECT {_USER_GOAL_COLUMNS} FROM user_goals "
            "WHERE user_id = %s AND week_id = %s",
            (user_id, week_id),
        )
        return UserGoal(**row) if row else None

    def get_week_user_goals(self, week_id: int) -> list[UserGoal]:
        """Get all goal rows of a week ordered by user id."""
        rows = self._fetch_all(
            "get week user goals",
            f"SELECT {_USER_GOAL_COLUMNS} FROM user_goals "
            "WHERE week_id = %s ORDER BY user_id",
            (week_id,),
        )
        return [UserGoal(**row) for row in rows]

    def save_user_goals(self, goals: list[UserGoal]) -> int:
        """Upsert goal rows in one transaction."""
        if not goals:
            return 0

        with self._get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    execute_batch(
                        cur,
                        f"""
                        INSERT INTO user_goals ({_USER_GOAL_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (user_id, week_id) DO UPDATE SET
                            goal_points = EXCLUDED.goal_points,
                            actual_pomodoro_points = EXCLUDED.actual_pomodoro_points,
                            actual_bonus_points = EXCLUDED.actual_bonus_points,
                            is_achieved = EXCLUDED.is_achieved,
                            reward_emoji = EXCLUDED.reward_emoji,
                            updated_at = NOW()
                        """,
                        [
                            (
                                goal.user_id,
                                goal.week_id,
                                goal.goal_points,
                                goal.actual_pomodoro_points,
                                goal.actual_bonus_points,
                                goal.is_achieved,
                                goal.reward_emoji,
                            )
                            for goal in goals
                        ],
                    )
                conn.commit()
            except PsycopgError as exc:
                conn.rollback()
                raise RepositoryError(f"Failed to save user goals: {exc}") from exc

        logger.debug("user_goals_saved", count=len(goals))
        return len(goals)
