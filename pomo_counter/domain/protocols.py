"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from collections.abc import Iterable
from typing import Protocol

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


class EmojiCatalogProtocol(Protocol):
    """Read access to the emoji catalog."""

    def get_active_emojis(
        self,
        server_id: int,
        challenge_id: int | None = None,
        category: EmojiCategory | None = None,
    ) -> list[Emoji]:
        """Get active emoji rows visible at a scope.

        Args:
            server_id: Chat server id
            challenge_id: Challenge scope; server-wide rows are always included
            category: Optional category filter

        Returns:
            Active rows, challenge-scoped rows first

        Raises:
            RepositoryError: On storage errors
        """
        ...


class RepositoryProtocol(EmojiCatalogProtocol, Protocol):
    """Persistence boundary for challenges, weeks, catalog, ledger and goals."""

    # --- challenges and weeks ---

    def add_challenge(self, challenge: Challenge) -> Challenge:
        """Insert a challenge and return it with its id set."""
        ...

    def get_challenge(self, challenge_id: int) -> Challenge | None:
        """Get a challenge by id."""
        ...

    def set_challenge_active(self, challenge_id: int, is_active: bool) -> bool:
        """Toggle message processing for a challenge.

        Returns:
            True if the challenge exists
        """
        ...

    def delete_challenge(self, challenge_id: int) -> bool:
        """Delete a challenge with its weeks, ledger rows, goals and scoped emoji."""
        ...

    def add_week(self, week: Week) -> Week:
        """Insert a week and return it with its id set."""
        ...

    def get_week(self, week_id: int) -> Week | None:
        """Get a week by id."""
        ...

    def get_challenge_weeks(self, challenge_id: int) -> list[Week]:
        """Get all weeks of a challenge ordered by week number."""
        ...

    def find_active_week_by_channel(self, channel_id: int | None) -> Week | None:
        """Find the week whose main or goal thread is the channel.

        Only weeks of an active challenge are considered.

        Returns:
            The bound week, or None when the channel is not tracked
        """
        ...

    def set_week_threads(
        self,
        week_id: int,
        thread_id: int | None = None,
        goal_thread_id: int | None = None,
    ) -> bool:
        """Bind thread ids to a week. None leaves a field unchanged."""
        ...

    def mark_leaderboard_posted(self, week_id: int) -> bool:
        """Set the leaderboard-posted flag of a week."""
        ...

    # --- emoji catalog ---

    def add_emoji(self, emoji: Emoji) -> Emoji:
        """Insert a catalog row and return it with its id set."""
        ...

    def set_emoji_active(self, emoji_id: int, is_active: bool) -> bool:
        """Soft-delete or restore a catalog row."""
        ...

    # --- message ledger ---

    def get_message_log(self, message_id: int) -> MessageLog | None:
        """Get the ledger row for a message id."""
        ...

    def insert_message_log(self, log: MessageLog) -> bool:
        """Insert a ledger row unless one exists for the message id.

        Returns:
            True if inserted, False if a row already existed

        Raises:
            RepositoryError: On storage errors
        """
        ...

    def upsert_message_log(self, log: MessageLog) -> MessageLog:
        """Insert a ledger row or overwrite the points of the existing one.

        Author and week of an existing row are never changed.

        Returns:
            The stored row
        """
        ...

    def update_message_points(self, message_id: int, points: PointsBreakdown) -> bool:
        """Overwrite the point columns of an existing row.

        Returns:
            True if a row was updated
        """
        ...

    def delete_message_log(self, message_id: int) -> bool:
        """Delete the ledger row for a message id.

        Returns:
            True if a row was deleted
        """
        ...

    def delete_week_message_logs_except(
        self, week_id: int, keep_message_ids: Iterable[int]
    ) -> int:
        """Delete rows of a week whose message id is not in keep_message_ids.

        Returns:
            Number of rows deleted
        """
        ...

    def count_week_message_logs(self, week_id: int) -> int:
        """Count ledger rows booked under a week."""
        ...

    def aggregate_user_points(self, week_ids: Iterable[int]) -> list[UserPointsAggregate]:
        """Sum ledger rows per user over a set of weeks.

        Returns:
            One aggregate per user, ordered by user id
        """
        ...

    # --- user goals ---

    def get_user_goal(self, user_id: int, week_id: int) -> UserGoal | None:
        """Get a user's goal row for a week."""
        ...

    def get_week_user_goals(self, week_id: int) -> list[UserGoal]:
        """Get all goal rows of a week ordered by user id."""
        ...

    def save_user_goals(self, goals: list[UserGoal]) -> int:
        """Upsert goal rows in one transaction.

        Returns:
            Number of rows written

        Raises:
            RepositoryError: On storage errors (nothing is written)
        """
        ...

    def close(self) -> None:
        """Release storage resources."""
        ...
