"""Domain models for the Pomodoro challenge counter.

All models use Pydantic v2 for validation and serialization. Relationships are
plain id references resolved through the repository.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from pomo_counter.domain.emoji_constants import (
    MAX_EMOJI_CODE_LENGTH,
    MAX_POINT_VALUE,
    MIN_POINT_VALUE,
)


class EmojiCategory(str, Enum):
    """Category an emoji's points are booked under."""

    POMODORO = "pomodoro"
    BONUS = "bonus"
    GOAL = "goal"
    REWARD = "reward"


class EmojiFormat(str, Enum):
    """Surface form of a detected emoji token."""

    CUSTOM = "custom"  # <:name:id> or <a:name:id>
    SHORTCODE = "shortcode"  # :name:
    UNICODE = "unicode"  # native glyph


class ProcessingStatus(str, Enum):
    """Outcome of running one chat message through the ledger."""

    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"
    NO_ACTIVE_WEEK = "no_active_week"
    NO_EMOJIS = "no_emojis"


class ReportKind(str, Enum):
    """Leaderboard report variant."""

    DATA = "data"
    NO_DATA = "no_data"
    ERROR = "error"


class Challenge(BaseModel):
    """A quarter-long challenge on one server."""

    id: int | None = Field(default=None, description="Storage id (None until saved)")
    server_id: int = Field(..., description="Chat server (guild) id")
    quarter_number: int = Field(..., ge=1, le=4, description="Quarter 1-4")
    theme: str = Field(..., max_length=255, description="Challenge theme")
    start_date: date = Field(..., description="Monday the first active week starts")
    end_date: date = Field(..., description="Sunday the last active week ends")
    week_count: int = Field(..., ge=1, description="Number of active weeks")
    is_current: bool = Field(default=False, description="Current challenge flag")
    is_started: bool = Field(default=False, description="Start announced")
    is_active: bool = Field(
        default=True, description="Whether messages are being processed"
    )


class Week(BaseModel):
    """One cycle of a challenge bound to one or two chat threads."""

    id: int | None = Field(default=None, description="Storage id (None until saved)")
    challenge_id: int = Field(..., description="Owning challenge id")
    week_number: int = Field(..., ge=0, description="0 = goal collection, 1..N")
    thread_id: int = Field(default=0, description="Main thread id (0 = unbound)")
    goal_thread_id: int | None = Field(
        default=None, description="Goal thread id (goal-collection week)"
    )
    leaderboard_posted: bool = Field(default=False)

    @property
    def is_goal_week(self) -> bool:
        """Whether this is the goal-collection week."""
        return self.week_number == 0


class Emoji(BaseModel):
    """Catalog row mapping an emoji code to a category and point value."""

    id: int | None = Field(default=None, description="Storage id (None until saved)")
    server_id: int = Field(..., description="Chat server id")
    challenge_id: int | None = Field(
        default=None, description="Challenge scope (None = server-wide)"
    )
    emoji_code: str = Field(
        ...,
        min_length=1,
        max_length=MAX_EMOJI_CODE_LENGTH,
        description=":shortcode:, <:custom:id> or native glyph",
    )
    point_value: int = Field(..., ge=MIN_POINT_VALUE, le=MAX_POINT_VALUE)
    category: EmojiCategory
    is_active: bool = Field(default=True)


class MessageLog(BaseModel):
    """Durable evidence that one chat message was counted."""

    message_id: int = Field(..., description="Chat message id (unique)")
    user_id: int = Field(..., description="Author id")
    week_id: int = Field(..., description="Week the message is booked under")
    pomodoro_points: int = Field(default=0, ge=0)
    bonus_points: int = Field(default=0, ge=0)
    goal_points: int = Field(default=0, ge=0)


class UserGoal(BaseModel):
    """A user's goal and realized points for one week."""

    user_id: int
    week_id: int
    goal_points: int = Field(default=0, ge=0, description="Declared target")
    actual_pomodoro_points: int = Field(default=0, ge=0)
    actual_bonus_points: int = Field(default=0, ge=0)
    is_achieved: bool = False
    reward_emoji: str | None = Field(default=None, max_length=MAX_EMOJI_CODE_LENGTH)


class EmojiDetectionResult(BaseModel):
    """Emoji tokens found in a message, partitioned by surface form.

    Each occurrence is kept, so repeated emoji appear repeatedly.
    """

    custom_emojis: list[str] = Field(default_factory=list)
    shortcode_emojis: list[str] = Field(default_factory=list)
    unicode_emojis: list[str] = Field(default_factory=list)

    @property
    def all_emojis(self) -> list[str]:
        """All tokens: custom first, then shortcodes, then native glyphs."""
        return [*self.custom_emojis, *self.shortcode_emojis, *self.unicode_emojis]

    @property
    def total_count(self) -> int:
        """Number of detected tokens across all forms."""
        return (
            len(self.custom_emojis)
            + len(self.shortcode_emojis)
            + len(self.unicode_emojis)
        )


class PointsBreakdown(BaseModel):
    """Per-category point totals for one message."""

    pomodoro_points: int = 0
    bonus_points: int = 0
    goal_points: int = 0
    resolved_token_count: int = 0

    @property
    def total_points(self) -> int:
        """Pomodoro plus bonus points (goal points are a target, not earnings)."""
        return self.pomodoro_points + self.bonus_points


class MessageProcessingResult(BaseModel):
    """Result of processing one inbound chat message."""

    status: ProcessingStatus
    message_log: MessageLog | None = None
    breakdown: PointsBreakdown | None = None
    detected_emojis: int = 0

    @property
    def is_success(self) -> bool:
        """Whether a ledger row was written."""
        return self.status == ProcessingStatus.PROCESSED

    @property
    def resolved_token_count(self) -> int:
        """Catalog-resolved tokens, 0 when nothing was processed."""
        return self.breakdown.resolved_token_count if self.breakdown else 0


class HistoricalMessage(BaseModel):
    """One message supplied by the chat-history collaborator for a rescan."""

    message_id: int
    user_id: int
    content: str = ""


class RescanFailure(BaseModel):
    """A rescan tuple that raised and was skipped.

    ``message_id`` is None when the tuple was too malformed to read one.
    """

    message_id: int | None
    error: str


class RescanResult(BaseModel):
    """Aggregate outcome of a week rescan."""

    week_id: int
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    deleted: int = 0
    total_processed: int = 0
    cancelled: bool = False
    failures: list[RescanFailure] = Field(default_factory=list)


class UserPointsAggregate(BaseModel):
    """Summed ledger rows for one user over a set of weeks."""

    user_id: int
    pomodoro_points: int = 0
    bonus_points: int = 0
    goal_points: int = 0
    message_count: int = 0


class LeaderboardEntry(BaseModel):
    """One ranked user row on a leaderboard."""

    rank: int
    user_id: int

    weekly_pomodoro_points: int = 0
    weekly_bonus_points: int = 0
    weekly_goal_points: int = 0
    weekly_message_count: int = 0
    weekly_goal_achieved: bool = False

    total_pomodoro_points: int = 0
    total_bonus_points: int = 0
    total_goal_points: int = 0
    total_message_count: int = 0
    total_goal_achieved: bool = False

    reward_emoji: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def weekly_points(self) -> int:
        return self.weekly_pomodoro_points + self.weekly_bonus_points

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_points(self) -> int:
        return self.total_pomodoro_points + self.total_bonus_points


class LeaderboardStatistics(BaseModel):
    """Summary block of a leaderboard."""

    participant_count: int = 0
    total_points: int = 0
    weekly_points: int = 0
    total_messages: int = 0
    weekly_messages: int = 0
    goals_achieved: int = 0


class LeaderboardReport(BaseModel):
    """Structured leaderboard, rendered by the chat collaborator."""

    kind: ReportKind
    title: str
    description: str = ""
    week_id: int
    week_number: int | None = None
    challenge_id: int | None = None
    week_start: date | None = None
    week_end: date | None = None
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    statistics: LeaderboardStatistics | None = None
    footer: str | None = None
    error: str | None = None


class GoalCollectionResult(BaseModel):
    """Outcome of collecting declared goals from the goal-collection week."""

    challenge_id: int
    goal_week_id: int
    goals_collected: int = 0
    total_goal_points: int = 0
