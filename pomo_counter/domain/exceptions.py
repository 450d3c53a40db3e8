"""Custom exception hierarchy for the Pomodoro challenge counter.

Following error taxonomy: retryable, non-retryable, validation.
Expected non-events (no active week, already processed, no leaderboard data)
are result variants, not exceptions.
"""


class PomoCounterError(Exception):
    """Base exception for all application errors."""

    pass


class RetryableError(PomoCounterError):
    """Errors that can be retried (connection issues, temporary failures)."""

    pass


class NonRetryableError(PomoCounterError):
    """Errors that should not be retried (validation, missing entities)."""

    pass


class ValidationError(NonRetryableError):
    """Data validation errors."""

    pass


class WeekNotFoundError(NonRetryableError):
    """Referenced week does not exist."""

    def __init__(self, week_id: int) -> None:
        """Initialize with the missing week id."""
        self.week_id = week_id
        super().__init__(f"Week {week_id} not found")


class ChallengeNotFoundError(NonRetryableError):
    """Referenced challenge does not exist."""

    def __init__(self, challenge_id: int) -> None:
        """Initialize with the missing challenge id."""
        self.challenge_id = challenge_id
        super().__init__(f"Challenge {challenge_id} not found")


class RepositoryError(RetryableError):
    """Database/storage errors."""

    pass
