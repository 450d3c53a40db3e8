"""Week calendar derived from a challenge's start date.

Week dates are never stored. Week N (N >= 1) runs Monday to Sunday starting
``(N - 1) * 7`` days after the challenge start; week 0 (goal collection) is the
seven days before the start.
"""

from datetime import date, datetime, timedelta
from typing import Final

import pytz

from pomo_counter.domain.models import Challenge, Week

DAYS_PER_WEEK: Final[int] = 7
LEADERBOARD_DELAY_DAYS: Final[int] = 2
"""Leaderboards post on the Tuesday after the week's Sunday."""


def week_date_range(challenge: Challenge, week_number: int) -> tuple[date, date]:
    """Return the first and last calendar day of a challenge week.

    Example:
        >>> week_date_range(challenge_starting_2025_01_06, 1)
        (datetime.date(2025, 1, 6), datetime.date(2025, 1, 12))
    """
    start = challenge.start_date + timedelta(days=(week_number - 1) * DAYS_PER_WEEK)
    return start, start + timedelta(days=DAYS_PER_WEEK - 1)


def local_date(now: datetime, tz_name: str) -> date:
    """Convert an instant to the calendar date in a timezone.

    Naive datetimes are treated as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=pytz.UTC)
    return now.astimezone(pytz.timezone(tz_name)).date()


def current_week_number(challenge: Challenge, now: datetime, tz_name: str) -> int:
    """Week number containing ``now``; 0 before the challenge starts.

    The result can exceed ``challenge.week_count`` once the challenge is over.
    """
    days_since_start = (local_date(now, tz_name) - challenge.start_date).days
    if days_since_start < 0:
        return 0
    return days_since_start // DAYS_PER_WEEK + 1


def leaderboard_due_date(challenge: Challenge, week: Week) -> date:
    """Calendar day the week's leaderboard should be posted."""
    _, end = week_date_range(challenge, week.week_number)
    return end + timedelta(days=LEADERBOARD_DELAY_DAYS)


def is_leaderboard_due(
    challenge: Challenge, week: Week, now: datetime, tz_name: str
) -> bool:
    """Whether a week's leaderboard should be posted today.

    Goal-collection weeks and weeks already posted are never due.
    """
    if week.is_goal_week or week.leaderboard_posted:
        return False
    return local_date(now, tz_name) == leaderboard_due_date(challenge, week)
