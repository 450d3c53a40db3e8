"""Tests for the week calendar."""

from datetime import date, datetime

import pytest
import pytz

from pomo_counter.domain.models import Challenge, Week
from pomo_counter.services.week_calendar import (
    current_week_number,
    is_leaderboard_due,
    leaderboard_due_date,
    local_date,
    week_date_range,
)

TZ = "Europe/Amsterdam"


@pytest.fixture
def challenge():
    return Challenge(
        id=1,
        server_id=1,
        quarter_number=1,
        theme="Deep Work",
        start_date=date(2025, 1, 6),
        end_date=date(2025, 3, 30),
        week_count=12,
    )


@pytest.mark.parametrize(
    ("week_number", "start", "end"),
    [
        (0, date(2024, 12, 30), date(2025, 1, 5)),
        (1, date(2025, 1, 6), date(2025, 1, 12)),
        (12, date(2025, 3, 24), date(2025, 3, 30)),
    ],
)
def test_week_date_range(challenge, week_number, start, end):
    assert week_date_range(challenge, week_number) == (start, end)


def test_local_date_converts_timezone():
    late_utc = datetime(2025, 1, 12, 23, 30, tzinfo=pytz.UTC)

    assert local_date(late_utc, TZ) == date(2025, 1, 13)
    assert local_date(late_utc, "UTC") == date(2025, 1, 12)


def test_naive_datetime_is_utc():
    assert local_date(datetime(2025, 1, 12, 23, 30), TZ) == date(2025, 1, 13)


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2025, 1, 1, 12, 0), 0),
        (datetime(2025, 1, 6, 12, 0), 1),
        (datetime(2025, 1, 12, 12, 0), 1),
        (datetime(2025, 1, 13, 12, 0), 2),
        (datetime(2025, 4, 7, 12, 0), 14),
    ],
)
def test_current_week_number(challenge, now, expected):
    assert current_week_number(challenge, now, TZ) == expected


def test_leaderboard_due_on_tuesday_after_week(challenge):
    week = Week(id=2, challenge_id=1, week_number=1)

    assert leaderboard_due_date(challenge, week) == date(2025, 1, 14)
    assert is_leaderboard_due(challenge, week, datetime(2025, 1, 14, 9, 0), TZ)
    assert not is_leaderboard_due(challenge, week, datetime(2025, 1, 13, 9, 0), TZ)


def test_leaderboard_never_due_for_goal_week_or_posted(challenge):
    goal_week = Week(id=1, challenge_id=1, week_number=0)
    posted = Week(id=2, challenge_id=1, week_number=1, leaderboard_posted=True)
    due_day = datetime(2025, 1, 14, 9, 0)

    assert not is_leaderboard_due(challenge, goal_week, datetime(2025, 1, 7, 9), TZ)
    assert not is_leaderboard_due(challenge, posted, due_day, TZ)
