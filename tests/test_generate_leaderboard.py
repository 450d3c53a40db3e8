"""Tests for the generate leaderboard use case."""

import random
from datetime import date

import pytest

from pomo_counter.domain.exceptions import RepositoryError
from pomo_counter.domain.leaderboard_constants import (
    DEFAULT_FOOTER,
    ERROR_GENERATION_FAILED,
    ERROR_WEEK_NOT_FOUND,
    FOOTER_TIERS,
)
from pomo_counter.domain.models import Emoji, EmojiCategory, ReportKind, UserGoal
from pomo_counter.use_cases.generate_leaderboard import generate_leaderboard_use_case
from tests.conftest import GOAL_THREAD_ID, SERVER_ID, WEEK1_THREAD_ID, WEEK2_THREAD_ID

ALICE = 1
BOB = 2
CAROL = 3
DAN = 4

STEADY_FOOTER = next(tier.message for tier in FOOTER_TIERS if tier.name == "steady")


@pytest.fixture
def week1_activity(seeded, ledger):
    """Goals declared in week 0, points logged in week 1.

    Alice: goal 30, earns 30 (achieved at the boundary)
    Bob: goal 10, earns 25 (achieved)
    Carol: no goal, earns 50 (a zero goal is met)
    Dan: goal 10, no week 1 activity
    """
    ledger.process(100, ALICE, "🎯 🎯 🎯", GOAL_THREAD_ID)
    ledger.process(101, BOB, "🎯", GOAL_THREAD_ID)
    ledger.process(102, DAN, "🎯", GOAL_THREAD_ID)

    ledger.process(200, ALICE, "🍅 :star:", WEEK1_THREAD_ID)
    ledger.process(201, BOB, "🍅", WEEK1_THREAD_ID)
    ledger.process(202, CAROL, "🍅 🍅", WEEK1_THREAD_ID)
    return seeded


def _entry(report, user_id):
    return next(entry for entry in report.entries if entry.user_id == user_id)


def test_ranks_by_weekly_points(week1_activity, repo):
    report = generate_leaderboard_use_case(
        repo, week1_activity.week1.id, rng=random.Random(1)
    )

    assert report.kind == ReportKind.DATA
    assert [entry.user_id for entry in report.entries] == [CAROL, ALICE, BOB, DAN]
    assert [entry.rank for entry in report.entries] == [1, 2, 3, 4]
    assert [entry.weekly_points for entry in report.entries] == [50, 30, 25, 0]


def test_report_header(week1_activity, repo):
    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert report.week_number == 1
    assert report.challenge_id == week1_activity.challenge.id
    assert report.week_start == date(2025, 1, 6)
    assert report.week_end == date(2025, 1, 12)
    assert "Week 1" in report.title
    assert "Deep Work" in report.description


def test_goals_resolved_from_goal_week(week1_activity, repo):
    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    alice = _entry(report, ALICE)
    assert alice.weekly_goal_points == 30
    assert alice.weekly_goal_achieved
    assert _entry(report, BOB).weekly_goal_achieved
    assert _entry(report, CAROL).weekly_goal_points == 0
    assert _entry(report, CAROL).weekly_goal_achieved
    assert not _entry(report, DAN).weekly_goal_achieved


def test_totals_span_challenge_weeks(week1_activity, repo):
    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    alice = _entry(report, ALICE)
    assert alice.total_points == 30
    assert alice.total_goal_points == 30
    assert alice.total_message_count == 2
    assert alice.total_goal_achieved
    assert not _entry(report, DAN).total_goal_achieved


def test_statistics_and_footer(week1_activity, repo):
    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert report.statistics.participant_count == 4
    assert report.statistics.weekly_points == 105
    assert report.statistics.weekly_messages == 3
    assert report.statistics.total_messages == 6
    assert report.statistics.goals_achieved == 3
    assert report.footer == STEADY_FOOTER


def test_achievers_receive_reward(week1_activity, repo):
    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert _entry(report, ALICE).reward_emoji == ":trophy:"
    assert _entry(report, BOB).reward_emoji == ":trophy:"
    assert _entry(report, CAROL).reward_emoji == ":trophy:"
    assert _entry(report, DAN).reward_emoji is None


def test_empty_reward_pool_gives_empty_reward(week1_activity, repo):
    repo.set_emoji_active(week1_activity.emojis["trophy"].id, False)

    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert _entry(report, ALICE).reward_emoji == ""
    assert _entry(report, ALICE).weekly_goal_achieved


def test_seeded_rng_is_reproducible_and_rewards_are_kept(week1_activity, repo):
    repo.add_emoji(
        Emoji(
            server_id=SERVER_ID,
            emoji_code=":tada:",
            point_value=1,
            category=EmojiCategory.REWARD,
        )
    )
    expected = random.Random(99)
    first_draw = expected.choice([":trophy:", ":tada:"])

    first = generate_leaderboard_use_case(
        repo, week1_activity.week1.id, rng=random.Random(99)
    )
    second = generate_leaderboard_use_case(
        repo, week1_activity.week1.id, rng=random.Random(12345)
    )

    assert _entry(first, ALICE).reward_emoji == first_draw
    assert _entry(second, ALICE).reward_emoji == _entry(first, ALICE).reward_emoji
    assert _entry(second, BOB).reward_emoji == _entry(first, BOB).reward_emoji


def test_goal_rows_saved(week1_activity, repo):
    generate_leaderboard_use_case(repo, week1_activity.week1.id)

    stored = repo.get_week_user_goals(week1_activity.week1.id)
    goals = {goal.user_id: goal for goal in stored}
    assert set(goals) == {ALICE, BOB, CAROL, DAN}
    assert goals[ALICE].goal_points == 30
    assert goals[ALICE].actual_pomodoro_points == 25
    assert goals[ALICE].actual_bonus_points == 5
    assert goals[ALICE].is_achieved
    assert goals[CAROL].goal_points == 0
    assert goals[CAROL].is_achieved
    assert not goals[DAN].is_achieved


def test_stored_week_goal_overrides_goal_week(week1_activity, repo):
    repo.save_user_goals(
        [UserGoal(user_id=ALICE, week_id=week1_activity.week1.id, goal_points=31)]
    )

    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    alice = _entry(report, ALICE)
    assert alice.weekly_goal_points == 31
    assert not alice.weekly_goal_achieved
    assert alice.reward_emoji is None


def test_tie_broken_by_user_id(seeded, ledger, repo):
    ledger.process(300, 9, ":star:", WEEK1_THREAD_ID)
    ledger.process(301, 5, ":star:", WEEK1_THREAD_ID)

    report = generate_leaderboard_use_case(repo, seeded.week1.id)

    assert [(entry.rank, entry.user_id) for entry in report.entries] == [(1, 5), (2, 9)]
    assert report.footer == DEFAULT_FOOTER


def test_later_week_includes_earlier_participants(week1_activity, ledger, repo):
    ledger.process(400, ALICE, "🍅 🍅", WEEK2_THREAD_ID)

    report = generate_leaderboard_use_case(repo, week1_activity.week2.id)

    assert [entry.user_id for entry in report.entries][0] == ALICE
    assert {entry.user_id for entry in report.entries} == {ALICE, BOB, CAROL, DAN}
    alice = _entry(report, ALICE)
    assert alice.weekly_points == 50
    assert alice.total_points == 80
    assert alice.weekly_goal_points == 30
    assert alice.weekly_goal_achieved
    assert _entry(report, CAROL).weekly_points == 0


def test_no_rows_gives_no_data(seeded, repo):
    report = generate_leaderboard_use_case(repo, seeded.week2.id)

    assert report.kind == ReportKind.NO_DATA
    assert report.entries == []
    assert "No data" in report.description
    assert repo.get_week_user_goals(seeded.week2.id) == []


def test_missing_week_gives_error_report(seeded, repo):
    report = generate_leaderboard_use_case(repo, 987654)

    assert report.kind == ReportKind.ERROR
    assert report.error == ERROR_WEEK_NOT_FOUND


def test_storage_error_gives_error_report(week1_activity, repo, mocker):
    mocker.patch.object(
        repo, "aggregate_user_points", side_effect=RepositoryError("db down")
    )

    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert report.kind == ReportKind.ERROR
    assert report.description == ERROR_GENERATION_FAILED


def test_failed_goal_save_writes_nothing(week1_activity, repo, mocker):
    mocker.patch.object(
        repo, "save_user_goals", side_effect=RepositoryError("constraint")
    )

    report = generate_leaderboard_use_case(repo, week1_activity.week1.id)

    assert report.kind == ReportKind.ERROR
    assert repo.get_week_user_goals(week1_activity.week1.id) == []


def test_unexpected_error_propagates(week1_activity, repo, mocker):
    mocker.patch.object(repo, "get_challenge", side_effect=RuntimeError("bug"))

    with pytest.raises(RuntimeError):
        generate_leaderboard_use_case(repo, week1_activity.week1.id)
