"""Tests for the message ledger."""

import pytest

from pomo_counter.domain.exceptions import ChallengeNotFoundError
from pomo_counter.domain.models import ProcessingStatus, Week
from tests.conftest import (
    GOAL_THREAD_ID,
    UNTRACKED_CHANNEL_ID,
    WEEK1_THREAD_ID,
    WEEK2_THREAD_ID,
)

USER_ID = 42


def test_books_message_in_week_thread(seeded, ledger, repo):
    result = ledger.process(1001, USER_ID, "🍅 🍅 :star:", WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.PROCESSED
    assert result.is_success
    assert result.detected_emojis == 3
    assert result.resolved_token_count == 3

    stored = repo.get_message_log(1001)
    assert stored is not None
    assert stored.week_id == seeded.week1.id
    assert stored.user_id == USER_ID
    assert stored.pomodoro_points == 50
    assert stored.bonus_points == 5
    assert stored.goal_points == 0


def test_goal_thread_books_goal_week(seeded, ledger, repo):
    result = ledger.process(1002, USER_ID, "🎯 🎯 🎯", GOAL_THREAD_ID)

    assert result.status == ProcessingStatus.PROCESSED
    assert result.message_log.week_id == seeded.goal_week.id
    assert result.message_log.goal_points == 30


def test_second_delivery_is_already_processed(seeded, ledger, repo):
    ledger.process(1003, USER_ID, "🍅", WEEK1_THREAD_ID)

    again = ledger.process(1003, USER_ID, "🍅 🍅 🍅", WEEK1_THREAD_ID)

    assert again.status == ProcessingStatus.ALREADY_PROCESSED
    assert again.message_log.pomodoro_points == 25
    assert repo.get_message_log(1003).pomodoro_points == 25
    assert repo.count_week_message_logs(seeded.week1.id) == 1


@pytest.mark.parametrize("channel_id", [UNTRACKED_CHANNEL_ID, None, 0])
def test_untracked_channel_is_not_booked(seeded, ledger, repo, channel_id):
    result = ledger.process(1004, USER_ID, "🍅", channel_id)

    assert result.status == ProcessingStatus.NO_ACTIVE_WEEK
    assert repo.get_message_log(1004) is None


def test_inactive_challenge_is_not_booked(seeded, ledger, repo):
    repo.set_challenge_active(seeded.challenge.id, False)

    result = ledger.process(1005, USER_ID, "🍅", WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.NO_ACTIVE_WEEK


@pytest.mark.parametrize("content", ["just text", "", None, "12:30:45"])
def test_message_without_emoji_is_not_booked(seeded, ledger, repo, content):
    result = ledger.process(1006, USER_ID, content, WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.NO_EMOJIS
    assert repo.get_message_log(1006) is None


def test_unresolved_emoji_still_books_zero_row(seeded, ledger, repo):
    result = ledger.process(1007, USER_ID, "🎉", WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.PROCESSED
    assert result.resolved_token_count == 0
    stored = repo.get_message_log(1007)
    assert stored.pomodoro_points == stored.bonus_points == stored.goal_points == 0


def test_force_reprocess_keeps_original_week(seeded, ledger, repo):
    ledger.process(1008, USER_ID, "🍅", WEEK1_THREAD_ID)

    result = ledger.process(
        1008, USER_ID, "🍅 🍅 <:focus:123>", WEEK2_THREAD_ID, force_reprocess=True
    )

    assert result.status == ProcessingStatus.PROCESSED
    stored = repo.get_message_log(1008)
    assert stored.week_id == seeded.week1.id
    assert stored.pomodoro_points == 100
    assert repo.count_week_message_logs(seeded.week2.id) == 0


def test_force_reprocess_without_emoji_zeroes_points(seeded, ledger, repo):
    ledger.process(1009, USER_ID, "🍅 :star:", WEEK1_THREAD_ID)

    result = ledger.process(
        1009, USER_ID, "edited away", WEEK1_THREAD_ID, force_reprocess=True
    )

    assert result.status == ProcessingStatus.PROCESSED
    stored = repo.get_message_log(1009)
    assert stored.pomodoro_points == 0
    assert stored.bonus_points == 0


def test_force_reprocess_keeps_original_author(seeded, ledger, repo):
    ledger.process(1010, USER_ID, "🍅", WEEK1_THREAD_ID)

    ledger.process(1010, 7, "🍅 🍅", WEEK1_THREAD_ID, force_reprocess=True)

    assert repo.get_message_log(1010).user_id == USER_ID


def test_process_for_week_bypasses_channel(seeded, ledger, repo):
    result = ledger.process_for_week(seeded.week2, 1011, USER_ID, ":tomato:")

    assert result.status == ProcessingStatus.PROCESSED
    assert repo.get_message_log(1011).week_id == seeded.week2.id


def test_process_for_week_existing_row_keeps_week(seeded, ledger, repo):
    ledger.process(1012, USER_ID, "🍅", WEEK1_THREAD_ID)

    ledger.process_for_week(
        seeded.week2, 1012, USER_ID, "🍅 🍅", force_reprocess=True
    )

    stored = repo.get_message_log(1012)
    assert stored.week_id == seeded.week1.id
    assert stored.pomodoro_points == 50


def test_process_for_week_with_missing_challenge_raises(seeded, ledger):
    orphan = Week(id=seeded.week1.id, challenge_id=987654, week_number=1)

    with pytest.raises(ChallengeNotFoundError):
        ledger.process_for_week(orphan, 1013, USER_ID, "🍅")


def test_update_recalculates_points(seeded, ledger, repo):
    ledger.process(1014, USER_ID, "🍅", WEEK1_THREAD_ID)

    assert ledger.update(1014, "🍅 🍅 :star:") is True

    stored = repo.get_message_log(1014)
    assert stored.pomodoro_points == 50
    assert stored.bonus_points == 5
    assert stored.week_id == seeded.week1.id


def test_update_untracked_message_returns_false(seeded, ledger, repo):
    assert ledger.update(1015, "🍅") is False
    assert repo.get_message_log(1015) is None


def test_update_with_inactive_challenge_returns_false(seeded, ledger, repo):
    ledger.process(1016, USER_ID, "🍅", WEEK1_THREAD_ID)
    repo.set_challenge_active(seeded.challenge.id, False)

    assert ledger.update(1016, "🍅 🍅 🍅") is False
    assert repo.get_message_log(1016).pomodoro_points == 25


def test_delete_removes_row(seeded, ledger, repo):
    ledger.process(1017, USER_ID, "🍅", WEEK1_THREAD_ID)

    assert ledger.delete(1017) is True
    assert repo.get_message_log(1017) is None
    assert ledger.delete(1017) is False


def test_deleted_message_can_be_booked_again(seeded, ledger, repo):
    ledger.process(1018, USER_ID, "🍅", WEEK1_THREAD_ID)
    ledger.delete(1018)

    result = ledger.process(1018, USER_ID, "🍅 🍅", WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.PROCESSED
    assert repo.get_message_log(1018).pomodoro_points == 50


def test_lost_insert_race_reports_already_processed(seeded, ledger, repo, mocker):
    ledger.process(1019, USER_ID, "🍅", WEEK1_THREAD_ID)
    real_get = repo.get_message_log
    mocker.patch.object(
        repo, "get_message_log", side_effect=[None, real_get(1019)]
    )

    result = ledger.process(1019, USER_ID, "🍅 🍅", WEEK1_THREAD_ID)

    assert result.status == ProcessingStatus.ALREADY_PROCESSED
    assert result.message_log.pomodoro_points == 25
