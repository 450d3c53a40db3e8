"""Generate leaderboard use case.

Builds the weekly leaderboard report, evaluates goals and assigns rewards.
Storage failures never escape: they become an ERROR report.
"""

import random
from time import perf_counter
from typing import Any

from pomo_counter.config.logging_config import get_logger
from pomo_counter.domain.exceptions import RepositoryError
from pomo_counter.domain.leaderboard_constants import (
    ERROR_CHALLENGE_NOT_FOUND,
    ERROR_GENERATION_FAILED,
    ERROR_TITLE,
    ERROR_WEEK_NOT_FOUND,
    LEADERBOARD_DESCRIPTION_TEMPLATE,
    LEADERBOARD_TITLE_TEMPLATE,
    NO_DATA_DESCRIPTION_TEMPLATE,
)
from pomo_counter.domain.models import (
    Challenge,
    EmojiCategory,
    LeaderboardReport,
    ReportKind,
    UserGoal,
    UserPointsAggregate,
    Week,
)
from pomo_counter.domain.protocols import RepositoryProtocol
from pomo_counter.observability.tracing import correlation_scope
from pomo_counter.services import leaderboard_builder
from pomo_counter.services.motivational_footer import select_footer
from pomo_counter.services.week_calendar import week_date_range

logger = get_logger(__name__)


def _error_report(week_id: int, message: str) -> LeaderboardReport:
    return LeaderboardReport(
        kind=ReportKind.ERROR,
        title=ERROR_TITLE,
        description=message,
        week_id=week_id,
        error=message,
    )


def _reward_pool(repository: RepositoryProtocol, challenge: Challenge) -> list[str]:
    codes = [
        emoji.emoji_code
        for emoji in repository.get_active_emojis(
            challenge.server_id, challenge.id, EmojiCategory.REWARD
        )
    ]
    return list(dict.fromkeys(codes))


def _build_report(
    repository: RepositoryProtocol,
    week: Week,
    challenge: Challenge,
    rng: random.Random,
) -> LeaderboardReport:
    assert week.id is not None
    week_start, week_end = week_date_range(challenge, week.week_number)
    title = LEADERBOARD_TITLE_TEMPLATE.format(week_number=week.week_number)
    base: dict[str, Any] = {
        "title": title,
        "week_id": week.id,
        "week_number": week.week_number,
        "challenge_id": challenge.id,
        "week_start": week_start,
        "week_end": week_end,
    }

    weekly = leaderboard_builder.index_by_user(
        repository.aggregate_user_points([week.id])
    )
    if not weekly:
        logger.info("leaderboard_no_data", week_id=week.id)
        return LeaderboardReport(
            kind=ReportKind.NO_DATA,
            description=NO_DATA_DESCRIPTION_TEMPLATE.format(
                theme=challenge.theme, quarter_number=challenge.quarter_number
            ),
            **base,
        )

    challenge_weeks = repository.get_challenge_weeks(week.challenge_id)
    included_week_ids = [
        w.id
        for w in challenge_weeks
        if w.id is not None and w.week_number <= week.week_number
    ]
    cumulative = leaderboard_builder.index_by_user(
        repository.aggregate_user_points(included_week_ids)
    )

    goal_week = next((w for w in challenge_weeks if w.is_goal_week), None)
    goal_week_goals: dict[int, UserGoal] = {}
    goal_week_points: dict[int, UserPointsAggregate] = {}
    if goal_week is not None and goal_week.id is not None and goal_week.id != week.id:
        goal_week_goals = {
            goal.user_id: goal for goal in repository.get_week_user_goals(goal_week.id)
        }
        goal_week_points = leaderboard_builder.index_by_user(
            repository.aggregate_user_points([goal_week.id])
        )

    existing_goals = {
        goal.user_id: goal for goal in repository.get_week_user_goals(week.id)
    }

    goal_targets = {
        user_id: leaderboard_builder.resolve_goal_target(
            existing_goals.get(user_id),
            weekly.get(user_id),
            goal_week_goals.get(user_id),
            goal_week_points.get(user_id),
        )
        for user_id in cumulative
    }

    entries = leaderboard_builder.build_entries(weekly, cumulative, goal_targets, {})
    achievers = [entry.user_id for entry in entries if entry.weekly_goal_achieved]
    rewards = leaderboard_builder.assign_rewards(
        achievers,
        {user_id: goal.reward_emoji for user_id, goal in existing_goals.items()},
        _reward_pool(repository, challenge),
        rng,
    )
    entries = [
        entry.model_copy(update={"reward_emoji": rewards.get(entry.user_id)})
        for entry in entries
    ]

    goals = [
        UserGoal(
            user_id=entry.user_id,
            week_id=week.id,
            goal_points=goal_targets[entry.user_id],
            actual_pomodoro_points=entry.weekly_pomodoro_points,
            actual_bonus_points=entry.weekly_bonus_points,
            is_achieved=entry.weekly_goal_achieved,
            reward_emoji=rewards.get(entry.user_id),
        )
        for entry in entries
    ]
    saved = repository.save_user_goals(goals)

    statistics = leaderboard_builder.compute_statistics(entries)
    logger.info(
        "leaderboard_goals_evaluated",
        week_id=week.id,
        goals_saved=saved,
        goals_achieved=statistics.goals_achieved,
        rewards_assigned=sum(1 for reward in rewards.values() if reward),
    )

    return LeaderboardReport(
        kind=ReportKind.DATA,
        description=LEADERBOARD_DESCRIPTION_TEMPLATE.format(
            theme=challenge.theme, quarter_number=challenge.quarter_number
        ),
        entries=entries,
        statistics=statistics,
        footer=select_footer(
            statistics.participant_count,
            statistics.weekly_points,
            statistics.goals_achieved,
        ),
        **base,
    )


def generate_leaderboard_use_case(
    repository: RepositoryProtocol,
    week_id: int,
    *,
    rng: random.Random | None = None,
    correlation_id: str | None = None,
) -> LeaderboardReport:
    """Generate the leaderboard report for a week.

    1. Resolve week and challenge (missing -> ERROR report)
    2. Sum ledger rows per user for the week and for all challenge weeks up to it
    3. No rows for the week -> NO_DATA report
    4. Evaluate weekly goals, draw rewards for new achievers, save all goal
       rows in one transaction
    5. Rank by weekly points (ties by user id), summarize, pick footer

    Args:
        repository: Repository protocol implementation
        week_id: Week to report on
        rng: Random generator for reward draws (default: unseeded)
        correlation_id: Correlation id to bind for the run

    Returns:
        LeaderboardReport of kind DATA, NO_DATA or ERROR

    Example:
        >>> report = generate_leaderboard_use_case(repo, 3, rng=random.Random(7))
        >>> report.kind
        <ReportKind.DATA: 'data'>
    """
    with correlation_scope(
        correlation_id, prefix="leaderboard"
    ) as bound_correlation_id:
        stage_start = perf_counter()
        report: LeaderboardReport | None = None
        try:
            week = repository.get_week(week_id)
            if week is None:
                logger.warning("leaderboard_week_not_found", week_id=week_id)
                report = _error_report(week_id, ERROR_WEEK_NOT_FOUND)
                return report

            challenge = repository.get_challenge(week.challenge_id)
            if challenge is None:
                logger.warning(
                    "leaderboard_challenge_not_found",
                    week_id=week_id,
                    challenge_id=week.challenge_id,
                )
                report = _error_report(week_id, ERROR_CHALLENGE_NOT_FOUND)
                return report

            report = _build_report(repository, week, challenge, rng or random.Random())
            return report
        except RepositoryError as exc:
            logger.error(
                "leaderboard_generation_failed",
                correlation_id=bound_correlation_id,
                week_id=week_id,
                error=str(exc),
            )
            report = _error_report(week_id, ERROR_GENERATION_FAILED)
            return report
        finally:
            if report is not None:
                logger.info(
                    "leaderboard_generated",
                    correlation_id=bound_correlation_id,
                    week_id=week_id,
                    kind=report.kind.value,
                    entries=len(report.entries),
                    duration_seconds=perf_counter() - stage_start,
                )
