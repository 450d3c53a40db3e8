"""Leaderboard assembly from per-user ledger aggregates.

Pure functions: no storage access, randomness only through the injected
generator.
"""

import random
from collections.abc import Iterable, Mapping, Sequence

from pomo_counter.domain.leaderboard_constants import (
    HONORABLE_BADGE,
    HONORABLE_RANK_LIMIT,
    NO_REWARD,
    PLAIN_RANK_BADGE,
    RANK_BADGES,
)
from pomo_counter.domain.models import (
    LeaderboardEntry,
    LeaderboardStatistics,
    UserGoal,
    UserPointsAggregate,
)
from pomo_counter.services.points_calculator import is_goal_achieved


def index_by_user(
    aggregates: Iterable[UserPointsAggregate],
) -> dict[int, UserPointsAggregate]:
    """Key aggregates by user id."""
    return {aggregate.user_id: aggregate for aggregate in aggregates}


def resolve_goal_target(
    week_goal: UserGoal | None,
    weekly: UserPointsAggregate | None,
    goal_week_goal: UserGoal | None = None,
    goal_week_points: UserPointsAggregate | None = None,
) -> int:
    """Pick a user's goal target for a week.

    Order: the stored goal row for the week, goal points logged this week,
    the stored goal-collection row, goal points logged in the goal-collection
    week. Zero targets fall through to the next source.

    Example:
        >>> resolve_goal_target(None, UserPointsAggregate(user_id=1, goal_points=30))
        30
    """
    candidates = (
        week_goal.goal_points if week_goal else 0,
        weekly.goal_points if weekly else 0,
        goal_week_goal.goal_points if goal_week_goal else 0,
        goal_week_points.goal_points if goal_week_points else 0,
    )
    for target in candidates:
        if target > 0:
            return target
    return 0


def assign_rewards(
    achievers: Iterable[int],
    existing_rewards: Mapping[int, str | None],
    reward_pool: Sequence[str],
    rng: random.Random,
) -> dict[int, str]:
    """Draw a reward for each goal achiever that does not hold one yet.

    Achievers are visited in ascending user id so a seeded generator gives
    reproducible draws. An empty pool yields empty strings.

    Args:
        achievers: User ids that reached their weekly goal
        existing_rewards: Rewards already stored for the week
        reward_pool: Active reward emoji codes
        rng: Random generator

    Returns:
        Reward per achiever
    """
    rewards: dict[int, str] = {}
    for user_id in sorted(set(achievers)):
        current = existing_rewards.get(user_id)
        if current:
            rewards[user_id] = current
        elif reward_pool:
            rewards[user_id] = rng.choice(list(reward_pool))
        else:
            rewards[user_id] = NO_REWARD
    return rewards


def rank_entries(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Order by weekly points descending (ties by ascending user id).

    Ranks are positions 1..N; equal points still get distinct ranks.
    """
    ordered = sorted(entries, key=lambda entry: (-entry.weekly_points, entry.user_id))
    return [
        entry.model_copy(update={"rank": position})
        for position, entry in enumerate(ordered, start=1)
    ]


def build_entries(
    weekly: Mapping[int, UserPointsAggregate],
    cumulative: Mapping[int, UserPointsAggregate],
    goal_targets: Mapping[int, int],
    rewards: Mapping[int, str],
) -> list[LeaderboardEntry]:
    """Combine weekly and cumulative sums into ranked entries.

    Participants are all users with cumulative rows; users without activity
    this week appear with zero weekly points. ``weekly_goal_points`` carries
    the resolved goal target, not just goal points logged this week.
    """
    entries: list[LeaderboardEntry] = []
    for user_id, total in cumulative.items():
        week = weekly.get(user_id) or UserPointsAggregate(user_id=user_id)
        entries.append(
            LeaderboardEntry(
                rank=0,
                user_id=user_id,
                weekly_pomodoro_points=week.pomodoro_points,
                weekly_bonus_points=week.bonus_points,
                weekly_goal_points=goal_targets.get(user_id, 0),
                weekly_message_count=week.message_count,
                weekly_goal_achieved=is_goal_achieved(
                    week.pomodoro_points,
                    week.bonus_points,
                    goal_targets.get(user_id, 0),
                ),
                total_pomodoro_points=total.pomodoro_points,
                total_bonus_points=total.bonus_points,
                total_goal_points=total.goal_points,
                total_message_count=total.message_count,
                total_goal_achieved=is_goal_achieved(
                    total.pomodoro_points, total.bonus_points, total.goal_points
                ),
                reward_emoji=rewards.get(user_id),
            )
        )
    return rank_entries(entries)


def compute_statistics(entries: Sequence[LeaderboardEntry]) -> LeaderboardStatistics:
    """Summarize a ranked leaderboard."""
    return LeaderboardStatistics(
        participant_count=len(entries),
        total_points=sum(entry.total_points for entry in entries),
        weekly_points=sum(entry.weekly_points for entry in entries),
        total_messages=sum(entry.total_message_count for entry in entries),
        weekly_messages=sum(entry.weekly_message_count for entry in entries),
        goals_achieved=sum(1 for entry in entries if entry.weekly_goal_achieved),
    )


def rank_badge(rank: int) -> str:
    """Display marker for a rank: medals for the podium, then badges."""
    if rank in RANK_BADGES:
        return RANK_BADGES[rank]
    if rank <= HONORABLE_RANK_LIMIT:
        return HONORABLE_BADGE
    return PLAIN_RANK_BADGE
