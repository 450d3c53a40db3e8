"""User goal use cases.

Goals are declared with goal-category emoji, normally in the goal-collection
week (week 0). Collection snapshots those declarations into goal rows; an
administrator can also set a goal retroactively for any week.
"""

from pomo_counter.config.logging_config import get_logger
from pomo_counter.domain.exceptions import (
    ChallengeNotFoundError,
    ValidationError,
    WeekNotFoundError,
)
from pomo_counter.domain.models import GoalCollectionResult, UserGoal
from pomo_counter.domain.protocols import RepositoryProtocol
from pomo_counter.observability.tracing import correlation_scope
from pomo_counter.services.points_calculator import is_goal_achieved

logger = get_logger(__name__)


def collect_goals_use_case(
    repository: RepositoryProtocol,
    challenge_id: int,
    *,
    correlation_id: str | None = None,
) -> GoalCollectionResult:
    """Store each user's declared goal from the goal-collection week.

    Users whose goal-week messages carry no goal points are skipped. Existing
    rows keep their reward.

    Raises:
        ChallengeNotFoundError: If the challenge does not exist
        ValidationError: If the challenge has no goal-collection week
        RepositoryError: On storage errors
    """
    with correlation_scope(correlation_id, prefix="goals") as bound_correlation_id:
        if repository.get_challenge(challenge_id) is None:
            raise ChallengeNotFoundError(challenge_id)

        goal_week = next(
            (w for w in repository.get_challenge_weeks(challenge_id) if w.is_goal_week),
            None,
        )
        if goal_week is None or goal_week.id is None:
            raise ValidationError(
                f"Challenge {challenge_id} has no goal-collection week"
            )

        existing = {
            goal.user_id: goal for goal in repository.get_week_user_goals(goal_week.id)
        }
        goals = [
            UserGoal(
                user_id=aggregate.user_id,
                week_id=goal_week.id,
                goal_points=aggregate.goal_points,
                actual_pomodoro_points=aggregate.pomodoro_points,
                actual_bonus_points=aggregate.bonus_points,
                is_achieved=is_goal_achieved(
                    aggregate.pomodoro_points,
                    aggregate.bonus_points,
                    aggregate.goal_points,
                ),
                reward_emoji=(
                    existing[aggregate.user_id].reward_emoji
                    if aggregate.user_id in existing
                    else None
                ),
            )
            for aggregate in repository.aggregate_user_points([goal_week.id])
            if aggregate.goal_points > 0
        ]
        saved = repository.save_user_goals(goals)

        result = GoalCollectionResult(
            challenge_id=challenge_id,
            goal_week_id=goal_week.id,
            goals_collected=saved,
            total_goal_points=sum(goal.goal_points for goal in goals),
        )
        logger.info(
            "goals_collected",
            correlation_id=bound_correlation_id,
            challenge_id=challenge_id,
            goal_week_id=goal_week.id,
            goals_collected=result.goals_collected,
            total_goal_points=result.total_goal_points,
        )
        return result


def set_user_goal_use_case(
    repository: RepositoryProtocol,
    user_id: int,
    week_id: int,
    goal_points: int,
) -> UserGoal:
    """Set or replace a user's goal for a week after the fact.

    Actuals are recomputed from the ledger so the achieved flag reflects the
    new target immediately. An existing reward is kept only while the goal
    stays achieved.

    Raises:
        ValidationError: If goal_points is negative
        WeekNotFoundError: If the week does not exist
        RepositoryError: On storage errors

    Example:
        >>> goal = set_user_goal_use_case(repo, user_id=42, week_id=3, goal_points=50)
        >>> goal.is_achieved
        False
    """
    if goal_points < 0:
        raise ValidationError(f"Goal points must be non-negative, got {goal_points}")

    if repository.get_week(week_id) is None:
        raise WeekNotFoundError(week_id)

    aggregates = repository.aggregate_user_points([week_id])
    actual = next((a for a in aggregates if a.user_id == user_id), None)
    pomodoro = actual.pomodoro_points if actual else 0
    bonus = actual.bonus_points if actual else 0
    achieved = is_goal_achieved(pomodoro, bonus, goal_points)

    previous = repository.get_user_goal(user_id, week_id)
    goal = UserGoal(
        user_id=user_id,
        week_id=week_id,
        goal_points=goal_points,
        actual_pomodoro_points=pomodoro,
        actual_bonus_points=bonus,
        is_achieved=achieved,
        reward_emoji=previous.reward_emoji if previous and achieved else None,
    )
    repository.save_user_goals([goal])

    logger.info(
        "user_goal_set",
        user_id=user_id,
        week_id=week_id,
        goal_points=goal_points,
        is_achieved=achieved,
    )
    return goal
