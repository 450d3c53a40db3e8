"""Motivational footer selection for leaderboards."""

from pomo_counter.domain.leaderboard_constants import (
    DEFAULT_FOOTER,
    FOOTER_TIERS,
    FooterTier,
)


def select_footer_tier(
    participants: int, weekly_points: int, goals_achieved: int
) -> FooterTier | None:
    """Return the most celebratory tier whose minimums are all met."""
    for tier in FOOTER_TIERS:
        if (
            participants >= tier.min_participants
            and weekly_points >= tier.min_weekly_points
            and goals_achieved >= tier.min_goals_achieved
        ):
            return tier
    return None


def select_footer(participants: int, weekly_points: int, goals_achieved: int) -> str:
    """Pick the closing line for a leaderboard.

    Args:
        participants: Number of ranked users
        weekly_points: Pomodoro plus bonus points earned this week by everyone
        goals_achieved: Users who reached their weekly goal

    Returns:
        Footer text; identical inputs always give the same line

    Example:
        >>> select_footer(0, 0, 0) == DEFAULT_FOOTER
        True
    """
    tier = select_footer_tier(participants, weekly_points, goals_achieved)
    return tier.message if tier else DEFAULT_FOOTER
