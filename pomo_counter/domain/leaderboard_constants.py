"""Leaderboard presentation constants.

Footer tiers are checked from most to least celebratory. A tier is selected
when all three minimums are met; the default line applies otherwise.
"""

from typing import Final, NamedTuple


class FooterTier(NamedTuple):
    """Minimum activity required for a footer line."""

    name: str
    min_participants: int
    min_weekly_points: int
    min_goals_achieved: int
    message: str


FOOTER_TIERS: Final[tuple[FooterTier, ...]] = (
    FooterTier(
        name="legendary",
        min_participants=10,
        min_weekly_points=1000,
        min_goals_achieved=5,
        message="🏆 Legendary week! This group is unstoppable. Keep the streak alive! 🔥",
    ),
    FooterTier(
        name="on_fire",
        min_participants=5,
        min_weekly_points=500,
        min_goals_achieved=3,
        message="🔥 What a week! The tomatoes are piling up. 🍅",
    ),
    FooterTier(
        name="strong",
        min_participants=3,
        min_weekly_points=200,
        min_goals_achieved=1,
        message="💪 Strong work everyone, goals are getting crushed!",
    ),
    FooterTier(
        name="steady",
        min_participants=1,
        min_weekly_points=50,
        min_goals_achieved=0,
        message="📚 Steady progress! Every pomodoro counts.",
    ),
)

DEFAULT_FOOTER: Final[str] = "🍅 A new week is a fresh start. Let's get focusing!"

LEADERBOARD_TITLE_TEMPLATE: Final[str] = "🏆 Challenge Leaderboard - Week {week_number}"
LEADERBOARD_DESCRIPTION_TEMPLATE: Final[str] = (
    "{theme} - Q{quarter_number}\n"
    "Ranked by this week's points with challenge totals"
)
NO_DATA_DESCRIPTION_TEMPLATE: Final[str] = (
    "{theme} - Q{quarter_number}\n\nNo data found for this week."
)

ERROR_TITLE: Final[str] = "❌ Error"
ERROR_WEEK_NOT_FOUND: Final[str] = "Week not found"
ERROR_CHALLENGE_NOT_FOUND: Final[str] = "Challenge not found"
ERROR_GENERATION_FAILED: Final[str] = "Failed to generate leaderboard"

NO_REWARD: Final[str] = ""
"""Reward assigned to an achiever when the reward pool is empty."""

RANK_BADGES: Final[dict[int, str]] = {1: "🥇", 2: "🥈", 3: "🥉"}
HONORABLE_BADGE: Final[str] = "🏅"
HONORABLE_RANK_LIMIT: Final[int] = 10
"""Ranks 4..10 get the honorable badge; lower ranks get the plain marker."""
PLAIN_RANK_BADGE: Final[str] = "▫️"
