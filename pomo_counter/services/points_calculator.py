"""Points calculator.

Resolves detected emoji tokens against the catalog and books their point
values per category:
- Pomodoro -> pomodoro total
- Bonus -> bonus total
- Goal -> goal total
- Reward -> nothing (rewards are assigned, never earned)
"""

from collections.abc import Iterable

from pomo_counter.domain.models import (
    Emoji,
    EmojiCategory,
    EmojiDetectionResult,
    PointsBreakdown,
)
from pomo_counter.services.emoji_detector import canonicalize


class EmojiIndex:
    """Active catalog rows keyed by canonical emoji key.

    Exact matches are a subset of canonical matches, so one lookup covers
    both. Challenge-scoped rows win over server-wide rows with the same key.
    """

    def __init__(self, emojis: Iterable[Emoji]) -> None:
        ordered = sorted(
            (emoji for emoji in emojis if emoji.is_active),
            key=lambda emoji: emoji.challenge_id is None,
        )
        self._by_key: dict[str, Emoji] = {}
        for emoji in ordered:
            key = canonicalize(emoji.emoji_code)
            if key:
                self._by_key.setdefault(key, emoji)

    def resolve(self, token: str) -> Emoji | None:
        """Find the catalog row for a token in any surface form."""
        return self._by_key.get(canonicalize(token))

    def __len__(self) -> int:
        return len(self._by_key)


def calculate_points(
    detection: EmojiDetectionResult, emojis: Iterable[Emoji] | EmojiIndex
) -> PointsBreakdown:
    """Sum catalog points for every detected token.

    Args:
        detection: Tokens detected in a message
        emojis: Catalog rows visible at the message's scope

    Returns:
        Per-category totals and the number of resolved tokens

    Example:
        >>> breakdown = calculate_points(detect_emojis("🍅 :star:"), catalog)
        >>> breakdown.pomodoro_points, breakdown.bonus_points
        (25, 5)
    """
    index = emojis if isinstance(emojis, EmojiIndex) else EmojiIndex(emojis)

    pomodoro = bonus = goal = resolved = 0
    for token in detection.all_emojis:
        match = index.resolve(token)
        if match is None:
            continue

        resolved += 1
        if match.category == EmojiCategory.POMODORO:
            pomodoro += match.point_value
        elif match.category == EmojiCategory.BONUS:
            bonus += match.point_value
        elif match.category == EmojiCategory.GOAL:
            goal += match.point_value

    return PointsBreakdown(
        pomodoro_points=pomodoro,
        bonus_points=bonus,
        goal_points=goal,
        resolved_token_count=resolved,
    )


def is_goal_achieved(pomodoro_points: int, bonus_points: int, goal_points: int) -> bool:
    """Goal rule: pomodoro and bonus points combined reach the declared goal.

    The comparison is inclusive, so a zero goal is always met.

    Example:
        >>> is_goal_achieved(20, 5, 25)
        True
    """
    return pomodoro_points + bonus_points >= goal_points
