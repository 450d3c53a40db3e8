"""Static glyph <-> shortcode table used for emoji canonicalization.

Each row maps one native glyph to its shortcode names. The first name is the
primary shortcode and becomes the canonical key; the remaining names are
aliases that canonicalize to the primary.
"""

from types import MappingProxyType
from typing import Final

_ROWS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    # Study and focus
    ("🍅", ("tomato",)),
    ("⏲", ("timer", "timer_clock")),
    ("⏰", ("alarm_clock",)),
    ("⏱", ("stopwatch",)),
    ("⌛", ("hourglass",)),
    ("⏳", ("hourglass_flowing_sand",)),
    ("📚", ("books",)),
    ("📖", ("book", "open_book")),
    ("📕", ("closed_book",)),
    ("📓", ("notebook",)),
    ("📝", ("pencil", "memo")),
    ("✏", ("pencil2",)),
    ("🖊", ("pen", "pen_ballpoint")),
    ("💻", ("computer",)),
    ("🧠", ("brain",)),
    ("🎓", ("mortar_board",)),
    ("🏫", ("school",)),
    ("📅", ("date",)),
    ("📆", ("calendar",)),
    ("📊", ("bar_chart",)),
    ("📈", ("chart_with_upwards_trend",)),
    ("💡", ("bulb",)),
    ("🔬", ("microscope",)),
    ("🧪", ("test_tube",)),
    ("☕", ("coffee",)),
    ("🍵", ("tea",)),
    # Goals and effort
    ("🎯", ("dart", "target", "direct_hit")),
    ("🔥", ("fire", "flame")),
    ("💪", ("muscle", "flexed_biceps")),
    ("🚀", ("rocket",)),
    ("⚡", ("zap", "high_voltage")),
    ("✨", ("sparkles",)),
    ("💯", ("100",)),
    ("✅", ("white_check_mark",)),
    ("✔", ("heavy_check_mark",)),
    ("☑", ("ballot_box_with_check",)),
    ("🏁", ("checkered_flag",)),
    ("📌", ("pushpin",)),
    ("🧗", ("person_climbing",)),
    ("🏃", ("runner", "running")),
    # Bonus and celebration
    ("⭐", ("star",)),
    ("🌟", ("star2", "glowing_star")),
    ("💫", ("dizzy",)),
    ("🎉", ("tada", "party_popper")),
    ("🎊", ("confetti_ball",)),
    ("🥳", ("partying_face",)),
    ("👏", ("clap",)),
    ("🙌", ("raised_hands",)),
    ("👍", ("thumbsup", "+1", "thumbs_up")),
    ("👎", ("thumbsdown", "-1", "thumbs_down")),
    ("❤", ("heart", "red_heart")),
    ("💚", ("green_heart",)),
    ("💙", ("blue_heart",)),
    ("💜", ("purple_heart",)),
    ("🧡", ("orange_heart",)),
    ("💛", ("yellow_heart",)),
    ("😊", ("blush",)),
    ("😄", ("smile",)),
    ("😃", ("smiley",)),
    ("😎", ("sunglasses",)),
    ("🤓", ("nerd", "nerd_face")),
    ("😴", ("sleeping",)),
    ("🤯", ("exploding_head",)),
    # Rewards
    ("🏆", ("trophy",)),
    ("🥇", ("first_place", "first_place_medal")),
    ("🥈", ("second_place", "second_place_medal")),
    ("🥉", ("third_place", "third_place_medal")),
    ("🏅", ("medal", "sports_medal")),
    ("🎖", ("military_medal",)),
    ("👑", ("crown",)),
    ("💎", ("gem",)),
    ("🎁", ("gift",)),
    ("🍰", ("cake",)),
    ("🍩", ("doughnut",)),
    ("🍪", ("cookie",)),
    ("🍫", ("chocolate_bar",)),
    ("🍕", ("pizza",)),
    ("🍦", ("icecream",)),
    ("🦄", ("unicorn",)),
    ("🐱", ("cat",)),
    ("🐶", ("dog",)),
    ("🌈", ("rainbow",)),
    ("🌻", ("sunflower",)),
    ("🌱", ("seedling",)),
    ("🍀", ("four_leaf_clover",)),
    ("☀", ("sunny",)),
    ("🌙", ("crescent_moon",)),
)


def _build_glyph_to_shortcode() -> dict[str, str]:
    return {glyph: f":{names[0]}:" for glyph, names in _ROWS}


def _build_shortcode_to_glyph() -> dict[str, str]:
    mapping: dict[str, str] = {}
    for glyph, names in _ROWS:
        for name in names:
            mapping[f":{name}:"] = glyph
    return mapping


GLYPH_TO_SHORTCODE: Final = MappingProxyType(_build_glyph_to_shortcode())
"""Native glyph (without variation selector) -> primary shortcode."""

SHORTCODE_TO_GLYPH: Final = MappingProxyType(_build_shortcode_to_glyph())
"""Any known shortcode (primary or alias) -> native glyph."""


def shortcode_for(glyph: str) -> str | None:
    """Return the primary shortcode for a glyph, or None when unknown."""
    return GLYPH_TO_SHORTCODE.get(glyph)


def glyph_for(shortcode: str) -> str | None:
    """Return the native glyph for a shortcode, or None when unknown.

    Example:
        >>> glyph_for(":tomato:")
        '🍅'
    """
    return SHORTCODE_TO_GLYPH.get(shortcode)


def primary_shortcode(shortcode: str) -> str | None:
    """Resolve an alias shortcode to the primary name of its group.

    Example:
        >>> primary_shortcode(":+1:")
        ':thumbsup:'
    """
    glyph = SHORTCODE_TO_GLYPH.get(shortcode)
    if glyph is None:
        return None
    return GLYPH_TO_SHORTCODE[glyph]
