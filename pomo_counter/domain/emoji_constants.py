"""Emoji catalog limits and detection patterns."""

import re
from typing import Final

MIN_POINT_VALUE: Final[int] = 1
"""Smallest point value a catalog emoji may carry."""

MAX_POINT_VALUE: Final[int] = 999
"""Largest point value a catalog emoji may carry."""

MAX_EMOJI_CODE_LENGTH: Final[int] = 255

CUSTOM_EMOJI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"<(?P<animated>a?):(?P<name>[^:<>\s]+):(?P<id>\d+)>"
)
"""Platform custom emoji tag: ``<:name:id>`` or animated ``<a:name:id>``.

The id must be numeric and the name non-empty.
"""

SHORTCODE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r":(?:[+-]1|[a-z0-9]*[a-z][a-z0-9_+-]*):"
)
"""Shortcode ``:name:``, lowercase with at least one letter, or ``:+1:``/``:-1:``.

Rejects colons in times and ratios (``12:30:45``, ``3:2:1``).
"""

VARIATION_SELECTOR_TEXT: Final[str] = "\uFE0E"
VARIATION_SELECTOR_EMOJI: Final[str] = "\uFE0F"
ZERO_WIDTH_JOINER: Final[str] = "\u200D"

_PICTOGRAPH: Final[str] = (
    "[\u231A\u231B\u23E9-\u23FA\u2600-\u27BF\u2B00-\u2BFF\U0001f000-\U0001faff]"
)
_SKIN_TONE: Final[str] = "[\U0001f3fb-\U0001f3ff]"
_GLYPH: Final[str] = f"{_PICTOGRAPH}[\uFE0E\uFE0F]?{_SKIN_TONE}?"

UNICODE_EMOJI_PATTERN: Final[re.Pattern[str]] = re.compile(
    f"{_GLYPH}(?:{ZERO_WIDTH_JOINER}{_GLYPH})*"
)
"""Native emoji glyph with optional variation selector, skin tone and ZWJ chain."""
