"""Emoji detection and normalization service.

Handles:
- Custom platform emoji tags (<:name:id>, <a:name:id>)
- Shortcodes (:name:)
- Native glyphs, including variation selectors and ZWJ sequences
- Canonical lookup keys across surface forms
"""

from pomo_counter.config.logging_config import get_logger
from pomo_counter.domain.emoji_constants import (
    CUSTOM_EMOJI_PATTERN,
    MAX_POINT_VALUE,
    MIN_POINT_VALUE,
    SHORTCODE_PATTERN,
    UNICODE_EMOJI_PATTERN,
    VARIATION_SELECTOR_EMOJI,
    VARIATION_SELECTOR_TEXT,
)
from pomo_counter.domain.models import EmojiDetectionResult, EmojiFormat
from pomo_counter.services import emoji_table

logger = get_logger(__name__)


def detect_emojis(text: str | None) -> EmojiDetectionResult:
    """Find every emoji token in a message.

    Custom tags are removed before shortcode matching so ``<:fire:1>`` never
    also yields ``:fire:``.

    Args:
        text: Raw message text

    Returns:
        Tokens partitioned by surface form, one entry per occurrence

    Example:
        >>> result = detect_emojis("🍅🍅 done :tada: <:fire:123>")
        >>> result.total_count
        4
    """
    if not text or not text.strip():
        return EmojiDetectionResult()

    custom = [match.group(0) for match in CUSTOM_EMOJI_PATTERN.finditer(text)]
    without_custom = CUSTOM_EMOJI_PATTERN.sub(" ", text)
    shortcodes = SHORTCODE_PATTERN.findall(without_custom)
    glyphs = UNICODE_EMOJI_PATTERN.findall(text)

    result = EmojiDetectionResult(
        custom_emojis=custom,
        shortcode_emojis=shortcodes,
        unicode_emojis=glyphs,
    )
    logger.debug(
        "emojis_detected",
        custom=len(custom),
        shortcode=len(shortcodes),
        unicode=len(glyphs),
    )
    return result


def validate_emoji_format(emoji_code: str | None) -> EmojiFormat | None:
    """Classify a single emoji code by surface form.

    Args:
        emoji_code: Code as configured in the catalog

    Returns:
        The matching format, or None when the code is not an emoji

    Example:
        >>> validate_emoji_format("<a:spin:456>")
        <EmojiFormat.CUSTOM: 'custom'>
    """
    if not emoji_code or not emoji_code.strip():
        return None

    code = emoji_code.strip()
    if CUSTOM_EMOJI_PATTERN.fullmatch(code):
        return EmojiFormat.CUSTOM
    if SHORTCODE_PATTERN.fullmatch(code):
        return EmojiFormat.SHORTCODE
    if UNICODE_EMOJI_PATTERN.fullmatch(code):
        return EmojiFormat.UNICODE
    return None


def validate_point_value(point_value: int) -> bool:
    """Check a catalog point value is within the allowed range."""
    return MIN_POINT_VALUE <= point_value <= MAX_POINT_VALUE


def extract_custom_emoji_id(emoji_code: str) -> str:
    """Return the numeric id of a custom tag, or an empty string."""
    match = CUSTOM_EMOJI_PATTERN.fullmatch(emoji_code)
    return match.group("id") if match else ""


def extract_custom_emoji_name(emoji_code: str) -> str:
    """Return the name of a custom tag, or an empty string."""
    match = CUSTOM_EMOJI_PATTERN.fullmatch(emoji_code)
    return match.group("name") if match else ""


def is_animated_custom_emoji(emoji_code: str) -> bool:
    """Whether a custom tag is the animated ``<a:name:id>`` variant."""
    match = CUSTOM_EMOJI_PATTERN.fullmatch(emoji_code)
    return bool(match and match.group("animated"))


def _strip_variation_selectors(glyph: str) -> str:
    return glyph.replace(VARIATION_SELECTOR_EMOJI, "").replace(
        VARIATION_SELECTOR_TEXT, ""
    )


def canonicalize(emoji_code: str | None) -> str:
    """Map any surface form of an emoji to its canonical lookup key.

    Rules:
    - native glyph -> primary shortcode when known, else the bare glyph
    - shortcode -> primary shortcode of its alias group when known
    - custom tag -> ``<:custom:id>``; the id is the identity, so renamed and
      animated variants of one custom emoji share a key

    Args:
        emoji_code: Token from a message or code from the catalog

    Returns:
        Canonical key, empty string for blank input

    Example:
        >>> canonicalize("🍅")
        ':tomato:'
        >>> canonicalize(":+1:")
        ':thumbsup:'
        >>> canonicalize("<a:fire:123>")
        '<:custom:123>'
    """
    if not emoji_code or not emoji_code.strip():
        return ""

    code = emoji_code.strip()

    custom = CUSTOM_EMOJI_PATTERN.fullmatch(code)
    if custom:
        return f"<:custom:{custom.group('id')}>"

    if SHORTCODE_PATTERN.fullmatch(code):
        return emoji_table.primary_shortcode(code) or code

    bare = _strip_variation_selectors(code)
    return emoji_table.shortcode_for(bare) or bare


def are_emojis_equivalent(first: str | None, second: str | None) -> bool:
    """Whether two codes denote the same emoji regardless of surface form.

    Example:
        >>> are_emojis_equivalent(":tomato:", "🍅")
        True
    """
    if not first or not second:
        return False
    if first == second:
        return True
    first_key = canonicalize(first)
    return bool(first_key) and first_key == canonicalize(second)
