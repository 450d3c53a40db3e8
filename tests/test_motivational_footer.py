"""Tests for motivational footer selection."""

import pytest

from pomo_counter.domain.leaderboard_constants import DEFAULT_FOOTER, FOOTER_TIERS
from pomo_counter.services.motivational_footer import select_footer, select_footer_tier

TIER_MESSAGES = {tier.name: tier.message for tier in FOOTER_TIERS}


@pytest.mark.parametrize(
    ("participants", "points", "goals", "tier_name"),
    [
        (10, 1000, 5, "legendary"),
        (9, 1000, 5, "on_fire"),
        (5, 500, 3, "on_fire"),
        (5, 499, 3, "strong"),
        (3, 200, 1, "strong"),
        (3, 200, 0, "steady"),
        (1, 50, 0, "steady"),
        (1, 49, 0, None),
        (0, 0, 0, None),
    ],
)
def test_tier_thresholds(participants, points, goals, tier_name):
    tier = select_footer_tier(participants, points, goals)

    assert (tier.name if tier else None) == tier_name


def test_footer_text():
    assert select_footer(10, 1000, 5) == TIER_MESSAGES["legendary"]
    assert select_footer(0, 0, 0) == DEFAULT_FOOTER


def test_footer_is_deterministic():
    assert select_footer(4, 300, 2) == select_footer(4, 300, 2)
