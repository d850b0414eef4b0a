"""Tier calculator: brackets, boundaries and monotonic pricing."""

import pytest

from artlens.engine.tiers import FREE_TIER, PREMIUM_TIER, STANDARD_TIER, TIERS, calculate_tier

pytestmark = [pytest.mark.fast]


@pytest.mark.parametrize(
    "count,expected",
    [
        (1, FREE_TIER),
        (3, FREE_TIER),
        (4, STANDARD_TIER),
        (10, STANDARD_TIER),
        (11, PREMIUM_TIER),
        (50, PREMIUM_TIER),
    ],
)
def test_calculate_tier_boundaries(count, expected):
    assert calculate_tier(count) == expected


def test_calculate_tier_is_total_beyond_the_cap():
    """The calculator never raises; the 50-image cap belongs to the orchestrator."""
    assert calculate_tier(51) == PREMIUM_TIER
    assert calculate_tier(0) == FREE_TIER


def test_price_is_monotonic_in_image_count():
    prices = [calculate_tier(c).price_cents for c in range(0, 60)]
    assert prices == sorted(prices)


def test_tier_table_matches_published_prices():
    assert [(t.name, t.max_images, t.price_cents) for t in TIERS] == [
        ("Free Tier", 3, 0),
        ("Standard Pack", 10, 500),
        ("Premium Pack", 50, 1000),
    ]


def test_tier_is_immutable():
    with pytest.raises(Exception):
        FREE_TIER.price_cents = 100  # type: ignore[misc]
