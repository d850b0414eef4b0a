"""Access tiers by image count. Pure functions, no I/O."""

from pydantic import BaseModel


class Tier(BaseModel):
    """An access bracket: image ceiling and fixed price (USD cents)."""

    model_config = {"frozen": True}

    name: str
    max_images: int
    price_cents: int
    description: str


FREE_TIER = Tier(
    name="Free Tier",
    max_images=3,
    price_cents=0,
    description="Analyze up to 3 images for free",
)
STANDARD_TIER = Tier(
    name="Standard Pack",
    max_images=10,
    price_cents=500,
    description="Analyze 4-10 images ($5)",
)
PREMIUM_TIER = Tier(
    name="Premium Pack",
    max_images=50,
    price_cents=1000,
    description="Analyze 11-50 images ($10)",
)

TIERS: tuple[Tier, ...] = (FREE_TIER, STANDARD_TIER, PREMIUM_TIER)


def calculate_tier(image_count: int) -> Tier:
    """Map an image count to its tier. Total: the 50-image cap is enforced by callers."""
    if image_count <= FREE_TIER.max_images:
        return FREE_TIER
    if image_count <= STANDARD_TIER.max_images:
        return STANDARD_TIER
    return PREMIUM_TIER
