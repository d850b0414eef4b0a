"""Common-signal extraction: keywords shared by at least half of the images in a batch."""

from collections import Counter

from pydantic import BaseModel, Field

from artlens.ai.schema import ImageTagSet

MAX_COMMON_KEYWORDS = 20
DEFAULT_KEYWORDS_PER_IMAGE = 10.0


class CommonSignal(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    frequency: dict[str, int] = Field(default_factory=dict)
    confidence: float = 0.0


def extract_common_signal(
    tag_sets: list[ImageTagSet],
    keywords_per_image: float = DEFAULT_KEYWORDS_PER_IMAGE,
) -> CommonSignal:
    """
    Vote tokens (keywords, colors, style, mood) across images.

    A token qualifies when it occurs at least max(1, floor(n / 2)) times and is longer than
    one character. Qualifying tokens are ordered by descending frequency, first-seen order
    on ties, and capped at 20.

    confidence is a keyword-density heuristic, min(1, total tokens / (n * keywords_per_image)),
    not a probability. keywords_per_image is an assumed average, not a measured one.
    """
    if not tag_sets:
        return CommonSignal()

    frequency: Counter[str] = Counter()
    for tag_set in tag_sets:
        for token in tag_set.tokens():
            normalized = token.strip().lower()
            if normalized:
                frequency[normalized] += 1

    image_count = len(tag_sets)
    threshold = max(1, image_count // 2)
    # Counter preserves insertion order and sorted() is stable, so ties keep first-seen order.
    qualifying = [k for k, count in frequency.items() if count >= threshold and len(k) > 1]
    qualifying.sort(key=lambda k: frequency[k], reverse=True)

    total = sum(frequency.values())
    confidence = min(1.0, total / (image_count * keywords_per_image)) if keywords_per_image > 0 else 0.0

    return CommonSignal(
        keywords=qualifying[:MAX_COMMON_KEYWORDS],
        frequency=dict(frequency),
        confidence=confidence,
    )
