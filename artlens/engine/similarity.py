"""Rule-based keyword similarity between a reference keyword set and a candidate's tags."""

import math
import re

from pydantic import BaseModel, Field

MAX_MATCHED_KEYWORDS = 10
PARTIAL_MATCH_WEIGHT = 0.5
CONFIDENCE_WEIGHT = 0.3

_NON_WORD = re.compile(r"[^\w]+")


class SimilarityResult(BaseModel):
    total: float = 0.0
    keyword_match_percent: int = 0
    matched_keywords: list[str] = Field(default_factory=list)
    confidence: float = 0.0


def _tokens(keywords: list[str]) -> list[str]:
    """Lower-case, trim, strip non-word characters; drop empties. Duplicates are kept."""
    tokens = []
    for keyword in keywords:
        if not isinstance(keyword, str):
            continue
        token = _NON_WORD.sub("", keyword.strip().lower())
        if token:
            tokens.append(token)
    return tokens


def normalize_keywords(keywords: list[str]) -> list[str]:
    """Normalized tokens without duplicates (first occurrence kept). Used to build queries."""
    return list(dict.fromkeys(_tokens(keywords)))


def score_similarity(
    reference: list[str],
    candidate: list[str],
    confidence: float,
) -> SimilarityResult:
    """
    Score candidate keywords against reference keywords.

    exact: reference tokens (len > 1) present verbatim in the candidate.
    partial: other reference tokens (len > 3) that contain or are contained in a candidate token.
    total = min(1, (exact + 0.5 * partial) / max(|reference|, |candidate|) + 0.3 * confidence).
    matched_keywords lists exact matches first, then partial, capped at 10.
    Both lists are only normalized, not deduplicated, so a repeated reference token counts each time.
    """
    ref = _tokens(reference)
    cand = _tokens(candidate)
    if not ref or not cand:
        return SimilarityResult()

    cand_set = set(cand)
    exact = [t for t in ref if len(t) > 1 and t in cand_set]
    exact_set = set(exact)
    partial = [
        t
        for t in ref
        if t not in exact_set and len(t) > 3 and any(t in c or c in t for c in cand)
    ]

    weighted = len(exact) + PARTIAL_MATCH_WEIGHT * len(partial)
    # Half-up rounding; round() would send 12.5 to 12.
    keyword_match_percent = math.floor(100 * weighted / len(ref) + 0.5)
    base_score = weighted / max(len(ref), len(cand))
    total = min(1.0, base_score + CONFIDENCE_WEIGHT * confidence)

    return SimilarityResult(
        total=total,
        keyword_match_percent=keyword_match_percent,
        matched_keywords=(exact + partial)[:MAX_MATCHED_KEYWORDS],
        confidence=confidence,
    )
