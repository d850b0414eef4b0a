"""Candidate aggregation: fan out to sources, normalize, exclude, score, rank."""

import asyncio
import logging
from typing import Iterable

from artlens.engine.candidates import CandidateArtwork, normalize_record
from artlens.engine.exclusion import DEFAULT_RULES, ExclusionRule, apply_exclusions
from artlens.engine.similarity import normalize_keywords, score_similarity
from artlens.sources.base import SourceAdapter

_log = logging.getLogger(__name__)


class CandidateAggregator:
    """
    Merge candidates from many sources into one ranked list.

    Each source call has its own timeout; a failing or slow source contributes nothing and
    never aborts the aggregation. Within-source order is kept until the final stable sort.
    """

    def __init__(
        self,
        sources: Iterable[SourceAdapter],
        *,
        rules: Iterable[ExclusionRule] = DEFAULT_RULES,
        source_timeout_seconds: float = 8.0,
        per_source_limit: int = 10,
    ) -> None:
        self._sources = list(sources)
        self._rules = list(rules)
        self._source_timeout = source_timeout_seconds
        self._per_source_limit = per_source_limit

    @property
    def sources(self) -> list[SourceAdapter]:
        return list(self._sources)

    async def _search_source(self, source: SourceAdapter, keywords: list[str]) -> list[CandidateArtwork]:
        try:
            records = await asyncio.wait_for(
                source.search(keywords, self._per_source_limit),
                timeout=self._source_timeout,
            )
        except asyncio.TimeoutError:
            _log.warning("Source %s timed out after %.1fs", source.source_id, self._source_timeout)
            return []
        except Exception:
            _log.exception("Source %s failed; continuing without it", source.source_id)
            return []

        candidates = []
        for position, record in enumerate(records or []):
            if not isinstance(record, dict):
                _log.debug("Source %s returned a non-dict record at %s; skipped", source.source_id, position)
                continue
            candidates.append(
                normalize_record(record, source.source_id, is_internal=source.is_internal, position=position)
            )
        _log.debug("Source %s: %s candidates", source.source_id, len(candidates))
        return candidates

    async def collect(self, keywords: list[str]) -> list[CandidateArtwork]:
        """Fan out to all sources concurrently; merge in source order, apply exclusions, then dedupe."""
        if not self._sources:
            return []
        per_source = await asyncio.gather(*(self._search_source(s, keywords) for s in self._sources))

        merged = apply_exclusions([c for candidates in per_source for c in candidates], self._rules)

        unique: list[CandidateArtwork] = []
        seen_ids: set[str] = set()
        seen_urls: set[str] = set()
        for candidate in merged:
            url = candidate.best_image_url
            if candidate.id in seen_ids or (url is not None and url in seen_urls):
                continue
            seen_ids.add(candidate.id)
            if url is not None:
                seen_urls.add(url)
            unique.append(candidate)
        return unique

    @staticmethod
    def rank(
        candidates: list[CandidateArtwork],
        keywords: list[str],
        confidence: float,
    ) -> list[CandidateArtwork]:
        """Attach similarity to each candidate and sort by score; internal first on equal scores."""
        scored = [
            c.model_copy(update={"similarity": score_similarity(keywords, c.keywords, confidence)})
            for c in candidates
        ]
        # sorted() is stable: equal keys keep merge order.
        return sorted(scored, key=lambda c: (-c.similarity.total, not c.is_internal))

    async def aggregate(
        self,
        keywords: list[str],
        limit: int,
        confidence: float = 0.0,
    ) -> list[CandidateArtwork]:
        """Ranked, deduplicated, filtered candidates, truncated to limit."""
        if not normalize_keywords(keywords) or limit <= 0:
            return []
        candidates = await self.collect(keywords)
        return self.rank(candidates, keywords, confidence)[:limit]

    async def aggregate_split(
        self,
        keywords: list[str],
        limit: int,
        confidence: float = 0.0,
    ) -> tuple[list[CandidateArtwork], list[CandidateArtwork]]:
        """Same ranking, partitioned into (internal, external); each list truncated to limit."""
        if not normalize_keywords(keywords) or limit <= 0:
            return [], []
        candidates = await self.collect(keywords)
        ranked = self.rank(candidates, keywords, confidence)
        internal = [c for c in ranked if c.is_internal][:limit]
        external = [c for c in ranked if not c.is_internal][:limit]
        return internal, external

    async def aclose(self) -> None:
        for source in self._sources:
            await source.aclose()
