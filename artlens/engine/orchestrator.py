"""Analysis orchestrator: gate, analyze every image, vote common keywords, aggregate, validate.

States: received -> gated -> analyzing -> aggregating -> validating -> complete,
or rejected / failed. Rejections for missing payment or login are returned as a
RejectedResponse value; input errors and fatal errors are raised. Per-image failures are
absorbed (zero tag set) and never fail the batch.
"""

import asyncio
import logging
import math
import time
import uuid
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from artlens.ai.schema import ImageTagSet
from artlens.ai.vision_base import BaseVisionAnalyzer
from artlens.core.logging import get_flight_logger
from artlens.engine.access import AccessGate
from artlens.engine.aggregator import CandidateAggregator
from artlens.engine.candidates import CandidateArtwork
from artlens.engine.errors import FatalAnalysisError, InputError
from artlens.engine.signals import DEFAULT_KEYWORDS_PER_IMAGE, CommonSignal, extract_common_signal
from artlens.engine.similarity import normalize_keywords
from artlens.engine.tiers import Tier
from artlens.engine.validator import ImageReachabilityValidator

_log = logging.getLogger(__name__)

DEFAULT_MAX_IMAGES = 50
TOP_MATCH_COUNT = 3


class AnalysisState(str, Enum):
    received = "received"
    gated = "gated"
    analyzing = "analyzing"
    aggregating = "aggregating"
    validating = "validating"
    complete = "complete"
    rejected = "rejected"
    failed = "failed"


class TopMatch(BaseModel):
    title: str
    similarity: int  # percent
    matched_keywords: list[str] = Field(default_factory=list)


class SimilarityStats(BaseModel):
    average_similarity: int = 0  # percent
    top_matches: list[TopMatch] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    state: AnalysisState = AnalysisState.complete
    image_count: int
    tier: str
    results: list[ImageTagSet]
    common_signal: CommonSignal | None = None
    internal: list[CandidateArtwork] = Field(default_factory=list)
    external: list[CandidateArtwork] = Field(default_factory=list)
    similarity_stats: SimilarityStats = Field(default_factory=SimilarityStats)
    processing_time_ms: int = 0
    # "name/version" from the analyzer's model card.
    analyzer_model: str | None = None


class RejectedResponse(BaseModel):
    """Access denied: the caller must log in and/or pay for `tier` before retrying."""

    state: AnalysisState = AnalysisState.rejected
    payment_required: bool
    tier: Tier
    error: str | None = None


class AuditLog(Protocol):
    def save_analysis(self, **kwargs: Any) -> int: ...


def _percent(score: float) -> int:
    return math.floor(score * 100 + 0.5)


def similarity_stats(candidates: list[CandidateArtwork]) -> SimilarityStats:
    """Average similarity (percent) and the top three matches of an already ranked list."""
    if not candidates:
        return SimilarityStats()
    scores = [c.similarity.total if c.similarity else 0.0 for c in candidates]
    top = [
        TopMatch(
            title=c.title,
            similarity=_percent(c.similarity.total if c.similarity else 0.0),
            matched_keywords=list(c.similarity.matched_keywords) if c.similarity else [],
        )
        for c in candidates[:TOP_MATCH_COUNT]
    ]
    return SimilarityStats(average_similarity=_percent(sum(scores) / len(scores)), top_matches=top)


class AnalysisOrchestrator:
    """Coordinates one multi-image analysis request end to end."""

    def __init__(
        self,
        analyzer: BaseVisionAnalyzer,
        gate: AccessGate,
        aggregator: CandidateAggregator,
        validator: ImageReachabilityValidator,
        *,
        audit_log: AuditLog | None = None,
        max_images: int = DEFAULT_MAX_IMAGES,
        analysis_concurrency: int = 4,
        keywords_per_image: float = DEFAULT_KEYWORDS_PER_IMAGE,
        query_keyword_count: int = 10,
        recommendation_limit: int = 20,
        request_timeout_seconds: float = 120.0,
        forensic_dump_on_failure: bool = False,
    ) -> None:
        self._analyzer = analyzer
        self._gate = gate
        self._aggregator = aggregator
        self._validator = validator
        self._audit_log = audit_log
        self._max_images = max_images
        self._analysis_concurrency = max(1, analysis_concurrency)
        self._keywords_per_image = keywords_per_image
        self._query_keyword_count = query_keyword_count
        self._recommendation_limit = recommendation_limit
        self._request_timeout = request_timeout_seconds
        self._forensic_dump_on_failure = forensic_dump_on_failure

    @property
    def max_images(self) -> int:
        return self._max_images

    def _enter(self, request_id: str, state: AnalysisState) -> None:
        _log.debug("[%s] -> %s", request_id, state.value)

    async def analyze_batch(
        self,
        images: list[bytes],
        identity: str | None = None,
        *,
        timeout: float | None = None,
    ) -> AnalysisResult | RejectedResponse:
        """
        Run the full pipeline for one request.

        Raises InputError (nothing analyzed) or FatalAnalysisError (no partial payload).
        Cancelling the awaiting task cancels all in-flight work.
        """
        request_id = uuid.uuid4().hex[:12]
        self._enter(request_id, AnalysisState.received)
        if not images:
            self._enter(request_id, AnalysisState.rejected)
            raise InputError("No images to analyze")
        if len(images) > self._max_images:
            self._enter(request_id, AnalysisState.rejected)
            raise InputError(f"At most {self._max_images} images can be analyzed at once (got {len(images)})")

        budget = timeout if timeout is not None else self._request_timeout
        try:
            return await asyncio.wait_for(self._run(request_id, images, identity), timeout=budget)
        except asyncio.TimeoutError:
            self._fail(request_id, f"timed out after {budget:.1f}s")
            raise FatalAnalysisError(f"Analysis timed out after {budget:.1f}s") from None
        except FatalAnalysisError as e:
            self._fail(request_id, str(e))
            raise
        except Exception as e:
            _log.exception("[%s] Unexpected failure during analysis", request_id)
            self._fail(request_id, str(e))
            raise FatalAnalysisError(f"Analysis failed: {e}") from e

    def _fail(self, request_id: str, reason: str) -> None:
        self._enter(request_id, AnalysisState.failed)
        _log.error("[%s] Analysis failed: %s", request_id, reason)
        if not self._forensic_dump_on_failure:
            return
        flight = get_flight_logger()
        if flight is not None:
            try:
                path = flight.dump("analysis", request_id)
                _log.warning("[%s] Flight log dumped to %s", request_id, path)
            except OSError as e:
                _log.warning("[%s] Flight log dump failed: %s", request_id, e)

    async def _run(
        self,
        request_id: str,
        images: list[bytes],
        identity: str | None,
    ) -> AnalysisResult | RejectedResponse:
        started = time.monotonic()
        image_count = len(images)

        decision = await self._gate.evaluate(identity, image_count)
        self._enter(request_id, AnalysisState.gated)
        if not decision.can_analyze:
            if decision.storage_failed:
                raise FatalAnalysisError(decision.error or "Payment storage unavailable")
            self._enter(request_id, AnalysisState.rejected)
            _log.info("[%s] Access denied for %s images (%s): %s", request_id, image_count, decision.tier.name, decision.error)
            return RejectedResponse(payment_required=decision.payment_required, tier=decision.tier, error=decision.error)

        self._enter(request_id, AnalysisState.analyzing)
        results = await self._analyze_all(request_id, images)

        self._enter(request_id, AnalysisState.aggregating)
        common_signal: CommonSignal | None = None
        if image_count >= 2:
            common_signal = extract_common_signal(results, self._keywords_per_image)
            _log.info("[%s] %s common keywords across %s images", request_id, len(common_signal.keywords), image_count)
            query = common_signal.keywords[: self._query_keyword_count]
            confidence = common_signal.confidence
        else:
            query = normalize_keywords(results[0].tokens())[: self._query_keyword_count]
            confidence = results[0].confidence
        internal, external = await self._aggregator.aggregate_split(query, self._recommendation_limit, confidence)

        self._enter(request_id, AnalysisState.validating)
        valid_internal = await self._validator.filter_reachable(internal)
        valid_external = await self._validator.filter_reachable(external)
        _log.info(
            "[%s] Validation complete - internal: %s/%s, external: %s/%s",
            request_id,
            len(valid_internal),
            len(internal),
            len(valid_external),
            len(external),
        )

        result = AnalysisResult(
            image_count=image_count,
            tier=decision.tier.name,
            results=results,
            common_signal=common_signal,
            internal=valid_internal,
            external=valid_external,
            similarity_stats=similarity_stats(valid_internal or valid_external),
            processing_time_ms=int((time.monotonic() - started) * 1000),
            analyzer_model=self._analyzer_model(),
        )
        await self._record(request_id, identity, result)
        self._enter(request_id, AnalysisState.complete)
        return result

    async def _analyze_one(self, request_id: str, index: int, image: bytes, limiter: asyncio.Semaphore) -> ImageTagSet:
        async with limiter:
            try:
                return await asyncio.to_thread(self._analyzer.analyze_image, image)
            except Exception as e:
                _log.warning("[%s] Analysis of image %s failed; using empty tags: %s", request_id, index + 1, e)
                return ImageTagSet.zero()

    async def _analyze_all(self, request_id: str, images: list[bytes]) -> list[ImageTagSet]:
        """Per-image analysis, bounded concurrency; results in upload order."""
        limiter = asyncio.Semaphore(self._analysis_concurrency)
        return list(
            await asyncio.gather(
                *(self._analyze_one(request_id, i, image, limiter) for i, image in enumerate(images))
            )
        )

    def _analyzer_model(self) -> str:
        card = self._analyzer.get_model_card()
        return f"{card.name}/{card.version}"

    async def _record(self, request_id: str, identity: str | None, result: AnalysisResult) -> None:
        """Append to the audit log when configured. Failures are logged, never raised."""
        if self._audit_log is None:
            return
        try:
            await asyncio.to_thread(
                self._audit_log.save_analysis,
                identity=identity.strip() if identity and identity.strip() else None,
                image_count=result.image_count,
                tier=result.tier,
                individual_results=[r.model_dump() for r in result.results],
                common_signal=result.common_signal.model_dump() if result.common_signal else None,
                recommendation_count=len(result.internal) + len(result.external),
                processing_time_ms=result.processing_time_ms,
                analyzer_model=result.analyzer_model,
            )
        except Exception as e:
            _log.warning("[%s] Could not write analysis audit log: %s", request_id, e)

    async def aclose(self) -> None:
        await self._aggregator.aclose()
        await self._validator.aclose()
