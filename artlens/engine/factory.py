"""Wire an AnalysisOrchestrator from Settings. Repository imports are lazy (they import engine.errors)."""

from typing import Callable

from sqlalchemy.orm import Session

from artlens.ai.factory import get_vision_analyzer
from artlens.core.config import Settings
from artlens.engine.access import AccessGate
from artlens.engine.aggregator import CandidateAggregator
from artlens.engine.exclusion import rules_from_config
from artlens.engine.orchestrator import AnalysisOrchestrator
from artlens.engine.validator import HttpxImageProber, ImageReachabilityValidator, get_shared_cache
from artlens.sources import build_sources


def build_orchestrator(settings: Settings, session_factory: Callable[[], Session]) -> AnalysisOrchestrator:
    from artlens.repository.analysis_repo import AnalysisRepository
    from artlens.repository.artwork_repo import ArtworkRepository
    from artlens.repository.payment_repo import PaymentRepository

    aggregator = CandidateAggregator(
        build_sources(settings, ArtworkRepository(session_factory)),
        rules=rules_from_config(settings.excluded_platforms),
        source_timeout_seconds=settings.source_timeout_seconds,
        per_source_limit=settings.per_source_limit,
    )
    validator = ImageReachabilityValidator(
        HttpxImageProber(),
        get_shared_cache(settings.validation_cache_ttl_seconds),
        probe_timeout_seconds=settings.probe_timeout_seconds,
        batch_size=settings.validation_batch_size,
    )
    return AnalysisOrchestrator(
        get_vision_analyzer(settings.analyzer, settings.analyzer_endpoint),
        AccessGate(PaymentRepository(session_factory), window_hours=settings.payment_window_hours),
        aggregator,
        validator,
        audit_log=AnalysisRepository(session_factory) if settings.audit_log else None,
        max_images=settings.max_images,
        analysis_concurrency=settings.analysis_concurrency,
        keywords_per_image=settings.keywords_per_image,
        query_keyword_count=settings.query_keyword_count,
        recommendation_limit=settings.recommendation_limit,
        request_timeout_seconds=settings.request_timeout_seconds,
        forensic_dump_on_failure=settings.forensic_dump_on_failure,
    )
