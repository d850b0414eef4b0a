"""ArtLens API: multi-image analysis, tier table, history and validation-cache admin."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Any, AsyncIterator, Callable

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session, sessionmaker

from artlens.core.config import get_config
from artlens.core.logging import setup_logging
from artlens.engine.errors import FatalAnalysisError, InputError
from artlens.engine.factory import build_orchestrator
from artlens.engine.orchestrator import AnalysisOrchestrator, RejectedResponse
from artlens.engine.tiers import TIERS, Tier, calculate_tier
from artlens.engine.validator import ValidationCache, get_shared_cache, run_cache_sweeper
from artlens.repository.analysis_repo import AnalysisRepository

_log = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_session_factory() -> Callable[[], Session]:
    from sqlalchemy import create_engine

    cfg = get_config()
    engine = create_engine(cfg.database_url, pool_pre_ping=True)
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


@lru_cache(maxsize=1)
def _get_analysis_repo() -> AnalysisRepository:
    return AnalysisRepository(_get_session_factory())


@lru_cache(maxsize=1)
def _get_orchestrator() -> AnalysisOrchestrator:
    return build_orchestrator(get_config(), _get_session_factory())


def _get_validation_cache() -> ValidationCache:
    return get_shared_cache(get_config().validation_cache_ttl_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    cfg = get_config()
    sweeper = asyncio.create_task(run_cache_sweeper(_get_validation_cache(), cfg.cache_sweep_interval_seconds))
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        if _get_orchestrator.cache_info().currsize:
            await _get_orchestrator().aclose()


app = FastAPI(title="ArtLens Analysis API", lifespan=lifespan)


class TierOut(BaseModel):
    name: str
    max_images: int
    price_cents: int
    description: str


class TierForCountOut(TierOut):
    image_count: int
    payment_required: bool


class HistoryEntryOut(BaseModel):
    id: int
    image_count: int
    tier: str
    common_keywords: list[str] = []
    recommendation_count: int
    processing_time_ms: int
    analyzer_model: str | None = None
    created_at: datetime


def _tier_out(tier: Tier) -> TierOut:
    return TierOut(**tier.model_dump())


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


@app.post("/api/analyze")
async def api_analyze(
    images: list[UploadFile] | None = File(default=None),
    identity: str | None = Form(default=None),
    x_user_id: str | None = Header(default=None),
    orchestrator: AnalysisOrchestrator = Depends(_get_orchestrator),
) -> JSONResponse:
    """
    Analyze the uploaded images together and recommend artworks.

    200 with the analysis, 402 when the tier needs login or payment, 400 on bad input,
    500 when the batch fails.
    """
    uploads = images or []
    for upload in uploads:
        if upload.content_type and not upload.content_type.startswith("image/"):
            return _error(400, f"Only image files are allowed ({upload.filename}: {upload.content_type})")

    payloads = [await upload.read() for upload in uploads]
    caller = identity if identity and identity.strip() else x_user_id
    try:
        result = await orchestrator.analyze_batch(payloads, caller)
    except InputError as e:
        return _error(400, str(e))
    except FatalAnalysisError as e:
        return _error(500, str(e))

    if isinstance(result, RejectedResponse):
        return _error(
            402,
            result.error or "Payment required",
            payment_required=result.payment_required,
            tier=result.tier.model_dump(),
        )
    return JSONResponse(content={"success": True, **result.model_dump(mode="json")})


@app.get("/api/tiers", response_model=list[TierOut])
def api_tiers() -> list[TierOut]:
    """Tier table, cheapest first."""
    return [_tier_out(t) for t in TIERS]


@app.get("/api/tiers/{image_count}", response_model=TierForCountOut)
def api_tier_for_count(image_count: int) -> TierForCountOut:
    """Tier that applies to image_count images."""
    max_images = get_config().max_images
    if image_count < 1 or image_count > max_images:
        raise HTTPException(status_code=400, detail=f"image_count must be between 1 and {max_images}")
    tier = calculate_tier(image_count)
    return TierForCountOut(
        **tier.model_dump(),
        image_count=image_count,
        payment_required=tier.price_cents > 0,
    )


@app.get("/api/history/{identity}", response_model=list[HistoryEntryOut])
def api_history(
    identity: str,
    limit: int = Query(20, ge=1, le=100),
    analysis_repo: AnalysisRepository = Depends(_get_analysis_repo),
) -> list[HistoryEntryOut]:
    """Past analyses for identity, newest first."""
    records = analysis_repo.get_user_history(identity, limit=limit)
    return [
        HistoryEntryOut(
            id=r.id or 0,
            image_count=r.image_count,
            tier=r.tier,
            common_keywords=list((r.common_signal or {}).get("keywords") or []),
            recommendation_count=r.recommendation_count,
            processing_time_ms=r.processing_time_ms,
            analyzer_model=r.analyzer_model,
            created_at=r.created_at,
        )
        for r in records
    ]


@app.get("/api/validation-cache")
def api_validation_cache(cache: ValidationCache = Depends(_get_validation_cache)) -> dict[str, int]:
    return {"entries": len(cache)}


@app.delete("/api/validation-cache")
def api_clear_validation_cache(cache: ValidationCache = Depends(_get_validation_cache)) -> dict[str, int]:
    """Drop every cached reachability verdict."""
    cleared = len(cache)
    cache.clear()
    _log.info("Validation cache cleared (%s entries)", cleared)
    return {"cleared": cleared}
