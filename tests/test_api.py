"""API: POST /api/analyze status mapping, tier endpoints, history and validation-cache admin."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from artlens.ai.schema import ImageTagSet
from artlens.api.main import (
    _get_analysis_repo,
    _get_orchestrator,
    _get_validation_cache,
    app,
)
from artlens.core.config import reset_config
from artlens.engine.access import AccessGate
from artlens.engine.aggregator import CandidateAggregator
from artlens.engine.orchestrator import AnalysisOrchestrator
from artlens.engine.validator import ImageReachabilityValidator
from artlens.models.entities import AnalysisRecord
from tests.fakes import FakePayments, FakeProber, FakeSource, StaticAnalyzer

pytestmark = [pytest.mark.fast]

TAGS = ImageTagSet(keywords=["harbor", "boats", "dusk"], colors=["orange"], confidence=0.8)


class FakeHistory:
    def __init__(self, records):
        self.records = records
        self.calls = []

    def get_user_history(self, identity, limit=20):
        self.calls.append((identity, limit))
        return self.records[:limit]


@pytest.fixture
def client(validation_cache, monkeypatch):
    """TestClient with the orchestrator and cache replaced by in-process fakes."""
    monkeypatch.delenv("ARTLENS_CONFIG", raising=False)
    reset_config()
    payments = FakePayments(paid={("alice", "Standard Pack")})
    source = FakeSource(
        "museum:a",
        [{"id": 1, "title": "Harbor at Dusk", "image_url": "https://img.example/1.jpg", "keywords": ["harbor", "dusk"]}],
    )
    orchestrator = AnalysisOrchestrator(
        StaticAnalyzer({b"img-1": TAGS, b"img-2": TAGS}),
        AccessGate(payments),
        CandidateAggregator([source]),
        ImageReachabilityValidator(FakeProber(), validation_cache),
    )
    app.dependency_overrides[_get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[_get_validation_cache] = lambda: validation_cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        reset_config()


def _files(*payloads, content_type="image/jpeg"):
    return [("images", (f"upload{i}.jpg", p, content_type)) for i, p in enumerate(payloads)]


def test_analyze_two_images(client):
    resp = client.post("/api/analyze", files=_files(b"img-1", b"img-2"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["state"] == "complete"
    assert body["tier"] == "Free Tier"
    assert body["common_signal"]["keywords"] == ["harbor", "boats", "dusk", "orange"]
    assert body["analyzer_model"] == "static/test"
    assert [c["title"] for c in body["external"]] == ["Harbor at Dusk"]
    assert "raw" not in body["external"][0]
    assert body["similarity_stats"]["top_matches"][0]["title"] == "Harbor at Dusk"


def test_analyze_anonymous_eleven_images_is_402(client):
    resp = client.post("/api/analyze", files=_files(*[b"img-1"] * 11))
    assert resp.status_code == 402
    body = resp.json()
    assert body["success"] is False
    assert body["payment_required"] is True
    assert body["tier"]["name"] == "Premium Pack"
    assert body["tier"]["price_cents"] == 1000


def test_analyze_identity_from_header(client):
    resp = client.post("/api/analyze", files=_files(*[b"img-1"] * 5), headers={"X-User-Id": "alice"})
    assert resp.status_code == 200
    assert resp.json()["tier"] == "Standard Pack"


def test_analyze_form_identity_wins_over_header(client):
    resp = client.post(
        "/api/analyze",
        files=_files(*[b"img-1"] * 5),
        data={"identity": "mallory"},
        headers={"X-User-Id": "alice"},
    )
    assert resp.status_code == 402


def test_analyze_without_images_is_400(client):
    resp = client.post("/api/analyze", data={"identity": "alice"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_analyze_rejects_non_image_upload(client):
    resp = client.post("/api/analyze", files=_files(b"%PDF-1.4", content_type="application/pdf"))
    assert resp.status_code == 400
    assert "image" in resp.json()["error"]


def test_analyze_fatal_error_is_500(client, validation_cache):
    orchestrator = AnalysisOrchestrator(
        StaticAnalyzer(),
        AccessGate(FakePayments(fail=True)),
        CandidateAggregator([]),
        ImageReachabilityValidator(FakeProber(), validation_cache),
    )
    app.dependency_overrides[_get_orchestrator] = lambda: orchestrator
    resp = client.post("/api/analyze", files=_files(*[b"img-1"] * 4), data={"identity": "alice"})
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Could not verify payment history"}


def test_tiers_table(client):
    resp = client.get("/api/tiers")
    assert resp.status_code == 200
    assert [t["name"] for t in resp.json()] == ["Free Tier", "Standard Pack", "Premium Pack"]


def test_tier_for_count(client):
    body = client.get("/api/tiers/7").json()
    assert body["name"] == "Standard Pack"
    assert body["image_count"] == 7
    assert body["payment_required"] is True
    assert client.get("/api/tiers/2").json()["payment_required"] is False


@pytest.mark.parametrize("count", [0, 51])
def test_tier_for_count_out_of_range(client, count):
    assert client.get(f"/api/tiers/{count}").status_code == 400


def test_history(client):
    history = FakeHistory(
        [
            AnalysisRecord(
                id=3,
                identity="alice",
                image_count=2,
                tier="Free Tier",
                common_signal={"keywords": ["harbor", "dusk"], "confidence": 0.4},
                recommendation_count=4,
                processing_time_ms=120,
                analyzer_model="vision-station/local",
                created_at=datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc),
            )
        ]
    )
    app.dependency_overrides[_get_analysis_repo] = lambda: history
    resp = client.get("/api/history/alice", params={"limit": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert body[0]["id"] == 3
    assert body[0]["common_keywords"] == ["harbor", "dusk"]
    assert body[0]["analyzer_model"] == "vision-station/local"
    assert history.calls == [("alice", 5)]


def test_history_limit_is_bounded(client):
    app.dependency_overrides[_get_analysis_repo] = lambda: FakeHistory([])
    assert client.get("/api/history/alice", params={"limit": 0}).status_code == 422


def test_validation_cache_admin(client, validation_cache):
    validation_cache.put("https://img.example/a.jpg", True)
    validation_cache.put("https://img.example/b.jpg", False)
    assert client.get("/api/validation-cache").json() == {"entries": 2}
    assert client.delete("/api/validation-cache").json() == {"cleared": 2}
    assert len(validation_cache) == 0
