"""Image reachability validation with a process-wide TTL cache.

Candidates whose image URL does not answer a HEAD probe with a 2xx image/* response are
dropped. Every outcome, including probe failures, is cached for the TTL so a dead host is
not hit again within the window. The cache is an optimization only: a cold cache yields the
same survivors, just slower.
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit

import httpx

from artlens.engine.candidates import CandidateArtwork

_log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 5.0
DEFAULT_BATCH_SIZE = 10
USER_AGENT = "Mozilla/5.0 (compatible; ArtLensBot/1.0)"


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    is_image: bool

    @property
    def valid(self) -> bool:
        return self.ok and self.is_image


class ImageProber(ABC):
    @abstractmethod
    async def probe(self, url: str, timeout: float) -> ProbeResult:
        """Metadata-only request for url. May raise on network errors."""
        ...

    async def aclose(self) -> None:
        return None


class HttpxImageProber(ImageProber):
    """HEAD probe over a shared httpx.AsyncClient (redirects followed)."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    async def probe(self, url: str, timeout: float) -> ProbeResult:
        resp = await self._client.head(url, timeout=timeout)
        content_type = resp.headers.get("content-type", "")
        return ProbeResult(ok=resp.is_success, is_image=content_type.lower().startswith("image/"))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ValidationCache(ABC):
    """url -> validity with a TTL. Implementations must be safe for concurrent use."""

    @abstractmethod
    def get(self, url: str) -> bool | None:
        """Cached validity, or None when missing or older than the TTL."""
        ...

    @abstractmethod
    def put(self, url: str, valid: bool) -> None: ...

    @abstractmethod
    def sweep(self) -> int:
        """Evict expired entries; return how many were removed."""
        ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...


class InMemoryValidationCache(ValidationCache):
    """Lock-protected dict. Concurrent writers race with last-writer-wins."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[bool, float]] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> bool | None:
        with self._lock:
            entry = self._entries.get(url)
        if entry is None:
            return None
        valid, checked_at = entry
        if self._clock() - checked_at >= self._ttl:
            return None
        return valid

    def put(self, url: str, valid: bool) -> None:
        with self._lock:
            self._entries[url] = (valid, self._clock())

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [url for url, (_, checked_at) in self._entries.items() if now - checked_at >= self._ttl]
            for url in expired:
                del self._entries[url]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_shared_cache: InMemoryValidationCache | None = None


def get_shared_cache(ttl_seconds: float = DEFAULT_TTL_SECONDS) -> InMemoryValidationCache:
    """Process-wide cache singleton (TTL fixed by the first caller)."""
    global _shared_cache
    if _shared_cache is None:
        _shared_cache = InMemoryValidationCache(ttl_seconds=ttl_seconds)
    return _shared_cache


def _is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class ImageReachabilityValidator:
    """
    Stable filter over candidates by image reachability.

    Probes run in fixed-size batches (gather per batch) to cap concurrent outbound
    connections; each probe has its own timeout.
    """

    def __init__(
        self,
        prober: ImageProber,
        cache: ValidationCache | None = None,
        *,
        probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._prober = prober
        self._cache = cache if cache is not None else get_shared_cache()
        self._timeout = probe_timeout_seconds
        self._batch_size = max(1, batch_size)

    @property
    def cache(self) -> ValidationCache:
        return self._cache

    async def is_valid_image_url(self, url: str) -> bool:
        if not url or not _is_http_url(url):
            return False

        cached = self._cache.get(url)
        if cached is not None:
            return cached

        try:
            result = await asyncio.wait_for(self._prober.probe(url, self._timeout), timeout=self._timeout)
            valid = result.valid
        except asyncio.TimeoutError:
            _log.info("Image probe timed out for %s", url)
            valid = False
        except Exception as e:
            _log.info("Image probe failed for %s: %s", url, e)
            valid = False

        self._cache.put(url, valid)
        return valid

    async def _check(self, candidate: CandidateArtwork) -> bool:
        url = candidate.best_image_url
        if url is None:
            _log.debug("No image URL for %s (%s); dropped", candidate.id, candidate.title)
            return False
        valid = await self.is_valid_image_url(url)
        if not valid:
            _log.debug("Dropping %s (%s): image not reachable at %s", candidate.id, candidate.title, url)
        return valid

    async def filter_reachable(self, candidates: list[CandidateArtwork]) -> list[CandidateArtwork]:
        if not candidates:
            return []
        survivors: list[CandidateArtwork] = []
        for start in range(0, len(candidates), self._batch_size):
            batch = candidates[start : start + self._batch_size]
            verdicts = await asyncio.gather(*(self._check(c) for c in batch))
            survivors.extend(c for c, ok in zip(batch, verdicts) if ok)
        dropped = len(candidates) - len(survivors)
        if dropped:
            _log.info("Filtered %s of %s candidates with unreachable images", dropped, len(candidates))
        return survivors

    async def aclose(self) -> None:
        await self._prober.aclose()


async def run_cache_sweeper(cache: ValidationCache, interval_seconds: float) -> None:
    """Periodically evict expired entries. Runs until cancelled; housekeeping only."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.sweep()
        if removed:
            _log.debug("Validation cache sweep removed %s entries (%s left)", removed, len(cache))
