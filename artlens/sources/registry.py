"""First-party artwork registry as a candidate source."""

import asyncio
from typing import Any, Protocol

from artlens.sources.base import SourceAdapter


class ArtworkSearch(Protocol):
    def search_by_keywords(self, keywords: list[str], limit: int = 20) -> list[dict[str, Any]]: ...


class RegistrySource(SourceAdapter):
    """Internal candidates from the artwork table. The blocking query runs in a worker thread."""

    source_id = "registry"
    is_internal = True

    def __init__(self, artworks: ArtworkSearch) -> None:
        self._artworks = artworks

    async def search(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._artworks.search_by_keywords, keywords, limit)
