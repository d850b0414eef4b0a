"""Public museum open-access APIs (Art Institute of Chicago, Cleveland Museum of Art)."""

import logging
from typing import Any

import httpx

from artlens.sources.base import SourceAdapter

_log = logging.getLogger(__name__)

USER_AGENT = "ArtLens/1.0 (+https://github.com/artlens)"
DEFAULT_HTTP_TIMEOUT = 10.0


class _MuseumSource(SourceAdapter):
    """Shared httpx.AsyncClient handling. A client passed in is borrowed, not closed."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=httpx.Timeout(DEFAULT_HTTP_TIMEOUT, connect=5.0),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        resp = await self._client.get(url, params=params)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ValueError(f"{self.source_id}: expected a JSON object, got {type(payload).__name__}")
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ChicagoMuseumSource(_MuseumSource):
    """Art Institute of Chicago search API; images served through its IIIF endpoint."""

    source_id = "museum:chicago"
    search_url = "https://api.artic.edu/api/v1/artworks/search"
    default_iiif_url = "https://www.artic.edu/iiif/2"
    fields = (
        "id,title,artist_display,date_display,image_id,classification_titles,"
        "style_titles,subject_titles,medium_display"
    )

    async def search(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        if not keywords:
            return []
        payload = await self._get_json(
            self.search_url,
            {"q": " ".join(keywords), "limit": limit, "fields": self.fields},
        )
        iiif_url = (payload.get("config") or {}).get("iiif_url") or self.default_iiif_url
        records = []
        for item in payload.get("data") or []:
            image_id = item.get("image_id")
            if not image_id:
                continue
            keywords_out = [
                *(item.get("classification_titles") or []),
                *(item.get("style_titles") or []),
                *(item.get("subject_titles") or []),
            ]
            records.append(
                {
                    "id": item.get("id"),
                    "title": item.get("title"),
                    "artist_display": item.get("artist_display"),
                    "image_url": f"{iiif_url}/{image_id}/full/843,/0/default.jpg",
                    "thumbnail_url": f"{iiif_url}/{image_id}/full/400,/0/default.jpg",
                    "keywords": keywords_out,
                    "platform": "Art Institute of Chicago",
                    "source_url": f"https://www.artic.edu/artworks/{item.get('id')}",
                }
            )
        _log.debug("Chicago search %r: %s records with images", keywords, len(records))
        return records[:limit]


class ClevelandMuseumSource(_MuseumSource):
    """Cleveland Museum of Art open-access API (CC0 works with images only)."""

    source_id = "museum:cleveland"
    search_url = "https://openaccess-api.clevelandart.org/api/artworks/"
    max_page_size = 100

    async def search(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        if not keywords:
            return []
        payload = await self._get_json(
            self.search_url,
            {"q": " ".join(keywords), "limit": min(limit, self.max_page_size), "has_image": 1, "cc0": 1},
        )
        records = []
        for item in payload.get("data") or []:
            if not isinstance(item, dict):
                continue
            record = dict(item)
            # Cleveland has no keyword list; department/type/technique/culture stand in for one.
            record["keywords"] = [
                v
                for v in (item.get("department"), item.get("type"), item.get("technique"), *(item.get("culture") or []))
                if isinstance(v, str) and v.strip()
            ]
            record["platform"] = "Cleveland Museum of Art"
            if not item.get("url") and item.get("accession_number"):
                record["url"] = f"https://www.clevelandart.org/art/{item['accession_number']}"
            records.append(record)
        _log.debug("Cleveland search %r: %s records", keywords, len(records))
        return records[:limit]
