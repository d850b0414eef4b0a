"""Artwork registry repository: keyword search over the first-party catalog."""

from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session

from artlens.models.entities import Artwork


class ArtworkRepository:
    """
    Database access for the artwork registry.

    Keywords are stored lower-cased so the JSONB overlap query can match exactly.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self, write: bool = False) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            if write:
                session.commit()
        finally:
            session.close()

    def add_artwork(
        self,
        title: str,
        artist: str,
        image_url: str | None,
        keywords: list[str],
        *,
        thumbnail_url: str | None = None,
        platform: str | None = None,
        source_url: str | None = None,
        available: bool = True,
    ) -> Artwork:
        """Insert an artwork and return it."""
        normalized = list(dict.fromkeys(k.strip().lower() for k in keywords if k.strip()))
        with self._session_scope(write=True) as session:
            artwork = Artwork(
                title=title,
                artist=artist,
                image_url=image_url,
                thumbnail_url=thumbnail_url,
                keywords=normalized,
                platform=platform,
                source_url=source_url,
                available=available,
            )
            session.add(artwork)
            session.flush()
            session.refresh(artwork)
            return artwork

    def search_by_keywords(self, keywords: list[str], limit: int = 20) -> list[dict[str, Any]]:
        """
        Return available artworks sharing at least one keyword, as raw records.
        Rows keep insertion order (id asc); ranking happens in the aggregator.
        """
        normalized = [k.strip().lower() for k in keywords if k.strip()]
        if not normalized:
            return []
        with self._session_scope() as session:
            rows = session.execute(
                text("""
                    SELECT id, title, artist, image_url, thumbnail_url, keywords, platform, source_url
                    FROM artwork
                    WHERE available
                      AND jsonb_exists_any(keywords, CAST(:keywords AS text[]))
                    ORDER BY id
                    LIMIT :limit
                """),
                {"keywords": normalized, "limit": limit},
            ).fetchall()
        return [
            {
                "id": row[0],
                "title": row[1],
                "artist": row[2],
                "image_url": row[3],
                "thumbnail_url": row[4],
                "keywords": list(row[5] or []),
                "platform": row[6],
                "source_url": row[7],
            }
            for row in rows
        ]
