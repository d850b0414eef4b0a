"""Canonical candidate artwork and normalization of heterogeneous source records.

Each source returns dicts with its own field names. FIELD_ALIASES lists, per canonical field,
the paths to try in order; the first present value of the right type wins. Dotted paths walk
nested dicts and list indexes (e.g. "images.web.url", "creators.0.description").
"""

from typing import Any

from pydantic import BaseModel, Field

from artlens.engine.similarity import SimilarityResult

DEFAULT_TITLE = "Untitled"
DEFAULT_ARTIST = "Unknown Artist"

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "objectID", "object_id", "accession_number", "uuid"),
    "title": ("title", "name", "artwork_title"),
    "artist": (
        "artist",
        "artist_display",
        "artist_name",
        "artistDisplayName",
        "artist.name",
        "creators.0.description",
        "creator",
        "author",
    ),
    "image_url": (
        "image_url",
        "imageUrl",
        "primaryImage",
        "image",
        "images.web.url",
        "webImage.url",
    ),
    "thumbnail_url": (
        "thumbnail_url",
        "thumbnailUrl",
        "primaryImageSmall",
        "thumbnail",
        "images.thumbnail.url",
    ),
    "keywords": ("keywords", "tags", "subjects", "style_titles"),
    "platform": ("platform",),
    "source_url": ("source_url", "url", "link", "objectURL"),
}


class CandidateArtwork(BaseModel):
    """Normalized recommendation candidate. Owned by one request; never shared."""

    id: str
    title: str = DEFAULT_TITLE
    artist: str = DEFAULT_ARTIST
    image_url: str | None = None
    thumbnail_url: str | None = None
    source: str
    keywords: list[str] = Field(default_factory=list)
    platform: str | None = None
    source_url: str | None = None
    is_internal: bool = False
    similarity: SimilarityResult | None = None
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @property
    def best_image_url(self) -> str | None:
        """Primary image URL, else the thumbnail."""
        return self.image_url or self.thumbnail_url


def lookup_path(record: Any, path: str) -> Any:
    """Resolve a dotted path against nested dicts/lists; None when any step is missing."""
    current = record
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _first_text(record: dict[str, Any], field: str) -> str | None:
    for path in FIELD_ALIASES[field]:
        value = lookup_path(record, path)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and field == "id":
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def record_keywords(record: dict[str, Any]) -> list[str]:
    for path in FIELD_ALIASES["keywords"]:
        value = lookup_path(record, path)
        if isinstance(value, str) and value.strip():
            return [v.strip() for v in value.split(",") if v.strip()]
        if isinstance(value, list):
            words = [v.strip() for v in value if isinstance(v, str) and v.strip()]
            if words:
                return words
    return []


def normalize_record(
    record: dict[str, Any],
    source: str,
    *,
    is_internal: bool = False,
    position: int = 0,
) -> CandidateArtwork:
    """Build a CandidateArtwork from one raw source record."""
    record_id = _first_text(record, "id") or str(position)
    return CandidateArtwork(
        id=f"{source}:{record_id}",
        title=_first_text(record, "title") or DEFAULT_TITLE,
        artist=_first_text(record, "artist") or DEFAULT_ARTIST,
        image_url=_first_text(record, "image_url"),
        thumbnail_url=_first_text(record, "thumbnail_url"),
        source=source,
        keywords=record_keywords(record),
        platform=_first_text(record, "platform"),
        source_url=_first_text(record, "source_url"),
        is_internal=is_internal,
        raw=record,
    )
