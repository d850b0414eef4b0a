"""Static catalog source: artwork records loaded from a YAML or JSON file.

The file holds either a list of records or a mapping with an `artworks` list. Records keep
whatever field names the catalog uses; the aggregator's alias table normalizes them.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from artlens.engine.candidates import record_keywords
from artlens.sources.base import SourceAdapter

_log = logging.getLogger(__name__)


def load_catalog(path: str | Path) -> list[dict[str, Any]]:
    """Read catalog records from path (.json, else YAML). Non-dict entries are skipped."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = json.load(f) if path.suffix.lower() == ".json" else yaml.safe_load(f)
    if isinstance(data, dict):
        data = data.get("artworks") or []
    if not isinstance(data, list):
        raise ValueError(f"Catalog {path} must be a list of records or contain an 'artworks' list")
    return [r for r in data if isinstance(r, dict)]


class StaticCatalogSource(SourceAdapter):
    """
    Keyword-overlap search over an in-memory list of records.

    Records are returned in catalog order, keeping only those that share at least one
    keyword with the query (case-insensitive).
    """

    def __init__(self, records: list[dict[str, Any]], source_id: str = "catalog:legacy") -> None:
        self.source_id = source_id
        self._records = list(records)

    @classmethod
    def from_file(cls, path: str | Path, source_id: str = "catalog:legacy") -> "StaticCatalogSource":
        records = load_catalog(path)
        _log.info("Loaded %s records for %s from %s", len(records), source_id, path)
        return cls(records, source_id=source_id)

    def __len__(self) -> int:
        return len(self._records)

    async def search(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        wanted = {k.strip().lower() for k in keywords if k.strip()}
        if not wanted or limit <= 0:
            return []
        matches = []
        for record in self._records:
            if wanted & {k.lower() for k in record_keywords(record)}:
                matches.append(record)
                if len(matches) >= limit:
                    break
        return matches
