"""Candidate sources: museum APIs, the artwork registry and static catalogs."""

import logging

from artlens.core.config import Settings
from artlens.sources.base import SourceAdapter
from artlens.sources.museums import ChicagoMuseumSource, ClevelandMuseumSource
from artlens.sources.registry import ArtworkSearch, RegistrySource
from artlens.sources.static_catalog import StaticCatalogSource, load_catalog

_log = logging.getLogger(__name__)


def build_sources(settings: Settings, artwork_repo: ArtworkSearch | None = None) -> list[SourceAdapter]:
    """Instantiate the sources named in settings.sources, in that order (merge order)."""
    sources: list[SourceAdapter] = []
    for name in settings.sources:
        if name == RegistrySource.source_id:
            if artwork_repo is None:
                _log.warning("Source %s enabled but no artwork repository is available; skipped", name)
                continue
            sources.append(RegistrySource(artwork_repo))
        elif name == "catalog:legacy":
            if not settings.legacy_catalog_path:
                _log.info("Source %s enabled but legacy_catalog_path is not set; skipped", name)
                continue
            sources.append(StaticCatalogSource.from_file(settings.legacy_catalog_path, source_id=name))
        elif name == ChicagoMuseumSource.source_id:
            sources.append(ChicagoMuseumSource())
        elif name == ClevelandMuseumSource.source_id:
            sources.append(ClevelandMuseumSource())
        else:
            raise ValueError(f"Unknown candidate source: {name}")
    return sources


__all__ = [
    "ChicagoMuseumSource",
    "ClevelandMuseumSource",
    "RegistrySource",
    "SourceAdapter",
    "StaticCatalogSource",
    "build_sources",
    "load_catalog",
]
