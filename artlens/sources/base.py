"""Abstract base for candidate sources (museum APIs, registry, static catalogs)."""

from abc import ABC, abstractmethod
from typing import Any


class SourceAdapter(ABC):
    """
    A catalog that returns raw artwork records for a keyword query.

    Records keep the source's own field names; the aggregator normalizes them.
    Implementations may raise on any failure; the aggregator contains it.
    """

    source_id: str = ""
    is_internal: bool = False

    @abstractmethod
    async def search(self, keywords: list[str], limit: int) -> list[dict[str, Any]]:
        """Return up to `limit` raw records matching the keywords, in source relevance order."""
        ...

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None
