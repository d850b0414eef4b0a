"""Factory for vision analyzers. Imports are lazy so Pillow/requests load only when needed."""

from artlens.ai.vision_base import BaseVisionAnalyzer


def get_vision_analyzer(analyzer_name: str, endpoint: str | None = None) -> BaseVisionAnalyzer:
    """Return a vision analyzer by name."""
    if analyzer_name == "mock":
        from artlens.ai.vision_base import MockVisionAnalyzer

        return MockVisionAnalyzer()
    if analyzer_name == "station":
        from artlens.ai.vision_station import StationVisionAnalyzer

        return StationVisionAnalyzer(endpoint=endpoint)
    raise ValueError(f"Unknown vision analyzer: {analyzer_name}")
