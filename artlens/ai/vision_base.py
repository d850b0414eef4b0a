"""Abstract base and mock implementation for vision analyzers."""

import hashlib
from abc import ABC, abstractmethod

from artlens.ai.schema import ImageTagSet, ModelCard


class BaseVisionAnalyzer(ABC):
    """Abstract base for image analysis (keywords, colors, style, mood, confidence)."""

    @abstractmethod
    def get_model_card(self) -> ModelCard:
        """Return model identity (name, version)."""
        ...

    @abstractmethod
    def analyze_image(self, image_bytes: bytes) -> ImageTagSet:
        """Analyze raw image bytes; return the tag set. May raise on any failure."""
        ...


_MOCK_STYLES = ("impressionism", "abstract", "realism", "minimalism")
_MOCK_MOODS = ("calm", "vibrant", "melancholic", "serene")


class MockVisionAnalyzer(BaseVisionAnalyzer):
    """Deterministic placeholder analyzer for testing and development.

    Tags depend only on the image content hash, so the same upload always yields the same tags.
    """

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="mock-analyzer", version="1.0")

    def analyze_image(self, image_bytes: bytes) -> ImageTagSet:
        if not image_bytes:
            raise ValueError("Empty image payload")
        digest = hashlib.sha256(image_bytes).digest()
        return ImageTagSet(
            keywords=["artwork", "painting", "visual-art"],
            colors=["blue", "red"] if digest[0] % 2 == 0 else ["green", "yellow"],
            style=_MOCK_STYLES[digest[1] % len(_MOCK_STYLES)],
            mood=_MOCK_MOODS[digest[2] % len(_MOCK_MOODS)],
            confidence=0.85,
        )
