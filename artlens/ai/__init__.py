"""AI module: data contracts and vision abstraction."""

from artlens.ai.schema import ImageTagSet, ModelCard
from artlens.ai.vision_base import BaseVisionAnalyzer, MockVisionAnalyzer
from artlens.ai.factory import get_vision_analyzer

__all__ = [
    "BaseVisionAnalyzer",
    "ImageTagSet",
    "MockVisionAnalyzer",
    "ModelCard",
    "get_vision_analyzer",
]
