"""Pydantic data contracts for AI models and per-image tag analysis."""

from pydantic import BaseModel, Field


class ModelCard(BaseModel):
    """Metadata identifying an AI/vision model."""

    name: str
    version: str


class ImageTagSet(BaseModel):
    """Tags for one uploaded image. Immutable once produced by an analyzer."""

    model_config = {"frozen": True}

    keywords: list[str] = Field(default_factory=list)
    colors: list[str] = Field(default_factory=list)
    style: str = ""
    mood: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def zero(cls) -> "ImageTagSet":
        """Placeholder used when analysis of an image fails; keeps the batch going."""
        return cls()

    def tokens(self) -> list[str]:
        """Keywords, colors, style and mood as one ordered list (blank labels omitted)."""
        out = [*self.keywords, *self.colors]
        if self.style:
            out.append(self.style)
        if self.mood:
            out.append(self.mood)
        return out
