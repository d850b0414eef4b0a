"""Repository layer: database access only. No ORM calls in business logic."""

from artlens.repository.analysis_repo import AnalysisRepository
from artlens.repository.artwork_repo import ArtworkRepository
from artlens.repository.payment_repo import PaymentRepository

__all__ = [
    "AnalysisRepository",
    "ArtworkRepository",
    "PaymentRepository",
]
