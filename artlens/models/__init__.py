"""SQLModel table/entity definitions. Used by Repository layer only."""

from artlens.models.entities import (
    AnalysisPayment,
    AnalysisRecord,
    Artwork,
    PaymentStatus,
)

__all__ = [
    "AnalysisPayment",
    "AnalysisRecord",
    "Artwork",
    "PaymentStatus",
]
