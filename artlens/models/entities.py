"""SQLModel table/entity definitions for ArtLens. Postgres 16+ only (JSONB)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import Column, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Enums (stored as strings in DB) ---


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


# --- Tables ---


class AnalysisPayment(SQLModel, table=True):
    """One-off payment unlocking a paid tier for 24h. Written by the checkout flow (out of engine scope)."""

    __tablename__ = "analysis_payment"
    __table_args__ = (
        Index("ix_analysis_payment_identity_tier_created", "identity", "tier", "created_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    identity: str = Field(nullable=False)
    tier: str = Field(nullable=False)
    image_count: int = 0
    amount_cents: int = 0
    status: PaymentStatus = Field(default=PaymentStatus.pending)
    external_ref: str | None = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
    completed_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))


class AnalysisRecord(SQLModel, table=True):
    """Audit log row for one completed multi-image analysis."""

    __tablename__ = "analysis_record"
    __table_args__ = (Index("ix_analysis_record_identity_created", "identity", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    identity: str | None = Field(default=None)
    image_count: int = 0
    tier: str = ""
    individual_results: list[dict[str, Any]] | None = Field(default=None, sa_column=Column(JSONB))
    common_signal: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB))
    recommendation_count: int = 0
    processing_time_ms: int = 0
    analyzer_model: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))


class Artwork(SQLModel, table=True):
    """First-party registry artwork (authoritative catalog searched by the `registry` source)."""

    __tablename__ = "artwork"
    __table_args__ = (Index("ix_artwork_keywords_gin", "keywords", postgresql_using="gin"),)

    id: int | None = Field(default=None, primary_key=True)
    title: str = ""
    artist: str = ""
    image_url: str | None = Field(default=None)
    thumbnail_url: str | None = Field(default=None)
    keywords: list[str] | None = Field(default=None, sa_column=Column(JSONB))
    platform: str | None = Field(default=None)
    source_url: str | None = Field(default=None)
    available: bool = True
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
