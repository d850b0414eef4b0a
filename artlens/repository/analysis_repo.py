"""Analysis audit-log repository: store completed analyses and read per-identity history."""

from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from artlens.models.entities import AnalysisRecord


class AnalysisRepository:
    """Database access for analysis_record (append-only audit log)."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self, write: bool = False) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            if write:
                session.commit()
        finally:
            session.close()

    def save_analysis(
        self,
        *,
        identity: str | None,
        image_count: int,
        tier: str,
        individual_results: list[dict[str, Any]],
        common_signal: dict[str, Any] | None,
        recommendation_count: int,
        processing_time_ms: int,
        analyzer_model: str | None = None,
    ) -> int:
        """Insert one audit-log row; return its id."""
        with self._session_scope(write=True) as session:
            record = AnalysisRecord(
                identity=identity,
                image_count=image_count,
                tier=tier,
                individual_results=individual_results,
                common_signal=common_signal,
                recommendation_count=recommendation_count,
                processing_time_ms=processing_time_ms,
                analyzer_model=analyzer_model,
            )
            session.add(record)
            session.flush()
            assert record.id is not None
            return record.id

    def get_user_history(self, identity: str, limit: int = 20) -> list[AnalysisRecord]:
        """Return the identity's analyses, newest first."""
        with self._session_scope() as session:
            result = session.execute(
                select(AnalysisRecord)
                .where(AnalysisRecord.identity == identity)
                .order_by(AnalysisRecord.created_at.desc(), AnalysisRecord.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
