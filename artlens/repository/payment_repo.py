"""Payment repository: recent-payment lookup for tier gating and payment recording."""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from artlens.engine.errors import PaymentLookupError
from artlens.models.entities import AnalysisPayment, PaymentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentRepository:
    """
    Database access for analysis_payment.

    Reads are used by the access gate; the engine never writes payments except through
    record_payment (admin CLI / checkout callback).
    """

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

    def has_recent_payment(self, identity: str, tier_name: str, window_hours: int = 24) -> bool:
        """
        Return True if a completed payment for identity and exactly tier_name was created
        within the last window_hours. Raises PaymentLookupError if the store is unreachable.
        """
        cutoff = _utcnow() - timedelta(hours=window_hours)
        try:
            with self._session_scope() as session:
                count = session.scalar(
                    select(func.count())
                    .select_from(AnalysisPayment)
                    .where(
                        AnalysisPayment.identity == identity,
                        AnalysisPayment.tier == tier_name,
                        AnalysisPayment.status == PaymentStatus.completed,
                        AnalysisPayment.created_at >= cutoff,
                    )
                )
        except SQLAlchemyError as e:
            raise PaymentLookupError(str(e)) from e
        return (count or 0) > 0

    def record_payment(
        self,
        identity: str,
        tier_name: str,
        amount_cents: int,
        *,
        image_count: int = 0,
        status: PaymentStatus = PaymentStatus.completed,
        external_ref: str | None = None,
    ) -> AnalysisPayment:
        """Insert a payment row and return it."""
        now = _utcnow()
        with self._session_scope(write=True) as session:
            payment = AnalysisPayment(
                identity=identity,
                tier=tier_name,
                image_count=image_count,
                amount_cents=amount_cents,
                status=status,
                external_ref=external_ref,
                created_at=now,
                completed_at=now if status == PaymentStatus.completed else None,
            )
            session.add(payment)
            session.flush()
            session.refresh(payment)
            return payment

    def list_payments(self, identity: str, limit: int = 20) -> list[AnalysisPayment]:
        """Return the identity's payments, newest first."""
        with self._session_scope() as session:
            result = session.execute(
                select(AnalysisPayment)
                .where(AnalysisPayment.identity == identity)
                .order_by(AnalysisPayment.created_at.desc(), AnalysisPayment.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
