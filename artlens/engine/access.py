"""Access gate: decide whether a caller may analyze N images, based on tier and payment history."""

import asyncio
import logging
from typing import Protocol

from pydantic import BaseModel

from artlens.engine.errors import PaymentLookupError
from artlens.engine.tiers import Tier, calculate_tier

_log = logging.getLogger(__name__)

LOGIN_REQUIRED_ERROR = "Login required to purchase a paid tier"
PAYMENT_REQUIRED_ERROR = "Payment required for {tier}"
STORAGE_ERROR = "Could not verify payment history"


class PaymentLookup(Protocol):
    def has_recent_payment(self, identity: str, tier_name: str, window_hours: int = 24) -> bool: ...


class AccessDecision(BaseModel):
    can_analyze: bool
    payment_required: bool
    tier: Tier
    error: str | None = None
    # True when the decision is a denial because payment history could not be read.
    storage_failed: bool = False


def normalize_identity(identity: str | None) -> str | None:
    """Blank or whitespace-only identity means anonymous."""
    if identity is None:
        return None
    identity = identity.strip()
    return identity or None


class AccessGate:
    """
    Read-only gate. Free tier is open to everyone (including guests); paid tiers need a
    completed payment for the same tier within the lookback window. Never fails open.
    """

    def __init__(self, payments: PaymentLookup, window_hours: int = 24) -> None:
        self._payments = payments
        self._window_hours = window_hours

    async def evaluate(self, identity: str | None, image_count: int) -> AccessDecision:
        identity = normalize_identity(identity)
        tier = calculate_tier(image_count)

        if tier.price_cents == 0:
            return AccessDecision(can_analyze=True, payment_required=False, tier=tier)

        if identity is None:
            return AccessDecision(
                can_analyze=False,
                payment_required=True,
                tier=tier,
                error=LOGIN_REQUIRED_ERROR,
            )

        try:
            paid = await asyncio.to_thread(
                self._payments.has_recent_payment, identity, tier.name, self._window_hours
            )
        except PaymentLookupError as e:
            _log.error("Payment lookup failed for %s (%s): %s", identity, tier.name, e)
            return AccessDecision(
                can_analyze=False,
                payment_required=True,
                tier=tier,
                error=STORAGE_ERROR,
                storage_failed=True,
            )

        if paid:
            return AccessDecision(can_analyze=True, payment_required=False, tier=tier)
        return AccessDecision(
            can_analyze=False,
            payment_required=True,
            tier=tier,
            error=PAYMENT_REQUIRED_ERROR.format(tier=tier.name),
        )
