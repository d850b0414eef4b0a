"""Error taxonomy for the analysis engine.

Only InputError and FatalAnalysisError reach callers as exceptions; a denied access check is
returned as a RejectedResponse value. Per-image, per-source and per-probe failures are
absorbed where they happen.
"""


class AnalysisError(Exception):
    """Base class for engine errors surfaced to callers."""


class InputError(AnalysisError):
    """Request rejected before any work: no images, or more than the hard cap."""


class FatalAnalysisError(AnalysisError):
    """Batch aborted (storage unavailable, timeout, unexpected failure). No partial results."""


class PaymentLookupError(Exception):
    """The payment-history store could not be read."""
