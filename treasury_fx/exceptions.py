"""Error types raised by the rate resolution engine."""

from __future__ import annotations


class TreasuryFxError(Exception):
    """Base class for errors surfaced to resolver callers.

    ``code`` is a stable identifier callers can log or return to clients, and
    ``http_status`` is the status an HTTP layer should map the error to.
    """

    code: str = "FX-0000"
    http_status: int = 500


class RateValidationError(TreasuryFxError, ValueError):
    """The caller supplied an unusable argument (e.g. a blank currency key)."""

    code = "VAL-0001"
    http_status = 400


class ConversionUnavailableError(TreasuryFxError):
    """No exchange rate exists for the currency within the look-back window."""

    code = "FX-4220"
    http_status = 422


class UpstreamUnavailableError(TreasuryFxError):
    """The rates service failed and no cached rate of any age exists."""

    code = "FX-5030"
    http_status = 503


class UpstreamRequestError(Exception):
    """Transport-level failure talking to the rates service.

    Raised by providers only; the resolver classifies it. ``transient`` marks
    failures worth retrying (timeouts, connection errors, 5xx).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class CircuitOpenError(UpstreamRequestError):
    """The circuit breaker rejected the call without touching the network."""

    def __init__(self, message: str, *, retry_after: float = 0.0) -> None:
        super().__init__(message, transient=False)
        self.retry_after = retry_after


class OperationCancelled(Exception):
    """The caller cancelled the resolution before it completed."""


__all__ = [
    "CircuitOpenError",
    "ConversionUnavailableError",
    "OperationCancelled",
    "RateValidationError",
    "TreasuryFxError",
    "UpstreamRequestError",
    "UpstreamUnavailableError",
]
