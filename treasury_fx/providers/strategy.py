"""Abstractions for pluggable upstream rate providers."""

from __future__ import annotations

from datetime import date
from typing import Protocol

from treasury_fx.models import RateLookup
from treasury_fx.utils.cancellation import CancellationToken


class RateProvider(Protocol):
    """Contract for querying the latest rate inside a look-back window.

    Implementations return :class:`~treasury_fx.models.RateNotFound` when the
    service answered without usable data and raise
    :class:`~treasury_fx.exceptions.UpstreamRequestError` on transport failure.
    """

    def fetch_latest(
        self,
        currency_key: str,
        anchor_date: date,
        months_back: int = 6,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> RateLookup:
        ...  # pragma: no cover - protocol definition


__all__ = ["RateProvider"]
