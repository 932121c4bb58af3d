"""Backend strategy interface for the exchange-rate cache."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from treasury_fx.models import ExchangeRate, RateCacheEntry
from treasury_fx.utils.cancellation import CancellationToken
from treasury_fx.utils.date_range import DEFAULT_MONTHS_BACK


class RateCacheBackend(ABC):
    """Durable store of rates keyed by ``(currency_key, record_date)``."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables/collections and verify connectivity."""

    @abstractmethod
    def get_latest_in_window(
        self,
        currency_key: str,
        anchor_date: date,
        months_back: int = DEFAULT_MONTHS_BACK,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        """Return the newest rate dated inside the window ending at ``anchor_date``."""

    @abstractmethod
    def get_any_latest(
        self,
        currency_key: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        """Return the newest cached rate for the currency, whatever its age."""

    @abstractmethod
    def upsert(
        self,
        rate: ExchangeRate,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """Insert the rate or fully replace the row with the same key."""

    @abstractmethod
    def list_entries(self, currency_key: str | None = None) -> list[RateCacheEntry]:
        """Return cached rows ordered by currency and date."""

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = ["RateCacheBackend"]
