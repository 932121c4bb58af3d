"""Cache-first exchange-rate resolution with stale fallback on upstream outages."""

from __future__ import annotations

from datetime import date

from treasury_fx.db.base_backend import RateCacheBackend
from treasury_fx.exceptions import (
    ConversionUnavailableError,
    RateValidationError,
    UpstreamRequestError,
    UpstreamUnavailableError,
)
from treasury_fx.models import ExchangeRate, RateFound
from treasury_fx.providers.strategy import RateProvider
from treasury_fx.utils.cancellation import CancellationToken, ensure_token
from treasury_fx.utils.date_range import DEFAULT_MONTHS_BACK
from treasury_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


class RateResolver:
    """Answers "which rate applies to currency C as of date D".

    Resolution order:

    1. the newest cached rate within ``months_back`` calendar months of the
       anchor date (no network call on a hit);
    2. the upstream provider, whose answer is cached before being returned;
    3. when the provider fails at the transport level, the newest cached rate
       of *any* age.

    A successful upstream answer without data is authoritative and raises
    :class:`ConversionUnavailableError` without falling back. A transport
    failure with nothing cached raises :class:`UpstreamUnavailableError`.

    The resolver holds no per-call state, so one instance can serve concurrent
    callers; concurrent misses for the same key may each hit upstream and
    upsert the same row.
    """

    def __init__(
        self,
        cache: RateCacheBackend,
        provider: RateProvider,
        *,
        months_back: int = DEFAULT_MONTHS_BACK,
    ) -> None:
        self.cache = cache
        self.provider = provider
        self.months_back = months_back

    def resolve(
        self,
        currency_key: str,
        anchor_date: date,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate:
        if not currency_key or not currency_key.strip():
            raise RateValidationError("Currency key cannot be empty.")
        token = ensure_token(cancel_token)

        cached = self.cache.get_latest_in_window(
            currency_key, anchor_date, self.months_back, cancel_token=token
        )
        if cached is not None:
            LOGGER.debug(
                "Cache hit for %s as of %s (rate dated %s)",
                currency_key,
                anchor_date,
                cached.record_date,
            )
            return cached

        try:
            lookup = self.provider.fetch_latest(
                currency_key, anchor_date, self.months_back, cancel_token=token
            )
        except UpstreamRequestError as exc:
            return self._stale_fallback(currency_key, anchor_date, exc, token)

        if isinstance(lookup, RateFound):
            self.cache.upsert(lookup.rate, cancel_token=token)
            LOGGER.info(
                "Fetched and cached %s rate %s dated %s",
                currency_key,
                lookup.rate.rate,
                lookup.rate.record_date,
            )
            return lookup.rate

        LOGGER.info("No %s rate upstream for %s: %s", currency_key, anchor_date, lookup.reason)
        raise ConversionUnavailableError(
            f"No exchange rate available for {currency_key} within "
            f"{self.months_back} months prior to {anchor_date.isoformat()}."
        )

    def _stale_fallback(
        self,
        currency_key: str,
        anchor_date: date,
        error: UpstreamRequestError,
        token: CancellationToken,
    ) -> ExchangeRate:
        stale = self.cache.get_any_latest(currency_key, cancel_token=token)
        if stale is not None:
            LOGGER.warning(
                "Upstream unavailable (%s); serving stale %s rate dated %s for %s",
                error,
                currency_key,
                stale.record_date,
                anchor_date,
            )
            return stale
        LOGGER.error("Upstream unavailable and nothing cached for %s: %s", currency_key, error)
        raise UpstreamUnavailableError(
            "Foreign exchange upstream service is unavailable and no cached rate "
            f"exists for {currency_key}."
        ) from error


__all__ = ["RateResolver"]
