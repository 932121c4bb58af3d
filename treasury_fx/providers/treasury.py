"""Client for the US Treasury "Rates of Exchange" dataset."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from treasury_fx.exceptions import UpstreamRequestError
from treasury_fx.models import ExchangeRate, RateFound, RateLookup, RateNotFound
from treasury_fx.providers.resilience import CircuitBreaker, build_retrying
from treasury_fx.settings import ProviderSettings
from treasury_fx.utils.cancellation import CancellationToken, ensure_token
from treasury_fx.utils.date_range import ResolutionWindow
from treasury_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

CURRENCY_FIELD = "country_currency_desc"
DATE_FIELD = "record_date"
RATE_FIELD = "exchange_rate"


def build_query(currency_key: str, anchor_date: date, months_back: int) -> dict[str, str]:
    """Return query parameters selecting the newest row inside the window."""

    window = ResolutionWindow.ending_at(anchor_date, months_back)
    filters = ",".join(
        [
            f"{DATE_FIELD}:lte:{window.end.isoformat()}",
            f"{DATE_FIELD}:gte:{window.start.isoformat()}",
            f"{CURRENCY_FIELD}:eq:{currency_key}",
        ]
    )
    return {"filter": filters, "sort": f"-{DATE_FIELD}", "page[size]": "1"}


def parse_rates_payload(currency_key: str, payload: Any) -> RateLookup:
    """Extract the first record of a rates response.

    Anything short of a well-formed first record is "no data", never an error.
    """

    if not isinstance(payload, dict):
        return RateNotFound("response body is not a JSON object")
    records = payload.get("data")
    if not isinstance(records, list) or not records:
        return RateNotFound("no matching records")
    first = records[0]
    if not isinstance(first, dict):
        return RateNotFound("first record is not an object")
    raw_date = first.get(DATE_FIELD)
    raw_rate = first.get(RATE_FIELD)
    if not isinstance(raw_date, str) or not raw_date.strip():
        return RateNotFound(f"missing {DATE_FIELD}")
    if not isinstance(raw_rate, str) or not raw_rate.strip():
        return RateNotFound(f"missing {RATE_FIELD}")
    try:
        record_date = date.fromisoformat(raw_date.strip())
        rate = Decimal(raw_rate.strip())
        return RateFound(ExchangeRate(currency_key, record_date, rate))
    except (ValueError, InvalidOperation) as exc:
        LOGGER.warning("Discarding malformed rate record for %s: %s", currency_key, exc)
        return RateNotFound(f"malformed record: {exc}")


class TreasuryRateProvider:
    """Fetches the latest rate for a currency key, wrapped in retry and circuit breaking."""

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        *,
        session: requests.Session | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self.settings = settings or ProviderSettings()
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.breaker = breaker or CircuitBreaker.from_settings(self.settings)

    def fetch_latest(
        self,
        currency_key: str,
        anchor_date: date,
        months_back: int = 6,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> RateLookup:
        token = ensure_token(cancel_token)
        token.raise_if_cancelled()
        params = build_query(currency_key, anchor_date, months_back)

        self.breaker.before_call()
        try:
            payload = self._get_with_retry(params, token)
        except UpstreamRequestError as exc:
            if exc.transient:
                self.breaker.record_failure()
            else:
                self.breaker.release()
            raise
        except Exception:
            self.breaker.release()
            raise
        self.breaker.record_success()

        lookup = parse_rates_payload(currency_key, payload)
        window = ResolutionWindow.ending_at(anchor_date, months_back)
        if isinstance(lookup, RateFound) and not window.contains(lookup.rate.record_date):
            LOGGER.warning(
                "Ignoring %s rate dated %s outside %s..%s",
                currency_key,
                lookup.rate.record_date,
                window.start,
                window.end,
            )
            return RateNotFound("record outside the look-back window")
        return lookup

    def _get_with_retry(self, params: dict[str, str], token: CancellationToken) -> Any:
        for attempt in build_retrying(self.settings, token):
            with attempt:
                return self._send(params, token)
        raise AssertionError("unreachable: tenacity re-raises the last failure")  # pragma: no cover

    def _send(self, params: dict[str, str], token: CancellationToken) -> Any:
        token.raise_if_cancelled()
        url = self.settings.rates_url
        try:
            response = self.session.get(url, params=params, timeout=self.settings.timeout_seconds)
        except requests.Timeout as exc:
            raise UpstreamRequestError(f"Timed out calling {url}", transient=True) from exc
        except requests.ConnectionError as exc:
            raise UpstreamRequestError(f"Could not connect to {url}", transient=True) from exc
        except requests.RequestException as exc:
            raise UpstreamRequestError(f"Request to {url} failed: {exc}") from exc
        token.raise_if_cancelled()

        status = response.status_code
        if not response.ok:
            raise UpstreamRequestError(
                f"Rates service responded with HTTP {status}",
                status_code=status,
                transient=status >= 500,
            )
        try:
            return response.json()
        except ValueError:
            LOGGER.warning("Rates service returned a non-JSON body (HTTP %s)", status)
            return None

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "TreasuryRateProvider":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


__all__ = ["TreasuryRateProvider", "build_query", "parse_rates_payload"]
