"""Test doubles for exercising the resolver without a network or a real clock."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from treasury_fx.db.base_backend import RateCacheBackend
from treasury_fx.models import ExchangeRate, RateCacheEntry, RateLookup
from treasury_fx.utils.date_range import ResolutionWindow


def make_response(
    status_code: int = 200,
    body: Any = None,
    *,
    raw: bytes | None = None,
    url: str = "https://example.test/",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.encoding = "utf-8"
    if raw is not None:
        response._content = raw
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    return response


def rates_body(*records: tuple[str, str]) -> Dict[str, Any]:
    return {
        "data": [
            {"record_date": record_date, "exchange_rate": rate, "country_currency_desc": "X"}
            for record_date, rate in records
        ],
        "meta": {"count": len(records)},
    }


class FixedClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 12, 31, 12, 0, tzinfo=timezone.utc)

    def utc_now(self) -> datetime:
        return self.now

    def utc_today(self) -> date:
        return self.now.date()


class FakeSession:
    """Stands in for ``requests.Session`` and replays queued outcomes in order.

    Each outcome is a ``requests.Response``, an exception instance to raise,
    or a callable receiving the call dict. The last outcome repeats.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes: List[Any] = list(outcomes)
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def get(self, url: str, params: Optional[Dict[str, str]] = None, timeout: Any = None):
        call = {"url": url, "params": dict(params or {}), "timeout": timeout}
        self.calls.append(call)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(call)
        return outcome

    def close(self) -> None:
        self.closed = True


class MemoryCache(RateCacheBackend):
    def __init__(self, *rates: ExchangeRate) -> None:
        self.rows: Dict[tuple[str, date], ExchangeRate] = {}
        self.upserts: List[ExchangeRate] = []
        self.reads = 0
        for rate in rates:
            self.rows[(rate.currency_key, rate.record_date)] = rate

    def ensure_schema(self) -> None:
        return None

    def get_latest_in_window(self, currency_key, anchor_date, months_back=6, *, cancel_token=None):
        self.reads += 1
        window = ResolutionWindow.ending_at(anchor_date, months_back)
        matches = [
            rate
            for (key, _), rate in self.rows.items()
            if key == currency_key and window.contains(rate.record_date)
        ]
        return max(matches, key=lambda rate: rate.record_date) if matches else None

    def get_any_latest(self, currency_key, *, cancel_token=None):
        self.reads += 1
        matches = [rate for (key, _), rate in self.rows.items() if key == currency_key]
        return max(matches, key=lambda rate: rate.record_date) if matches else None

    def upsert(self, rate, *, cancel_token=None) -> None:
        self.upserts.append(rate)
        self.rows[(rate.currency_key, rate.record_date)] = rate

    def list_entries(self, currency_key=None) -> list[RateCacheEntry]:
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        return [
            RateCacheEntry(rate=rate, cached_at=stamp)
            for (key, _), rate in sorted(self.rows.items())
            if currency_key is None or key == currency_key
        ]


class StubProvider:
    """Provider double returning a fixed lookup or raising a fixed error."""

    def __init__(
        self,
        result: RateLookup | BaseException | Callable[..., RateLookup] | None = None,
    ) -> None:
        self.result = result
        self.calls: List[tuple[str, date, int]] = []

    def fetch_latest(self, currency_key, anchor_date, months_back=6, *, cancel_token=None):
        self.calls.append((currency_key, anchor_date, months_back))
        if isinstance(self.result, BaseException):
            raise self.result
        if callable(self.result):
            return self.result(currency_key, anchor_date, months_back)
        return self.result
