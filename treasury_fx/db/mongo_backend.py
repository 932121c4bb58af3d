"""MongoDB backend strategy."""

from __future__ import annotations

from datetime import date, timezone
from decimal import Decimal
from typing import Any

from treasury_fx.db.base_backend import RateCacheBackend
from treasury_fx.models import ExchangeRate, RateCacheEntry
from treasury_fx.utils.cancellation import CancellationToken, ensure_token
from treasury_fx.utils.clock import Clock, SystemClock
from treasury_fx.utils.date_range import DEFAULT_MONTHS_BACK, ResolutionWindow
from treasury_fx.utils.logger import get_logger

try:  # pragma: no cover - optional dependency
    from pymongo import MongoClient
    from pymongo.errors import PyMongoError
except ModuleNotFoundError:  # pragma: no cover - reported when a backend is built
    MongoClient = None  # type: ignore[assignment, misc]

LOGGER = get_logger(__name__)

COLLECTION_NAME = "fx_rate_cache"


def _doc_to_rate(doc: dict[str, Any]) -> ExchangeRate:
    return ExchangeRate(
        currency_key=doc["currency_key"],
        record_date=date.fromisoformat(doc["record_date"]),
        rate=Decimal(str(doc["exchange_rate"])),
    )


class MongoBackend(RateCacheBackend):
    """Backend strategy that persists cached rates inside MongoDB.

    Dates are stored as ISO strings (lexicographic order equals date order)
    and rates as decimal strings.
    """

    def __init__(
        self,
        url: str,
        *,
        database: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        if MongoClient is None:  # pragma: no cover - defensive
            raise ModuleNotFoundError("pymongo is required for MongoDB backends")
        self.url = url
        self.clock: Clock = clock or SystemClock()
        self._client = MongoClient(url)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._collection = db[COLLECTION_NAME]

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB %s collection exists", COLLECTION_NAME)
            self._client.admin.command("ping")
            self._collection.create_index([("currency_key", 1), ("record_date", -1)], unique=True)
        except PyMongoError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to ensure MongoDB schema: {exc}") from exc

    def get_latest_in_window(
        self,
        currency_key: str,
        anchor_date: date,
        months_back: int = DEFAULT_MONTHS_BACK,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        ensure_token(cancel_token).raise_if_cancelled()
        window = ResolutionWindow.ending_at(anchor_date, months_back)
        doc = self._collection.find_one(
            {
                "currency_key": currency_key,
                "record_date": {"$gte": window.start.isoformat(), "$lte": window.end.isoformat()},
            },
            sort=[("record_date", -1)],
        )
        return _doc_to_rate(doc) if doc is not None else None

    def get_any_latest(
        self,
        currency_key: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        ensure_token(cancel_token).raise_if_cancelled()
        doc = self._collection.find_one({"currency_key": currency_key}, sort=[("record_date", -1)])
        return _doc_to_rate(doc) if doc is not None else None

    def upsert(
        self,
        rate: ExchangeRate,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        ensure_token(cancel_token).raise_if_cancelled()
        key = {"currency_key": rate.currency_key, "record_date": rate.record_date.isoformat()}
        doc = {
            **key,
            "exchange_rate": str(rate.rate),
            "cached_utc": self.clock.utc_now(),
        }
        try:
            self._collection.replace_one(key, doc, upsert=True)
        except PyMongoError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to cache MongoDB rate: {exc}") from exc

    def list_entries(self, currency_key: str | None = None) -> list[RateCacheEntry]:
        query: dict[str, Any] = {}
        if currency_key is not None:
            query["currency_key"] = currency_key
        docs = self._collection.find(query).sort([("currency_key", 1), ("record_date", 1)])
        entries: list[RateCacheEntry] = []
        for doc in docs:
            cached_at = doc["cached_utc"]
            if cached_at.tzinfo is None:
                cached_at = cached_at.replace(tzinfo=timezone.utc)
            entries.append(RateCacheEntry(rate=_doc_to_rate(doc), cached_at=cached_at))
        return entries

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


__all__ = ["MongoBackend"]
