"""Value types shared by the cache, provider and resolver."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENTS = Decimal("0.01")


def round_half_away(value: Decimal, places: Decimal = CENTS) -> Decimal:
    """Round ``value`` to ``places`` with ties going away from zero.

    ``decimal.ROUND_HALF_UP`` is the away-from-zero variant (``-0.125`` becomes
    ``-0.13``), which is what converted amounts are contractually rounded with.
    """

    try:
        return value.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"{value} is too large to round to {places}") from exc


def _to_decimal(value: Decimal | str | int, field: str) -> Decimal:
    if isinstance(value, float):
        raise TypeError(f"{field} must be a Decimal, str or int, not float")
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{field} is not a valid decimal: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be finite")
    return result


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """Foreign currency units per 1 USD for ``currency_key`` on ``record_date``."""

    currency_key: str
    record_date: date
    rate: Decimal

    def __post_init__(self) -> None:
        if not self.currency_key or not self.currency_key.strip():
            raise ValueError("currency_key cannot be empty")
        rate = _to_decimal(self.rate, "rate")
        if rate <= 0:
            raise ValueError("rate must be positive")
        object.__setattr__(self, "rate", rate)


@dataclass(frozen=True, slots=True)
class RateCacheEntry:
    """Persisted view of an exchange rate and when it was written."""

    rate: ExchangeRate
    cached_at: datetime

    @property
    def currency_key(self) -> str:
        return self.rate.currency_key

    @property
    def record_date(self) -> date:
        return self.rate.record_date


@dataclass(frozen=True, slots=True)
class RateFound:
    """Upstream answered with a usable rate."""

    rate: ExchangeRate


@dataclass(frozen=True, slots=True)
class RateNotFound:
    """Upstream answered successfully but had no usable rate."""

    reason: str = "no matching records"


RateLookup = Union[RateFound, RateNotFound]


@dataclass(frozen=True, slots=True)
class Money:
    """Non-negative fixed-point amount held as integer minor units (cents)."""

    amount_cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        if isinstance(self.amount_cents, bool) or not isinstance(self.amount_cents, int):
            raise TypeError("amount_cents must be an int")
        if self.amount_cents < 0:
            raise ValueError("amount cannot be negative")
        if not self.currency or not self.currency.strip():
            raise ValueError("currency cannot be empty")

    @classmethod
    def from_usd(cls, amount: Decimal | str | int) -> "Money":
        """Build a USD amount, rounding to whole cents half-away-from-zero."""

        value = _to_decimal(amount, "amount")
        if value < 0:
            raise ValueError("amount cannot be negative")
        cents = round_half_away(value * 100, Decimal("1"))
        return cls(int(cents), "USD")

    @classmethod
    def from_cents(cls, cents: int, currency: str = "USD") -> "Money":
        return cls(cents, currency)

    def to_decimal(self) -> Decimal:
        return round_half_away(Decimal(self.amount_cents) / 100)

    def convert_to(self, currency: str, rate: Decimal) -> "Money":
        """Multiply by ``rate`` and round the result to cents."""

        rate_value = _to_decimal(rate, "rate")
        if rate_value <= 0:
            raise ValueError("exchange rate must be positive")
        converted = round_half_away(self.to_decimal() * rate_value)
        return Money(int(converted * 100), currency)

    def __str__(self) -> str:
        return f"{self.to_decimal():.2f} {self.currency}"


__all__ = [
    "CENTS",
    "ExchangeRate",
    "Money",
    "RateCacheEntry",
    "RateFound",
    "RateLookup",
    "RateNotFound",
    "round_half_away",
]
