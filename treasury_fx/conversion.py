"""Apply resolved rates to USD amounts for purchases and balances."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from treasury_fx.models import ExchangeRate, Money
from treasury_fx.resolver import RateResolver
from treasury_fx.utils.cancellation import CancellationToken
from treasury_fx.utils.clock import Clock


def convert_amount(amount: Money, rate: ExchangeRate) -> Money:
    """Convert a USD amount with ``rate``, rounding to cents half-away-from-zero."""

    if amount.currency != "USD":
        raise ValueError(f"Only USD amounts can be converted, got {amount.currency}")
    return amount.convert_to(rate.currency_key, rate.rate)


@dataclass(frozen=True, slots=True)
class ConvertedAmount:
    """A USD amount alongside its converted value and the rate that produced it."""

    original: Money
    currency_key: str
    exchange_rate: Decimal
    rate_date: date
    converted: Money

    @classmethod
    def build(cls, amount: Money, rate: ExchangeRate) -> "ConvertedAmount":
        return cls(
            original=amount,
            currency_key=rate.currency_key,
            exchange_rate=rate.rate,
            rate_date=rate.record_date,
            converted=convert_amount(amount, rate),
        )


@dataclass(frozen=True, slots=True)
class BalanceView:
    credit_limit: Money
    total_purchases: Money
    available: Money
    as_of: date | None = None
    conversion: ConvertedAmount | None = None


def convert_purchase(
    resolver: RateResolver,
    amount: Money,
    currency_key: str,
    transaction_date: date,
    *,
    cancel_token: CancellationToken | None = None,
) -> ConvertedAmount:
    """Convert a purchase using the rate in effect on its transaction date."""

    rate = resolver.resolve(currency_key, transaction_date, cancel_token=cancel_token)
    return ConvertedAmount.build(amount, rate)


def available_balance(credit_limit: Money, purchases: Iterable[Money]) -> tuple[Money, Money]:
    """Return ``(total_purchases, available)``; available never drops below zero."""

    total_cents = sum(purchase.amount_cents for purchase in purchases)
    available_cents = max(0, credit_limit.amount_cents - total_cents)
    return Money.from_cents(total_cents), Money.from_cents(available_cents)


def convert_balance(
    resolver: RateResolver,
    clock: Clock,
    credit_limit: Money,
    purchases: Iterable[Money],
    currency_key: str | None = None,
    as_of: date | None = None,
    *,
    cancel_token: CancellationToken | None = None,
) -> BalanceView:
    """Compute the available balance and optionally convert it.

    Without ``currency_key`` the view is USD only. ``as_of`` defaults to the
    clock's current UTC date.
    """

    total, available = available_balance(credit_limit, purchases)
    if currency_key is None or not currency_key.strip():
        return BalanceView(credit_limit=credit_limit, total_purchases=total, available=available)

    anchor = as_of or clock.utc_today()
    rate = resolver.resolve(currency_key, anchor, cancel_token=cancel_token)
    return BalanceView(
        credit_limit=credit_limit,
        total_purchases=total,
        available=available,
        as_of=anchor,
        conversion=ConvertedAmount.build(available, rate),
    )


__all__ = [
    "BalanceView",
    "ConvertedAmount",
    "available_balance",
    "convert_amount",
    "convert_balance",
    "convert_purchase",
]
