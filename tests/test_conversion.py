from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from helpers import FixedClock, MemoryCache, StubProvider
from treasury_fx.conversion import (
    ConvertedAmount,
    available_balance,
    convert_amount,
    convert_balance,
    convert_purchase,
)
from treasury_fx.exceptions import ConversionUnavailableError
from treasury_fx.models import ExchangeRate, Money, RateNotFound
from treasury_fx.resolver import RateResolver

KEY = "Canada-Dollar"
RATE = ExchangeRate(KEY, date(2024, 12, 31), Decimal("1.612"))


def _resolver(*cached: ExchangeRate) -> RateResolver:
    return RateResolver(MemoryCache(*cached), StubProvider(RateNotFound()))


def test_convert_amount_rounds_half_away_from_zero() -> None:
    converted = convert_amount(Money.from_usd("10.01"), RATE)

    assert converted == Money(1614, KEY)


def test_convert_amount_requires_usd() -> None:
    with pytest.raises(ValueError):
        convert_amount(Money(100, "EUR"), RATE)


def test_convert_purchase_uses_transaction_date() -> None:
    result = convert_purchase(_resolver(RATE), Money.from_usd("10.01"), KEY, date(2025, 1, 15))

    assert result == ConvertedAmount(
        original=Money(1001),
        currency_key=KEY,
        exchange_rate=Decimal("1.612"),
        rate_date=date(2024, 12, 31),
        converted=Money(1614, KEY),
    )


def test_convert_purchase_without_rate_raises() -> None:
    with pytest.raises(ConversionUnavailableError):
        convert_purchase(_resolver(), Money.from_usd("1"), KEY, date(2025, 1, 15))


def test_available_balance_never_negative() -> None:
    total, available = available_balance(
        Money.from_usd("100"), [Money.from_usd("60"), Money.from_usd("55.50")]
    )

    assert total == Money(11550)
    assert available == Money(0)


def test_convert_balance_usd_only_without_currency() -> None:
    view = convert_balance(
        _resolver(), FixedClock(), Money.from_usd("100"), [Money.from_usd("25.25")], currency_key="  "
    )

    assert view.available == Money(7475)
    assert view.conversion is None
    assert view.as_of is None


def test_convert_balance_defaults_to_clock_date() -> None:
    view = convert_balance(
        _resolver(RATE), FixedClock(), Money.from_usd("100"), [Money.from_usd("25.25")], KEY
    )

    assert view.as_of == date(2024, 12, 31)
    assert view.conversion is not None
    assert view.conversion.converted == Money(12050, KEY)
