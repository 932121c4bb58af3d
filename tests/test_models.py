from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from treasury_fx.models import ExchangeRate, Money, RateNotFound, round_half_away


def test_conversion_rounds_to_cents() -> None:
    converted = Money.from_usd("10.01").convert_to("Canada-Dollar", Decimal("1.612"))

    assert converted.amount_cents == 1614
    assert converted.currency == "Canada-Dollar"
    assert str(converted) == "16.14 Canada-Dollar"


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("1.125"), Decimal("1.13")),
        (Decimal("-1.125"), Decimal("-1.13")),
        (Decimal("2.5049"), Decimal("2.50")),
        (Decimal("0.005"), Decimal("0.01")),
    ],
)
def test_round_half_away_from_zero(value: Decimal, expected: Decimal) -> None:
    assert round_half_away(value) == expected


def test_convert_ties_go_up() -> None:
    assert Money.from_usd("1.00").convert_to("X", Decimal("1.125")).amount_cents == 113


def test_money_from_usd_accepts_strings_and_ints() -> None:
    assert Money.from_usd("12.345").amount_cents == 1235
    assert Money.from_usd(7).amount_cents == 700
    assert Money.from_usd(Decimal("0.10")).to_decimal() == Decimal("0.10")


def test_money_rejects_floats_and_negatives() -> None:
    with pytest.raises(TypeError):
        Money.from_usd(1.5)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Money.from_usd("-0.01")
    with pytest.raises(ValueError):
        Money(-1)
    with pytest.raises(TypeError):
        Money(True)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Money.from_usd("not-a-number")


def test_money_requires_currency() -> None:
    with pytest.raises(ValueError):
        Money(100, " ")


def test_exchange_rate_coerces_and_validates() -> None:
    rate = ExchangeRate("Euro Zone-Euro", date(2024, 9, 30), "0.897")  # type: ignore[arg-type]
    assert rate.rate == Decimal("0.897")

    with pytest.raises(ValueError):
        ExchangeRate("Euro Zone-Euro", date(2024, 9, 30), Decimal("0"))
    with pytest.raises(ValueError):
        ExchangeRate("", date(2024, 9, 30), Decimal("1.1"))
    with pytest.raises(ValueError):
        ExchangeRate("Euro Zone-Euro", date(2024, 9, 30), Decimal("NaN"))


def test_rate_not_found_has_default_reason() -> None:
    assert RateNotFound().reason == "no matching records"


def test_amounts_beyond_decimal_precision_are_rejected() -> None:
    with pytest.raises(ValueError):
        Money.from_usd("1e30")
    with pytest.raises(ValueError):
        Money.from_cents(10**40).convert_to("X", Decimal("1.5"))
