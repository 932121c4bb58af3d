"""CLI for resolving a Treasury exchange rate and optionally converting a USD amount."""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Sequence

from treasury_fx import TreasuryFx
from treasury_fx.exceptions import TreasuryFxError
from treasury_fx.settings import ProviderSettings
from treasury_fx.utils.date_range import parse_date
from treasury_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["parse_args", "main"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--currency",
        dest="currency_key",
        required=True,
        help="Currency key as published by the Treasury (e.g. Canada-Dollar)",
    )
    parser.add_argument("--date", dest="anchor_date", help="As-of date (YYYY-MM-DD); default today")
    parser.add_argument("--amount", dest="amount", help="USD amount to convert (e.g. 10.01)")
    parser.add_argument("--db", dest="db_url", help="Cache DSN, e.g. sqlite:///fx.db")
    parser.add_argument(
        "--timeout",
        dest="timeout_seconds",
        type=float,
        default=None,
        help="Per-attempt upstream timeout in seconds",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = ProviderSettings.from_env()
        if args.timeout_seconds is not None:
            settings = replace(settings, timeout_seconds=args.timeout_seconds)
        anchor = parse_date(args.anchor_date) if args.anchor_date else None
    except ValueError as exc:
        LOGGER.error("Invalid input: %s", exc)
        return 2

    fx: TreasuryFx | None = None
    try:
        fx = TreasuryFx(args.db_url, settings=settings)
        if args.amount is not None:
            result = fx.convert(args.amount, args.currency_key, anchor)
            print(
                f"{result.original} -> {result.converted} "
                f"(rate {result.exchange_rate} dated {result.rate_date.isoformat()})"
            )
        else:
            rate = fx.resolve(args.currency_key, anchor)
            print(f"{rate.currency_key} {rate.rate} dated {rate.record_date.isoformat()}")
    except TreasuryFxError as exc:
        LOGGER.error("%s: %s", exc.code, exc)
        return 1
    except ValueError as exc:
        LOGGER.error("Invalid input: %s", exc)
        return 2
    finally:
        if fx is not None:
            fx.close()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
