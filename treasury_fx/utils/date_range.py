"""Calendar helpers for computing rate look-back windows."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime

DEFAULT_MONTHS_BACK = 6


@dataclass(frozen=True)
class ResolutionWindow:
    """Closed date window ``[start, end]`` in which a rate is considered current."""

    start: date
    end: date

    @classmethod
    def ending_at(cls, anchor_date: date, months_back: int = DEFAULT_MONTHS_BACK) -> "ResolutionWindow":
        """Return the window spanning ``months_back`` calendar months up to ``anchor_date``."""

        if months_back < 0:
            raise ValueError("months_back must not be negative")
        return cls(start=add_months(anchor_date, -months_back), end=anchor_date)

    def contains(self, day: date) -> bool:
        """Return True when ``day`` falls inside the window (both bounds inclusive)."""

        return self.start <= day <= self.end


def parse_date(value: str | date) -> date:
    """Parse a date string in ISO format to :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole calendar months, clamping to the target month's end.

    ``add_months(date(2024, 12, 31), -6)`` is ``date(2024, 6, 30)``.
    """

    month_index = day.year * 12 + (day.month - 1) + months
    year, month_zero = divmod(month_index, 12)
    month = month_zero + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


__all__ = ["DEFAULT_MONTHS_BACK", "ResolutionWindow", "add_months", "parse_date"]
