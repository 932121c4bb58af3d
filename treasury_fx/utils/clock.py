"""Clock abstraction so callers and tests can control "now"."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current UTC time."""

    def utc_now(self) -> datetime:
        ...  # pragma: no cover - protocol definition

    def utc_today(self) -> date:
        ...  # pragma: no cover - protocol definition


class SystemClock:
    """Clock backed by the host's wall clock."""

    def utc_now(self) -> datetime:
        return datetime.now(timezone.utc)

    def utc_today(self) -> date:
        return self.utc_now().date()


__all__ = ["Clock", "SystemClock"]
