"""Configuration for the Treasury rates provider and its resilience policies."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from treasury_fx.utils.date_range import DEFAULT_MONTHS_BACK

DEFAULT_BASE_URL = "https://api.fiscaldata.treasury.gov/services/api/fiscal_service/"
RATES_OF_EXCHANGE_PATH = "v1/accounting/od/rates_of_exchange"

_ENV_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "base_url": ("FX_BASE_URL", str),
    "timeout_seconds": ("FX_TIMEOUT_SECONDS", float),
    "retry_count": ("FX_RETRY_COUNT", int),
    "backoff_seconds": ("FX_BACKOFF_SECONDS", float),
    "jitter_seconds": ("FX_JITTER_SECONDS", float),
    "failure_threshold": ("FX_CIRCUIT_FAILURE_THRESHOLD", int),
    "break_seconds": ("FX_CIRCUIT_BREAK_SECONDS", float),
}


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """Explicit knobs for talking to the rates service.

    ``retry_count`` counts retries, so the default makes up to three attempts.
    Backoff before retry *n* is ``backoff_seconds * 2 ** (n - 1)`` plus a random
    jitter in ``[0, jitter_seconds]``. Tests typically pass zeros everywhere.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 2.0
    retry_count: int = 2
    backoff_seconds: float = 0.2
    jitter_seconds: float = 0.1
    failure_threshold: int = 5
    break_seconds: float = 30.0
    months_back: int = DEFAULT_MONTHS_BACK

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if not self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url + "/")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.retry_count < 0:
            raise ValueError("retry_count must not be negative")
        if self.backoff_seconds < 0 or self.jitter_seconds < 0:
            raise ValueError("backoff and jitter must not be negative")
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.break_seconds < 0:
            raise ValueError("break_seconds must not be negative")
        if self.months_back < 0:
            raise ValueError("months_back must not be negative")

    @property
    def rates_url(self) -> str:
        return self.base_url + RATES_OF_EXCHANGE_PATH

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProviderSettings":
        """Build settings from ``FX_*`` environment variables, keeping defaults for unset ones."""

        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for name, (variable, parser) in _ENV_VARS.items():
            raw = env.get(variable)
            if raw is None or not raw.strip():
                continue
            try:
                overrides[name] = parser(raw.strip())
            except ValueError as exc:
                raise ValueError(f"{variable} has an invalid value: {raw!r}") from exc
        return cls(**overrides)


__all__ = ["DEFAULT_BASE_URL", "ProviderSettings", "RATES_OF_EXCHANGE_PATH"]
