"""Upstream rate providers and the resilience policies around them."""

from __future__ import annotations

from treasury_fx.providers.resilience import CircuitBreaker, CircuitState
from treasury_fx.providers.strategy import RateProvider
from treasury_fx.providers.treasury import TreasuryRateProvider

__all__ = ["CircuitBreaker", "CircuitState", "RateProvider", "TreasuryRateProvider"]
