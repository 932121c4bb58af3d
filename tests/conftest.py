"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest

from helpers import FixedClock
from treasury_fx.settings import ProviderSettings


@pytest.fixture
def fast_settings() -> ProviderSettings:
    return ProviderSettings(
        base_url="https://rates.example.test/api/",
        timeout_seconds=1.5,
        retry_count=2,
        backoff_seconds=0.0,
        jitter_seconds=0.0,
        failure_threshold=5,
        break_seconds=30.0,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
