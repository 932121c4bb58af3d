"""Retry and circuit-breaker policies wrapped around upstream HTTP calls."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from treasury_fx.exceptions import CircuitOpenError, UpstreamRequestError
from treasury_fx.settings import ProviderSettings
from treasury_fx.utils.cancellation import CancellationToken
from treasury_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


def is_transient(exc: BaseException) -> bool:
    """Only timeouts, connection errors and 5xx responses are worth retrying."""

    return isinstance(exc, UpstreamRequestError) and exc.transient


def build_retrying(settings: ProviderSettings, token: CancellationToken) -> Retrying:
    """Return a tenacity controller for one logical upstream call.

    Backoff waits go through ``token.wait`` so cancellation interrupts them.
    """

    wait = wait_exponential(multiplier=settings.backoff_seconds, min=0) + wait_random(
        0, settings.jitter_seconds
    )
    return Retrying(
        stop=stop_after_attempt(settings.retry_count + 1),
        wait=wait,
        retry=retry_if_exception(is_transient),
        sleep=token.wait,
        reraise=True,
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
    )


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    After ``failure_threshold`` failed calls in a row the breaker opens and
    rejects calls for ``break_seconds``. It then lets a single trial call
    through (half-open): success closes it, failure re-opens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        break_seconds: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.break_seconds = break_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "CircuitBreaker":
        return cls(settings.failure_threshold, settings.break_seconds)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._current_state()

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._failures

    def _current_state(self) -> CircuitState:
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self.break_seconds
        ):
            self._state = CircuitState.HALF_OPEN
            self._trial_in_flight = False
        return self._state

    def before_call(self) -> None:
        """Raise :class:`CircuitOpenError` unless a call may go through now."""

        with self._lock:
            state = self._current_state()
            if state is CircuitState.CLOSED:
                return
            if state is CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return
            retry_after = max(self.break_seconds - (self._clock() - self._opened_at), 0.0)
        raise CircuitOpenError(
            "Circuit breaker is open; upstream calls are suspended", retry_after=retry_after
        )

    def record_success(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failures = 0
            self._trial_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._trial_in_flight = False
            self._failures += 1
            if self._state is CircuitState.HALF_OPEN or self._failures >= self.failure_threshold:
                if self._state is not CircuitState.OPEN:
                    LOGGER.warning(
                        "Opening circuit after %s consecutive failures; pausing for %ss",
                        self._failures,
                        self.break_seconds,
                    )
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()

    def release(self) -> None:
        """Give back a half-open trial slot when the call ended without an outcome."""

        with self._lock:
            self._trial_in_flight = False


__all__ = ["CircuitBreaker", "CircuitState", "build_retrying", "is_transient"]
