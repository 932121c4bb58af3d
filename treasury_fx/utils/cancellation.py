"""Cooperative cancellation for rate resolution."""

from __future__ import annotations

import threading

from treasury_fx.exceptions import OperationCancelled


class CancellationToken:
    """Thread-safe flag shared between a caller and an in-flight resolution.

    The token is checked before every I/O step and doubles as the sleep
    function for retry backoff, so a cancelled caller never waits out a
    queued retry.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Rate resolution was cancelled")

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first, in which case raise."""

        if self._event.wait(max(seconds, 0.0)):
            raise OperationCancelled("Rate resolution was cancelled while backing off")


def ensure_token(token: CancellationToken | None) -> CancellationToken:
    """Return ``token`` or a fresh token that is never cancelled."""

    return token if token is not None else CancellationToken()


__all__ = ["CancellationToken", "ensure_token"]
