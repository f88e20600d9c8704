"""Per-call timeout tokens."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

TimerFactory = Callable[[float, Callable[[], None]], Any]


class RequestCancelledError(TimeoutError):
    """Raised by a transport once a call's cancellation token has fired."""


class CancellationToken:
    """Fires after `timeout_ms` unless disarmed first.

    The timer comes from `timer_factory`, which must accept ``(interval,
    function)`` and return an object with ``start()`` and ``cancel()``, the
    way `threading.Timer` does.
    """

    def __init__(self, timeout_ms: float, timer_factory: TimerFactory = threading.Timer) -> None:
        self.timeout_ms = timeout_ms
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._hooks: list[Callable[[], None]] = []
        self._deadline = time.monotonic() + timeout_ms / 1000
        self._timer = timer_factory(timeout_ms / 1000, self.cancel)
        if isinstance(self._timer, threading.Thread):
            self._timer.daemon = True
        self._timer.start()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            hooks, self._hooks = self._hooks, []
        for hook in hooks:
            hook()

    def on_cancel(self, hook: Callable[[], None]) -> None:
        """Run `hook` when the token fires, or right away if it already has."""
        with self._lock:
            if not self._event.is_set():
                self._hooks.append(hook)
                return
        hook()

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelledError(f"Request aborted after {self.timeout_ms} ms")

    def disarm(self) -> None:
        self._timer.cancel()


def arm(timeout_ms: float, timer_factory: TimerFactory | None) -> CancellationToken | None:
    """Start a token for one call, or return None when no timer is available."""
    if timer_factory is None:
        return None
    return CancellationToken(timeout_ms, timer_factory)
