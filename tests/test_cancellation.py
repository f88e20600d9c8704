import threading

import pytest

from meshes_client.cancellation import CancellationToken, RequestCancelledError, arm


class ManualTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


def test_token_arms_timer_in_seconds():
    timers = []

    def factory(interval, function):
        timers.append(ManualTimer(interval, function))
        return timers[-1]

    token = CancellationToken(2500, factory)

    assert timers[0].interval == 2.5
    assert timers[0].started
    assert not token.cancelled


def test_token_fires_and_raises():
    timers = []

    def factory(interval, function):
        timers.append(ManualTimer(interval, function))
        return timers[-1]

    token = CancellationToken(1000, factory)
    timers[0].fire()

    assert token.cancelled
    with pytest.raises(RequestCancelledError, match="1000 ms"):
        token.raise_if_cancelled()


def test_disarm_cancels_timer():
    timers = []

    def factory(interval, function):
        timers.append(ManualTimer(interval, function))
        return timers[-1]

    token = CancellationToken(1000, factory)
    token.disarm()

    assert timers[0].cancelled
    assert not token.cancelled


def test_real_timer_is_daemon_and_disarms():
    token = CancellationToken(30000)

    assert isinstance(token._timer, threading.Timer)
    assert token._timer.daemon
    assert 0 < token.remaining() <= 30
    token.disarm()


def test_arm_without_timer_factory_is_degraded():
    assert arm(5000, None) is None
    assert isinstance(arm(5000, ManualTimer), CancellationToken)


def test_on_cancel_hooks_run_when_token_fires():
    timers = []

    def factory(interval, function):
        timers.append(ManualTimer(interval, function))
        return timers[-1]

    token = CancellationToken(1000, factory)
    fired = []
    token.on_cancel(lambda: fired.append("first"))

    assert fired == []
    timers[0].fire()
    assert fired == ["first"]

    token.on_cancel(lambda: fired.append("late"))
    assert fired == ["first", "late"]
