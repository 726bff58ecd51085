"""Delayed-callback scheduling for auto-send countdowns.

The controller only needs ``call_later(delay, callback) -> handle`` and
``handle.cancel()``. Production uses daemon ``threading.Timer`` threads; tests
inject a manual scheduler and advance it explicitly.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs each callback on its own daemon timer thread."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
