"""Sliding-window breaker tracking invalid or failed external responses per stage."""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable


class InvalidResponseCircuitBreaker:
    def __init__(
        self,
        window: int = 50,
        threshold: float = 0.5,
        min_events: int = 10,
        cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self.threshold = threshold
        self.min_events = min_events
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._events: deque[bool] = deque(maxlen=window)
        self._opened_at: float | None = None
        self._lock = threading.Lock()

    def record(self, success: bool) -> None:
        """Record one external call outcome.

        Side Effects:
            Appends to the sliding window; may open the breaker.
        """
        with self._lock:
            self._events.append(success)
            if self._opened_at is None and self._rate_exceeded():
                self._opened_at = self._clock()

    def invalid_rate(self) -> float:
        if not self._events:
            return 0.0
        return self._events.count(False) / len(self._events)

    def _rate_exceeded(self) -> bool:
        return len(self._events) >= self.min_events and self.invalid_rate() >= self.threshold

    def is_tripped(self) -> bool:
        """True while open; after the cooldown the window is cleared and calls resume."""
        with self._lock:
            if self._opened_at is None:
                return False
            if self._clock() - self._opened_at >= self.cooldown_seconds:
                self._events.clear()
                self._opened_at = None
                return False
            return True

    def reset(self) -> None:
        """Reset circuit breaker state.

        Side Effects:
            Clears all recorded events and closes the breaker.
        """
        with self._lock:
            self._events.clear()
            self._opened_at = None
