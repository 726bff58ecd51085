"""
Pytest configuration for ReplyQ tests

Provides fakes for every external collaborator so no test touches Gemini,
wall-clock timers, or the real database file:
- fake_llm: injectable LLMCallFn recording its calls
- fake_clock: manual clock for TTL cache / circuit breaker
- manual_scheduler: explicit-advance scheduler for auto-send countdowns
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Every test starts with the LLM disabled, fresh counters and its own database path."""
    from replyq.observability import telemetry

    monkeypatch.delenv("REPLYQ_USE_LLM", raising=False)
    monkeypatch.delenv("REPLYQ_AUTOSEND_ADAPTIVE", raising=False)
    monkeypatch.setenv("REPLYQ_DB_PATH", str(tmp_path / "replyq.db"))
    telemetry.reset()
    yield
    telemetry.reset()


class FakeLLM:
    """LLMCallFn stand-in: returns ``response``, raises ``error``, or delegates to ``handler``."""

    def __init__(
        self,
        response: str = "",
        error: BaseException | None = None,
        handler: Callable[[str], str] | None = None,
    ) -> None:
        self.response = response
        self.error = error
        self.handler = handler
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def __call__(self, prompt: str, **kwargs: Any) -> str:
        with self._lock:
            self.calls.append((prompt, kwargs))
        if self.handler is not None:
            return self.handler(prompt)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def fake_llm():
    """Factory: ``fake_llm(response=..., error=..., handler=...)``."""
    return FakeLLM


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers fire only when ``advance`` moves time past them."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.handles.remove(handle)
            self.now = handle.due
            if not handle.cancelled:
                handle.callback()
        self.now = target

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()
