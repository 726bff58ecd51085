"""
Auto-send countdown state machine.

    idle -> counting -> committed | cancelled

One session per context id. Every transition happens under a single lock and
checks the current state first, so a tick and a cancel that race resolve to
exactly one terminal state:

- cancel flips the state and cancels the pending timer before releasing the lock;
  a tick that still fires afterwards sees ``cancelled`` and does nothing.
- commit flips the state under the lock and calls the send action after
  releasing it, once per session.

Starting while a session is counting returns that session untouched. Starting
after a terminal state begins a fresh cycle.

Terminal sessions stay readable (state lookups, regret feedback) until more
than ``retained_sessions`` have ended; the oldest are then dropped.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from replyq.autosend.metrics import AutoSendMetrics, AutoSendOutcome
from replyq.autosend.scheduler import Scheduler, ThreadingScheduler, TimerHandle
from replyq.classification.normalizer import normalize_text
from replyq.config import (
    AUTOSEND_COUNTDOWN_SECONDS,
    AUTOSEND_MIN_TEXT_CHARS,
    AUTOSEND_RETAINED_SESSIONS,
    AUTOSEND_THRESHOLD,
    AUTOSEND_TICK_SECONDS,
    autosend_adaptive,
)
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter

logger = get_logger(__name__)


class AutoSendState(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({AutoSendState.COMMITTED, AutoSendState.CANCELLED})


@dataclass
class AutoSendSession:
    """Countdown for one drafted message. Mutated only by AutoSendController."""

    context_id: str
    draft_ref: str
    confidence: float
    countdown_seconds: int
    remaining: int
    state: AutoSendState = AutoSendState.IDLE
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = None
    _timer: TimerHandle | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "context_id": self.context_id,
            "draft_ref": self.draft_ref,
            "confidence": self.confidence,
            "countdown_seconds": self.countdown_seconds,
            "remaining": self.remaining,
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


SendAction = Callable[[AutoSendSession], None]


class AutoSendController:
    """
    Args:
        send_action: Called exactly once when a countdown commits.
        scheduler: Timer source; tests pass a manual scheduler.
        metrics: Outcome history; its learned threshold is used when
            REPLYQ_AUTOSEND_ADAPTIVE is enabled.
        threshold: Static confidence gate.
        min_text_chars: Normalized text must be longer than this.
        countdown_seconds: Ticks before commit.
        tick_seconds: Interval between ticks.
        retained_sessions: Terminal sessions kept before the oldest is dropped.
    """

    def __init__(
        self,
        send_action: SendAction,
        scheduler: Scheduler | None = None,
        metrics: AutoSendMetrics | None = None,
        threshold: float = AUTOSEND_THRESHOLD,
        min_text_chars: int = AUTOSEND_MIN_TEXT_CHARS,
        countdown_seconds: int = AUTOSEND_COUNTDOWN_SECONDS,
        tick_seconds: float = AUTOSEND_TICK_SECONDS,
        retained_sessions: int = AUTOSEND_RETAINED_SESSIONS,
    ) -> None:
        self._send_action = send_action
        self._scheduler: Scheduler = scheduler or ThreadingScheduler()
        self.metrics = metrics or AutoSendMetrics(initial_threshold=threshold)
        self.threshold = threshold
        self.min_text_chars = min_text_chars
        self.countdown_seconds = countdown_seconds
        self.tick_seconds = tick_seconds
        self.retained_sessions = retained_sessions
        self._sessions: dict[str, AutoSendSession] = {}
        # Context ids of terminal sessions, oldest first
        self._ended: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.RLock()

    def current_threshold(self) -> float:
        if autosend_adaptive():
            return self.metrics.optimal_threshold
        return self.threshold

    def is_eligible(self, confidence: float, text: str) -> bool:
        return (
            confidence >= self.current_threshold()
            and len(normalize_text(text)) > self.min_text_chars
        )

    def start(
        self, context_id: str, draft_ref: str, confidence: float, text: str
    ) -> AutoSendSession | None:
        """Begin a countdown, or return the one already counting for this context.

        Returns None when confidence or text length does not clear the gate.
        """
        s_logger = get_structured_logger()
        with self._lock:
            existing = self._sessions.get(context_id)
            if existing is not None and existing.state is AutoSendState.COUNTING:
                counter("autosend.start.duplicate")
                return existing

            if not self.is_eligible(confidence, text):
                counter("autosend.rejected")
                s_logger.log_event(
                    EventType.AUTOSEND_REJECTED,
                    context_id=context_id,
                    stage="autosend",
                    confidence=round(confidence, 4),
                    threshold=self.current_threshold(),
                )
                return None

            session = AutoSendSession(
                context_id=context_id,
                draft_ref=draft_ref,
                confidence=confidence,
                countdown_seconds=self.countdown_seconds,
                remaining=self.countdown_seconds,
                state=AutoSendState.COUNTING,
            )
            self._sessions[context_id] = session
            self._ended.pop(context_id, None)
            self._schedule_tick(session)

        counter("autosend.started")
        s_logger.log_event(
            EventType.AUTOSEND_STARTED,
            context_id=context_id,
            stage="autosend",
            confidence=round(confidence, 4),
            countdown_seconds=self.countdown_seconds,
        )
        return session

    def cancel(self, context_id: str) -> AutoSendSession | None:
        """Cancel a counting session. No-op for unknown, idle or terminal sessions."""
        with self._lock:
            session = self._sessions.get(context_id)
            if session is None or session.state is not AutoSendState.COUNTING:
                return session
            session.state = AutoSendState.CANCELLED
            session.ended_at = datetime.now(UTC)
            if session._timer is not None:
                session._timer.cancel()
                session._timer = None
            self._retire(session)

        counter("autosend.cancelled")
        self.metrics.record(AutoSendOutcome.CANCELLED, session.confidence)
        get_structured_logger().log_event(
            EventType.AUTOSEND_CANCELLED,
            context_id=context_id,
            stage="autosend",
            remaining=session.remaining,
        )
        return session

    def get(self, context_id: str) -> AutoSendSession | None:
        with self._lock:
            return self._sessions.get(context_id)

    def state(self, context_id: str) -> AutoSendState:
        session = self.get(context_id)
        return session.state if session is not None else AutoSendState.IDLE

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _retire(self, session: AutoSendSession) -> None:
        """Record a terminal session and evict the oldest beyond the cap. Caller holds the lock."""
        self._ended[session.context_id] = None
        self._ended.move_to_end(session.context_id)
        while len(self._ended) > self.retained_sessions:
            context_id, _ = self._ended.popitem(last=False)
            stale = self._sessions.get(context_id)
            if stale is not None and stale.state in TERMINAL_STATES:
                del self._sessions[context_id]
                counter("autosend.sessions_evicted")

    def _schedule_tick(self, session: AutoSendSession) -> None:
        session._timer = self._scheduler.call_later(self.tick_seconds, lambda: self._tick(session))

    def _tick(self, session: AutoSendSession) -> None:
        with self._lock:
            if (
                self._sessions.get(session.context_id) is not session
                or session.state is not AutoSendState.COUNTING
            ):
                return
            session.remaining -= 1
            if session.remaining > 0:
                self._schedule_tick(session)
                return
            session.state = AutoSendState.COMMITTED
            session.ended_at = datetime.now(UTC)
            session._timer = None
            self._retire(session)

        self._commit(session)

    def _commit(self, session: AutoSendSession) -> None:
        s_logger = get_structured_logger()
        try:
            self._send_action(session)
        except Exception as e:
            counter("autosend.send_error")
            logger.exception("Auto-send action failed for %s", session.draft_ref)
            self.metrics.record(AutoSendOutcome.FAILED, session.confidence)
            s_logger.log_event(
                EventType.AUTOSEND_SEND_ERROR,
                context_id=session.context_id,
                stage="autosend",
                error=type(e).__name__,
            )
            return

        counter("autosend.committed")
        self.metrics.record(AutoSendOutcome.SUCCESS, session.confidence)
        s_logger.log_event(
            EventType.AUTOSEND_COMMITTED,
            context_id=session.context_id,
            stage="autosend",
            confidence=round(session.confidence, 4),
        )


__all__ = [
    "TERMINAL_STATES",
    "AutoSendController",
    "AutoSendSession",
    "AutoSendState",
    "SendAction",
]
