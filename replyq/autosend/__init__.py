"""
ReplyQ Auto-send module - confidence-gated countdown with cancellation.
"""

from replyq.autosend.controller import (
    TERMINAL_STATES,
    AutoSendController,
    AutoSendSession,
    AutoSendState,
    SendAction,
)
from replyq.autosend.metrics import AutoSendMetrics, AutoSendOutcome
from replyq.autosend.scheduler import Scheduler, ThreadingScheduler, TimerHandle

__all__ = [
    # State machine
    "TERMINAL_STATES",
    "AutoSendController",
    "AutoSendSession",
    "AutoSendState",
    "SendAction",
    # Metrics
    "AutoSendMetrics",
    "AutoSendOutcome",
    # Scheduling
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
]
