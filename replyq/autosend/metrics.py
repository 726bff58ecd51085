"""
Auto-send outcome metrics and the learned confidence threshold.

After every recorded outcome the threshold moves:
    success rate < 0.80  -> +0.02 (too many failures, be stricter)
    success rate > 0.95  -> -0.01 (can afford to send more)
and is clamped to [0.75, 0.95].
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from replyq.config import AUTOSEND_THRESHOLD, AUTOSEND_THRESHOLD_MAX, AUTOSEND_THRESHOLD_MIN
from replyq.observability.logging import get_logger

logger = get_logger(__name__)

RAISE_BELOW_SUCCESS_RATE = 0.8
LOWER_ABOVE_SUCCESS_RATE = 0.95
RAISE_STEP = 0.02
LOWER_STEP = 0.01


class AutoSendOutcome(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    REGRETTED = "regretted"
    FAILED = "failed"


class AutoSendMetrics:
    """Thread-safe in-process counters for one user's auto-send history."""

    def __init__(self, initial_threshold: float = AUTOSEND_THRESHOLD) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.successful = 0
        self.cancelled = 0
        self.regretted = 0
        self.failed = 0
        self.average_confidence = 0.0
        self.optimal_threshold = _clamp(initial_threshold)
        self.last_threshold_update: datetime | None = None

    def record(self, outcome: AutoSendOutcome, confidence: float) -> float:
        """Record one auto-send outcome; returns the updated threshold."""
        with self._lock:
            self.total += 1
            if outcome is AutoSendOutcome.SUCCESS:
                self.successful += 1
            elif outcome is AutoSendOutcome.CANCELLED:
                self.cancelled += 1
            elif outcome is AutoSendOutcome.REGRETTED:
                self.regretted += 1
            else:
                self.failed += 1

            self.average_confidence = (
                self.average_confidence * (self.total - 1) + confidence
            ) / self.total
            return self._adjust()

    def mark_regretted(self) -> float:
        """Reclassify one earlier success as regretted (user feedback after the send)."""
        with self._lock:
            if self.successful > 0:
                self.successful -= 1
                self.regretted += 1
            return self._adjust()

    def _adjust(self) -> float:
        if self.total == 0:
            return self.optimal_threshold
        success_rate = self.successful / self.total
        previous = self.optimal_threshold
        if success_rate < RAISE_BELOW_SUCCESS_RATE:
            self.optimal_threshold += RAISE_STEP
        elif success_rate > LOWER_ABOVE_SUCCESS_RATE:
            self.optimal_threshold -= LOWER_STEP
        self.optimal_threshold = round(_clamp(self.optimal_threshold), 4)
        self.last_threshold_update = datetime.now(UTC)
        if self.optimal_threshold != previous:
            logger.info(
                "Auto-send threshold %.2f -> %.2f (success rate %.2f over %d)",
                previous,
                self.optimal_threshold,
                success_rate,
                self.total,
            )
        return self.optimal_threshold

    @property
    def success_rate(self) -> float:
        return self.successful / self.total if self.total else 0.0

    def summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "total_auto_sends": self.total,
                "successful_auto_sends": self.successful,
                "cancelled_auto_sends": self.cancelled,
                "regretted_auto_sends": self.regretted,
                "failed_auto_sends": self.failed,
                "success_rate": round(self.success_rate, 4),
                "average_confidence_at_send": round(self.average_confidence, 4),
                "optimal_confidence_threshold": self.optimal_threshold,
                "last_threshold_update": (
                    self.last_threshold_update.isoformat() if self.last_threshold_update else None
                ),
            }


def _clamp(value: float) -> float:
    return max(AUTOSEND_THRESHOLD_MIN, min(AUTOSEND_THRESHOLD_MAX, value))
