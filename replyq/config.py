"""Centralized configuration for the ReplyQ backend.

Re-exports everything from replyq.infrastructure.settings, then adds typed
constants for the normalizer, classifier, extraction cache, drafting,
suggestions, auto-send and LLM access. Environment variable overrides use
safe defaults so the app starts without extra env configuration.
"""

from __future__ import annotations

import os

from replyq.infrastructure.settings import *  # noqa: F401, F403


def _env(key: str, default: str) -> str:
    """Read a REPLYQ_* env var with a default."""
    return os.getenv(key, default)


def _env_flag(key: str, default: str = "false") -> bool:
    return _env(key, default).lower() == "true"


# --- App ---
APP_VERSION: str = "0.1.0"

# --- Text normalization ---
NORMALIZER_MAX_CHARS: int = 2000
NORMALIZER_ELLIPSIS: str = "..."

# --- Heuristic classifier ---
HEURISTIC_KEYWORD_WEIGHT: float = 0.6
HEURISTIC_PHRASE_WEIGHT: float = 0.4
HEURISTIC_CONFIDENCE_CAP: float = 0.9
HEURISTIC_CONFIDENCE_FLOOR: float = 0.3
DEFAULT_INTENT: str = "general_inquiry"

# --- Extraction ---
EXTRACTION_CACHE_TTL_SECONDS: float = float(_env("REPLYQ_EXTRACTION_CACHE_TTL", "60"))

# --- Drafting ---
DRAFT_CONFIDENCE_BASE: float = 0.5
DRAFT_CONFIDENCE_CAP: float = 0.95
DRAFT_DEFAULT_TONE: str = "professional"
DRAFT_ALTERNATIVE_TONES: tuple[str, ...] = ("casual", "formal", "friendly")
DRAFT_MAX_ALTERNATIVES: int = 2

# --- Suggestions ---
SUGGESTIONS_TOP_N: int = 6
HANDOFF_NOTES_MAX_CHARS: int = 280
HANDOFF_MAX_ENTITIES: int = 5

# --- Aggregation ---
AGGREGATE_CLASSIFICATION_WEIGHT: float = 0.4
AGGREGATE_DRAFT_WEIGHT: float = 0.6
AGGREGATE_FALLBACK_CAP: float = 0.6

# --- Auto-send ---
AUTOSEND_THRESHOLD: float = float(_env("REPLYQ_AUTOSEND_THRESHOLD", "0.85"))
AUTOSEND_MIN_TEXT_CHARS: int = int(_env("REPLYQ_AUTOSEND_MIN_TEXT_CHARS", "8"))
AUTOSEND_COUNTDOWN_SECONDS: int = int(_env("REPLYQ_AUTOSEND_COUNTDOWN", "3"))
AUTOSEND_TICK_SECONDS: float = 1.0
AUTOSEND_THRESHOLD_MIN: float = 0.75
AUTOSEND_THRESHOLD_MAX: float = 0.95
# Committed/cancelled sessions kept for state lookups and feedback
AUTOSEND_RETAINED_SESSIONS: int = int(_env("REPLYQ_AUTOSEND_RETAINED_SESSIONS", "256"))

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(_env("REPLYQ_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(_env("REPLYQ_LLM_MAX_RETRIES", "3"))
LLM_MAX_WORKERS: int = int(_env("REPLYQ_LLM_MAX_WORKERS", "4"))
LLM_BREAKER_WINDOW: int = 50
LLM_BREAKER_THRESHOLD: float = 0.5
LLM_BREAKER_MIN_EVENTS: int = 10

# --- API ---
API_TEXT_MAX_CHARS: int = 20000

# --- Templates ---
TEMPLATE_MIN_CONTENT_CHARS: int = 10
STORAGE_RETRY_AFTER_SECONDS: int = 30

# --- Database ---
DB_CONNECT_TIMEOUT: float = 5.0
DB_RETRY_MAX: int = 3
DB_RETRY_BASE_DELAY: float = 0.1
DB_RETRY_MAX_DELAY: float = 1.0
DB_RETRY_JITTER: float = 0.1


def use_llm() -> bool:
    """Check LLM feature flag at call time (not import time).

    Reads env var fresh to avoid stale values when dotenv loads after module import.
    """
    return _env_flag("REPLYQ_USE_LLM")


def autosend_adaptive() -> bool:
    """Whether auto-send gates on the learned threshold instead of the static one."""
    return _env_flag("REPLYQ_AUTOSEND_ADAPTIVE")
