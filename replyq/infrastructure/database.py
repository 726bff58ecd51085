"""Centralized database configuration

ReplyQ keeps saved templates in ONE SQLite database: replyq/data/replyq.db
(override with REPLYQ_DB_PATH). All storage code goes through
get_db_connection() / db_transaction().

Connections are opened per unit of work; SQLite lock contention is absorbed by
retry_on_db_lock with exponential backoff and jitter.
"""

from __future__ import annotations

import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

from replyq.config import (
    DB_CONNECT_TIMEOUT,
    DB_PATH,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
)
from replyq.observability.logging import get_logger
from replyq.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS templates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'general',
    intent TEXT,
    tone TEXT,
    language TEXT NOT NULL DEFAULT 'en',
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_templates_category ON templates(category);
"""


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry database operations on SQLITE_BUSY / "database is locked" errors.

    Any other OperationalError is re-raised immediately.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    message = str(e).lower()
                    if "locked" not in message and "busy" not in message:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s", max_retries, e
                        )
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    counter("database.lock_retry")
                    time.sleep(sleep_time)
            raise AssertionError("unreachable")

        return wrapper  # type: ignore[return-value]

    return decorator


def get_db_path() -> Path:
    """
    Get database path (environment-aware)

    Checks REPLYQ_DB_PATH at call time so tests can point at a temp file.
    """
    if env_path := os.getenv("REPLYQ_DB_PATH"):
        return Path(env_path)
    return DB_PATH


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Database connection (context manager), closed on exit.

    Raises:
        FileNotFoundError: If the database has not been initialized
    """
    db_path = get_db_path()
    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path}")

    conn = sqlite3.connect(str(db_path), timeout=DB_CONNECT_TIMEOUT)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database transactions

    Commits on success, rolls back on error.
    """
    with get_db_connection() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def init_database() -> None:
    """
    Initialize database with schema (idempotent)

    Side Effects:
    - Creates the data directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(str(db_path), timeout=DB_CONNECT_TIMEOUT) as conn:
        conn.executescript(SCHEMA)
    logger.info("Database initialized at %s", db_path)
