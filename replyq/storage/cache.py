"""
TTL-based in-memory cache shared across requests.

Entries are immutable ``(value, inserted_at)`` snapshots. Writers replace a
whole entry under a lock and never touch fields of an existing one, so a
concurrent reader sees either the old entry or the new one. Expiry is lazy:
an entry older than the TTL counts as a miss and is dropped on that access;
there is no background sweep.

Key: TTLCache[T] with get/put and an injectable clock for tests.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from replyq.observability.telemetry import counter, log_event

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cache entry with value and insertion timestamp."""

    value: T
    inserted_at: float


class TTLCache(Generic[T]):
    """Simple TTL-based cache with lazy expiry."""

    def __init__(
        self,
        name: str,
        ttl_seconds: float = 3600.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            name: Cache name for telemetry (e.g., "extraction")
            ttl_seconds: Time-to-live measured from insertion
            max_entries: Bound on stored entries; the oldest is dropped on overflow
            clock: Wall-clock source (seconds)
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.inserted_at < self.ttl_seconds

    def get(self, key: str) -> T | None:
        """
        Get value from cache if not expired.

        Returns None if key not found or expired.
        """
        entry = self._store.get(key)
        if entry is None:
            counter(f"cache.{self.name}.miss")
            return None

        if not self._is_fresh(entry, self._clock()):
            with self._lock:
                # Only drop the entry we judged stale, not a fresh replacement
                if self._store.get(key) is entry:
                    del self._store[key]
            counter(f"cache.{self.name}.expired")
            log_event("cache.expired", cache=self.name, key_hash=self._hash_key(key))
            return None

        counter(f"cache.{self.name}.hit")
        return entry.value

    def put(self, key: str, value: T) -> None:
        """
        Store value in cache, replacing any existing entry

        Side Effects:
            - Writes to _store dict (in-memory cache)
            - Increments telemetry counter (cache.{name}.write)
        """
        entry = CacheEntry(value=value, inserted_at=self._clock())
        with self._lock:
            if key not in self._store and len(self._store) >= self.max_entries:
                oldest = next(iter(self._store))
                del self._store[oldest]
                counter(f"cache.{self.name}.overflow")
            self._store.pop(key, None)
            self._store[key] = entry
        counter(f"cache.{self.name}.write")

    def invalidate(self, key: str) -> None:
        with self._lock:
            if self._store.pop(key, None) is not None:
                counter(f"cache.{self.name}.invalidate")

    def clear(self) -> None:
        """
        Clear all entries

        Side Effects:
            - Clears entire _store dict (in-memory cache)
            - Writes telemetry event with entry count
        """
        with self._lock:
            count = len(self._store)
            self._store.clear()
        log_event("cache.cleared", cache=self.name, count=count)

    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        now = self._clock()
        entries = list(self._store.values())
        active = sum(1 for entry in entries if self._is_fresh(entry, now))
        return {
            "total_entries": len(entries),
            "active_entries": active,
            "expired_entries": len(entries) - active,
        }

    def _hash_key(self, key: str) -> str:
        """Return first 12 chars of key for safe logging."""
        return key[:12]
