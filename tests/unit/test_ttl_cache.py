"""Tests for the TTL cache."""

import threading

from replyq.observability.telemetry import get_counter
from replyq.storage.cache import TTLCache


def _cache(clock, **kwargs):
    return TTLCache(name="test", ttl_seconds=60, clock=clock, **kwargs)


def test_miss_then_hit(fake_clock):
    cache = _cache(fake_clock)
    assert cache.get("k") is None
    cache.put("k", "v")
    assert cache.get("k") == "v"
    assert get_counter("cache.test.miss") == 1
    assert get_counter("cache.test.hit") == 1


def test_expiry_boundary(fake_clock):
    cache = _cache(fake_clock)
    cache.put("k", "v")
    fake_clock.advance(59.9)
    assert cache.get("k") == "v"
    fake_clock.advance(0.1)
    assert cache.get("k") is None
    assert get_counter("cache.test.expired") == 1
    assert cache.stats()["total_entries"] == 0


def test_put_replaces_and_restarts_ttl(fake_clock):
    cache = _cache(fake_clock)
    cache.put("k", "old")
    fake_clock.advance(50)
    cache.put("k", "new")
    fake_clock.advance(50)
    assert cache.get("k") == "new"


def test_overflow_drops_oldest(fake_clock):
    cache = _cache(fake_clock, max_entries=2)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert get_counter("cache.test.overflow") == 1


def test_invalidate_and_clear(fake_clock):
    cache = _cache(fake_clock)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.invalidate("a")
    assert cache.get("a") is None
    cache.clear()
    assert cache.stats() == {"total_entries": 0, "active_entries": 0, "expired_entries": 0}


def test_stats_counts_expired(fake_clock):
    cache = _cache(fake_clock)
    cache.put("a", 1)
    fake_clock.advance(30)
    cache.put("b", 2)
    fake_clock.advance(40)
    assert cache.stats() == {"total_entries": 2, "active_entries": 1, "expired_entries": 1}


def test_concurrent_writers_leave_a_complete_value(fake_clock):
    cache = _cache(fake_clock)
    values = [tuple(range(i, i + 5)) for i in range(20)]

    def write(value):
        for _ in range(50):
            cache.put("shared", value)

    threads = [threading.Thread(target=write, args=(v,)) for v in values]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.get("shared") in values
