"""Tests for the fixed-window rate limiter."""

import time

import pytest
from limits.storage import MemoryStorage

from app.core.errors import RateLimitExceeded
from app.core.rate_limit import RateLimiter, rate_limit_key


def test_counts_down_then_blocks():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    assert [limiter.hit("t:ip") for _ in range(3)] == [2, 1, 0]
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.hit("t:ip")
    assert 1 <= exc_info.value.metadata["retryAfter"] <= 60


def test_window_resets():
    limiter = RateLimiter(max_requests=1, window_seconds=1)
    limiter.hit("k")
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.hit("k")
    assert exc_info.value.metadata["retryAfter"] == 1

    time.sleep(1.2)
    assert limiter.hit("k") == 0


def test_expired_windows_are_dropped():
    storage = MemoryStorage()
    limiter = RateLimiter(max_requests=5, window_seconds=1, storage=storage)
    for n in range(200):
        limiter.hit(rate_limit_key("tenant-a", f"10.0.{n // 250}.{n % 250}"))

    time.sleep(1.2)
    limiter.hit(rate_limit_key("tenant-a", "10.9.9.9"))
    time.sleep(0.2)
    assert len(storage.storage) == 1


def test_keys_are_independent():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.hit(rate_limit_key("tenant-a", "10.0.0.1"))
    limiter.hit(rate_limit_key("tenant-b", "10.0.0.1"))
    limiter.hit(rate_limit_key("tenant-a", "10.0.0.2"))
    with pytest.raises(RateLimitExceeded):
        limiter.hit(rate_limit_key("tenant-a", "10.0.0.1"))


def test_budgets_sharing_a_storage_do_not_collide():
    storage = MemoryStorage()
    strict = RateLimiter(max_requests=1, window_seconds=60, storage=storage)
    loose = RateLimiter(max_requests=10, window_seconds=60, storage=storage)
    strict.hit("k")
    assert loose.hit("k") == 9


def test_clear_resets_all_windows():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.hit("k")
    limiter.clear()
    assert limiter.hit("k") == 0


def test_custom_message():
    limiter = RateLimiter(1, 60, message="Too many login attempts")
    limiter.hit("k")
    with pytest.raises(RateLimitExceeded, match="Too many login attempts"):
        limiter.hit("k")


def test_key_fallbacks():
    assert rate_limit_key(None, None) == "anonymous:unknown"
    assert rate_limit_key("UNI-A", "1.2.3.4") == "UNI-A:1.2.3.4"
