"""Tests for the TTL cache."""

from __future__ import annotations

import time
from unittest.mock import patch

from signal_desk.cache import TTLCache


class TestTTLCache:
    def test_set_and_get(self):
        cache = TTLCache(default_ttl_seconds=10.0)
        cache.set("key", ("a", "b"))
        assert cache.get("key") == ("a", "b")
        assert len(cache) == 1

    def test_missing_key(self):
        assert TTLCache().get("nope") is None

    def test_expiry(self):
        cache = TTLCache(default_ttl_seconds=0.5)
        cache.set("key", "data")
        assert cache.get("key") == "data"

        original_time = time.monotonic()
        with patch("signal_desk.cache.time") as mock_time:
            mock_time.monotonic.return_value = original_time + 1.0
            assert cache.get("key") is None
        # Expired entries are dropped on read
        assert len(cache) == 0

    def test_per_entry_ttl_overrides_default(self):
        cache = TTLCache(default_ttl_seconds=300.0)
        cache.set("short", "x", ttl_seconds=3.0)
        cache.set("long", "y")

        original_time = time.monotonic()
        with patch("signal_desk.cache.time") as mock_time:
            mock_time.monotonic.return_value = original_time + 10.0
            assert cache.get("short") is None
            assert cache.get("long") == "y"

    def test_set_replaces_value(self):
        cache = TTLCache()
        cache.set("key", 1)
        cache.set("key", 2)
        assert cache.get("key") == 2

    def test_invalidate(self):
        cache = TTLCache()
        cache.set("key", "data")
        cache.invalidate("key")
        assert cache.get("key") is None

    def test_invalidate_missing(self):
        cache = TTLCache()
        cache.invalidate("nope")  # Should not raise

    def test_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.get("a") is None
        assert cache.get("b") is None

    def test_set_sweeps_expired_entries(self):
        cache = TTLCache(default_ttl_seconds=300.0)
        cache.set("klines:BTCUSDT:1h:500", "a", ttl_seconds=1.0)
        cache.set("klines:ETHUSDT:1h:500", "b", ttl_seconds=1.0)
        cache.set("symbols:listing", "c")

        original_time = time.monotonic()
        with patch("signal_desk.cache.time") as mock_time:
            mock_time.monotonic.return_value = original_time + 5.0
            cache.set("price:BTCUSDT", "d", ttl_seconds=3.0)
        # the never-re-read kline keys are gone
        assert len(cache) == 2
        assert cache.get("symbols:listing") == "c"
