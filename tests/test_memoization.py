"""Tests for the LRU + TTL memoization layer."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from ta_engine.indicators import stochastic
from ta_engine.memoization import (
    IndicatorCaches,
    LRUCache,
    args_signature,
    hash_candle_data,
    hash_series,
    memoize_candles,
    memoize_series,
)
from ta_engine.models import Candle, ChannelConfig, TrendlineConfig


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def _candles(n: int, base: float = 100.0) -> list[Candle]:
    return [
        Candle(
            time=1_700_000_000_000 + i * 60_000,
            open=base + i,
            high=base + i + 1,
            low=base + i - 1,
            close=base + i + 0.5,
        )
        for i in range(n)
    ]


class TestLRUCache:
    """Tests for LRUCache."""

    def test_get_missing_returns_default(self):
        cache = LRUCache(max_size=2, ttl_ms=1000)
        assert cache.get("a") is None
        assert cache.get("a", 42) == 42
        assert cache.misses == 2

    def test_evicts_least_recently_used(self):
        """Inserting max_size + 1 keys evicts the first one."""
        cache = LRUCache(max_size=3, ttl_ms=1000, clock=FakeClock())
        for key in "abcd":
            cache.set(key, key.upper())

        assert len(cache) == 3
        assert "a" not in cache
        assert cache.keys() == ["b", "c", "d"]

    def test_get_refreshes_recency(self):
        cache = LRUCache(max_size=3, ttl_ms=1000, clock=FakeClock())
        for key in "abc":
            cache.set(key, key)

        assert cache.get("a") == "a"
        cache.set("d", "d")

        assert "a" in cache
        assert "b" not in cache

    def test_overwrite_does_not_evict(self):
        cache = LRUCache(max_size=2, ttl_ms=1000, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)

        assert len(cache) == 2
        assert cache.get("a") == 3
        assert cache.keys() == ["b", "a"]

    def test_ttl_expiry(self):
        """Entries older than ttl_ms are dropped on read."""
        clock = FakeClock()
        cache = LRUCache(max_size=2, ttl_ms=1000, clock=clock)
        cache.set("a", 1)

        clock.advance(1000)
        assert cache.get("a") == 1  # age == ttl is still fresh

        clock.advance(1)
        assert cache.get("a") is None
        assert "a" not in cache

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            LRUCache(max_size=0, ttl_ms=1000)

    def test_clear(self):
        cache = LRUCache(max_size=2, ttl_ms=1000)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestKeyFunctions:
    """Tests for cache key fingerprints."""

    def test_hash_series(self):
        assert hash_series([]) == "empty"
        assert hash_series([1.0, 2.0, 3.0]) == "3-1.0-3.0"

    def test_hash_candle_data(self):
        candles = _candles(3)
        assert hash_candle_data([]) == "empty"
        assert hash_candle_data(candles) == (
            f"3-{candles[0].time}-{candles[-1].time}-{candles[-1].close}"
        )

    def test_args_signature_is_stable(self):
        assert args_signature(14, 3, 3) == args_signature(14, 3, 3)
        assert args_signature(14, 3, 3) != args_signature(14, 3, 4)
        assert args_signature(a=1, b=2) == args_signature(b=2, a=1)

    def test_args_signature_accepts_config_models(self):
        assert args_signature(ChannelConfig()) == args_signature(ChannelConfig())
        assert args_signature(ChannelConfig()) != args_signature(ChannelConfig(min_touches=5))


class TestMemoize:
    """Tests for the memoization wrappers."""

    def test_repeat_call_hits_cache(self):
        calls = []

        def total(values, scale):
            calls.append(1)
            return sum(values) * scale

        cached = memoize_series(total, max_size=10, ttl_ms=1000, clock=FakeClock())
        assert cached([1.0, 2.0, 3.0], 2) == 12.0
        assert cached([1.0, 2.0, 3.0], 2) == 12.0
        assert len(calls) == 1
        assert cached.cache.hits == 1

    def test_series_with_same_endpoints_alias(self):
        """Keys only look at length and endpoints."""
        cached = memoize_series(sum, max_size=10, ttl_ms=1000, clock=FakeClock())
        first = cached([1.0, 2.0, 3.0])
        second = cached([1.0, 100.0, 3.0])
        assert first == second == 6.0

    def test_expired_result_is_recomputed(self):
        calls = []
        clock = FakeClock()

        def double(values):
            calls.append(1)
            return [v * 2 for v in values]

        cached = memoize_series(double, max_size=10, ttl_ms=500, clock=clock)
        cached([1.0])
        clock.advance(501)
        cached([1.0])
        assert len(calls) == 2


class TestIndicatorCaches:
    """Tests for the per-indicator cache bundle."""

    def test_cached_stochastic_is_shared(self):
        caches = IndicatorCaches(max_size=5, ttl_ms=1000, clock=FakeClock())
        candles = _candles(40)

        first = caches.stochastic(candles, 14, 3, 3)
        second = caches.stochastic(candles, 14, 3, 3)

        assert first is second
        assert first == stochastic(candles, 14, 3, 3)
        assert caches.stats()["stochastic"] == {"size": 1, "hits": 1, "misses": 1}

    def test_executor_not_part_of_key(self):
        caches = IndicatorCaches(clock=FakeClock())
        candles = _candles(60)
        config = TrendlineConfig()

        serial = caches.trendlines(candles, config)
        with ThreadPoolExecutor(max_workers=2) as pool:
            parallel = caches.trendlines(candles, config, executor=pool)

        assert parallel is serial

    def test_positional_executor_not_part_of_key(self):
        calls = []

        def scaled_closes(candles, factor, executor=None):
            calls.append(executor)
            return [c.close * factor for c in candles]

        cached = memoize_candles(scaled_closes, 5, 1000, FakeClock())
        candles = _candles(10)

        with ThreadPoolExecutor(max_workers=1) as pool:
            first = cached(candles, 2.0, pool)
            second = cached(candles, 2.0)

        assert first is second
        assert len(calls) == 1

    def test_positional_executor_rejected_by_trendlines(self):
        """The trendline executor is keyword-only; the cache key does not hide that."""
        caches = IndicatorCaches(clock=FakeClock())
        with ThreadPoolExecutor(max_workers=1) as pool:
            with pytest.raises(TypeError, match="positional"):
                caches.trendlines(_candles(60), TrendlineConfig(), pool)

    def test_caches_are_independent(self):
        caches = IndicatorCaches(clock=FakeClock())
        caches.ema([1.0, 2.0], 3)
        stats = caches.stats()

        assert stats["ema"]["size"] == 1
        assert stats["rsi"]["size"] == 0

    def test_clear(self):
        caches = IndicatorCaches(clock=FakeClock())
        caches.ema([1.0, 2.0], 3)
        caches.clear()
        assert all(s["size"] == 0 for s in caches.stats().values())
