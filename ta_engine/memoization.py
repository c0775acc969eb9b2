"""LRU + TTL memoization for indicator and pattern functions.

Cache keys fingerprint a series by its length, first and last element
plus a signature of the remaining arguments, which keeps lookups O(1).
Two different series sharing length, endpoints and arguments therefore
alias to the same entry. Callers feed sliding candle windows whose tail
only ever advances, where such collisions do not occur in practice;
callers that mutate candles in the middle of a window must not use these
caches.

Caches are created per logical use (see ``IndicatorCaches``) and passed
explicitly; there is no module-level cache instance.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Sequence, TypeVar

import orjson
from pydantic import BaseModel

from ta_engine.channels import detect_channels
from ta_engine.divergence import detect_stochastic_divergence
from ta_engine.indicators import ema, macd, rsi, stochastic
from ta_engine.models import Candle
from ta_engine.trendlines import fit_trendlines

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Clock = Callable[[], float]

_MISSING = object()


def monotonic_ms() -> float:
    """Default cache clock, in milliseconds."""
    return time.monotonic() * 1000


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """A cached value and the clock reading when it was stored."""

    value: T
    timestamp: float


class LRUCache(Generic[T]):
    """Thread-safe LRU cache with per-entry TTL.

    Parameters
    ----------
    max_size : int
        Maximum number of entries. Inserting a new key into a full cache
        evicts the least recently used entry.
    ttl_ms : float
        Entry lifetime. Expired entries are dropped lazily when read;
        there is no background sweep.
    clock : callable, optional
        Returns the current time in milliseconds. Defaults to a monotonic
        clock; tests inject a controllable one.
    """

    def __init__(self, max_size: int, ttl_ms: float, clock: Clock | None = None):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if ttl_ms < 0:
            raise ValueError(f"ttl_ms must be >= 0, got {ttl_ms}")
        self.max_size = max_size
        self.ttl_ms = ttl_ms
        self._clock = clock or monotonic_ms
        self._entries: OrderedDict[Hashable, CacheEntry[T]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> T | Any:
        """Return the cached value, refreshing its recency, or ``default``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return default

            if self._clock() - entry.timestamp > self.ttl_ms:
                del self._entries[key]
                self.misses += 1
                return default

            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def set(self, key: Hashable, value: T) -> None:
        """Store ``value``, evicting the least recently used entry if full."""
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("LRU evicted %r", evicted)

            self._entries[key] = CacheEntry(value, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        """Membership test without refreshing recency or checking TTL."""
        return key in self._entries

    def keys(self) -> list[Hashable]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)


# =============================================================================
# Key functions
# =============================================================================

def hash_series(values: Sequence[float]) -> str:
    """Fingerprint a numeric series by length and endpoints."""
    if len(values) == 0:
        return "empty"
    return f"{len(values)}-{values[0]}-{values[-1]}"


def hash_candle_data(candles: Sequence[Candle]) -> str:
    """Fingerprint a candle array by length, first/last time and last close."""
    if len(candles) == 0:
        return "empty"
    first = candles[0]
    last = candles[-1]
    return f"{len(candles)}-{first.time}-{last.time}-{last.close}"


def _signature_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    raise TypeError(f"Cannot build cache signature for {type(obj).__name__}")


def args_signature(*args: Any, **kwargs: Any) -> str:
    """Stable string signature of scalar/config arguments."""
    payload = orjson.dumps(
        [args, kwargs],
        default=_signature_default,
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
    )
    return payload.decode()


# =============================================================================
# Memoization wrappers
# =============================================================================

def memoize(
    fn: Callable[..., R],
    key_fn: Callable[..., Hashable],
    max_size: int,
    ttl_ms: float,
    clock: Clock | None = None,
) -> Callable[..., R]:
    """
    Wrap ``fn`` with an LRU + TTL cache.

    Args:
        fn: Pure function to cache
        key_fn: Builds the cache key from the call's arguments
        max_size: Maximum cached results
        ttl_ms: Result lifetime in milliseconds
        clock: Optional millisecond clock (for tests)

    Returns:
        Wrapper with the same call signature; its cache is exposed as
        ``wrapper.cache``
    """
    cache: LRUCache[R] = LRUCache(max_size, ttl_ms, clock)

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> R:
        key = key_fn(*args, **kwargs)
        cached = cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        result = fn(*args, **kwargs)
        cache.set(key, result)
        return result

    wrapper.cache = cache  # type: ignore[attr-defined]
    return wrapper


def memoize_series(
    fn: Callable[..., R],
    max_size: int,
    ttl_ms: float,
    clock: Clock | None = None,
) -> Callable[..., R]:
    """Memoize a function whose first argument is a numeric series."""

    def key_fn(values: Sequence[float], *args: Any, **kwargs: Any) -> str:
        return f"{hash_series(values)}|{args_signature(*args, **kwargs)}"

    return memoize(fn, key_fn, max_size, ttl_ms, clock)


def memoize_candles(
    fn: Callable[..., R],
    max_size: int,
    ttl_ms: float,
    clock: Clock | None = None,
) -> Callable[..., R]:
    """Memoize a function whose first argument is a candle array.

    Executors, passed positionally or by keyword, only change how the
    result is computed and are left out of the key.
    """

    def key_fn(candles: Sequence[Candle], *args: Any, **kwargs: Any) -> str:
        args = tuple(a for a in args if not isinstance(a, Executor))
        extra = {k: v for k, v in kwargs.items() if not isinstance(v, Executor)}
        return f"{hash_candle_data(candles)}|{args_signature(*args, **extra)}"

    return memoize(fn, key_fn, max_size, ttl_ms, clock)


class IndicatorCaches:
    """One memoized entry point per indicator kind.

    Create one instance per scanner (or per symbol shard) and pass it
    where cached evaluation is wanted. Every attribute has its own LRU.
    """

    def __init__(self, max_size: int = 50, ttl_ms: float = 30_000, clock: Clock | None = None):
        self.ema = memoize_series(ema, max_size, ttl_ms, clock)
        self.macd = memoize_series(macd, max_size, ttl_ms, clock)
        self.rsi = memoize_series(rsi, max_size, ttl_ms, clock)
        self.stochastic = memoize_candles(stochastic, max_size, ttl_ms, clock)
        self.channels = memoize_candles(detect_channels, max_size, ttl_ms, clock)
        self.divergences = memoize_candles(detect_stochastic_divergence, max_size, ttl_ms, clock)
        self.trendlines = memoize_candles(fit_trendlines, max_size, ttl_ms, clock)

    def _caches(self) -> dict[str, LRUCache]:
        return {
            name: fn.cache
            for name, fn in vars(self).items()
            if hasattr(fn, "cache")
        }

    def clear(self) -> None:
        for cache in self._caches().values():
            cache.clear()

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-cache size, hits and misses."""
        return {
            name: {"size": len(cache), "hits": cache.hits, "misses": cache.misses}
            for name, cache in self._caches().items()
        }
