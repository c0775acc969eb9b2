"""Candle and derived-series data models.

These models use @dataclass(slots=True) with float prices and integer
millisecond timestamps, since they sit on the hot path of every
indicator call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Literal, Sequence, TypeVar, overload

T = TypeVar("T")
U = TypeVar("U")

TradeSide = Literal["buy", "sell"]


@dataclass(slots=True, frozen=True)
class Candle:
    """OHLCV candle. Immutable once handed to the engine."""

    time: int  # Unix timestamp in milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low


@dataclass(slots=True, frozen=True)
class AlignedSeries(Sequence[T], Generic[T]):
    """A derived series aligned to a suffix of its source candle array.

    ``values[i]`` belongs to ``candles[start_index + i]``. Indicators with a
    warm-up period return one of these so callers never have to recompute
    ``len(candles) - len(series)`` by hand.
    """

    values: tuple[T, ...]
    start_index: int = 0

    @classmethod
    def empty(cls, start_index: int = 0) -> AlignedSeries[T]:
        return cls((), start_index)

    @overload
    def __getitem__(self, i: int) -> T: ...

    @overload
    def __getitem__(self, i: slice) -> tuple[T, ...]: ...

    def __getitem__(self, i):
        return self.values[i]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[T]:
        return iter(self.values)

    @property
    def end_index(self) -> int:
        """Candle index one past the last value."""
        return self.start_index + len(self.values)

    def candle_index(self, i: int) -> int:
        """Translate a position in this series to a candle index."""
        if i < 0:
            i += len(self.values)
        return self.start_index + i

    def at_candle(self, candle_index: int) -> T | None:
        """Value aligned to ``candle_index``, or None outside the series."""
        i = candle_index - self.start_index
        if 0 <= i < len(self.values):
            return self.values[i]
        return None

    def map(self, fn: Callable[[T], U]) -> AlignedSeries[U]:
        """Apply ``fn`` to every value, keeping the alignment."""
        return AlignedSeries(tuple(fn(v) for v in self.values), self.start_index)

    def tolist(self) -> list[T]:
        return list(self.values)


@dataclass(slots=True, frozen=True)
class StochasticPoint:
    """Smoothed Stochastic %K and %D at one bar."""

    k: float
    d: float


@dataclass(slots=True, frozen=True)
class MacdResult:
    """MACD line, signal line and histogram, each the length of the input."""

    macd: list[float]
    signal: list[float]
    histogram: list[float]

    def __len__(self) -> int:
        return len(self.macd)


@dataclass(slots=True, frozen=True)
class Trade:
    """Executed trade print used for volume-flow statistics."""

    time: int  # Unix timestamp in milliseconds
    price: float
    size: float
    side: TradeSide

    @property
    def notional(self) -> float:
        return self.price * self.size
