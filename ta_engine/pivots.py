"""Pivot (local extremum) detection over price and oscillator series.

A pivot at index i is a strict extremum over the symmetric window
[i - strength, i + strength]. Indices closer than ``strength`` to either
end of the series never qualify, since their window is incomplete.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ta_engine.errors import SeriesAlignmentError
from ta_engine.models import AlignedSeries, Candle, Pivot, PivotType, StochasticPoint


def _scan_extrema(
    highs: np.ndarray,
    lows: np.ndarray,
    strength: int,
) -> list[tuple[int, PivotType]]:
    """Return (position, type) for every strict high/low in ascending order."""
    if strength <= 0:
        raise ValueError(f"strength must be positive, got {strength}")

    found: list[tuple[int, PivotType]] = []
    n = len(highs)
    for i in range(strength, n - strength):
        h = highs[i]
        if h > highs[i - strength:i].max() and h > highs[i + 1:i + strength + 1].max():
            found.append((i, PivotType.HIGH))

        low = lows[i]
        if low < lows[i - strength:i].min() and low < lows[i + 1:i + strength + 1].min():
            found.append((i, PivotType.LOW))

    return found


def detect_pivots(candles: Sequence[Candle], strength: int) -> list[Pivot]:
    """
    Detect price pivots.

    A high pivot's ``high`` is strictly greater than every other ``high``
    within ``strength`` bars on both sides; low pivots mirror this on
    ``low``. One index can yield both types.

    Args:
        candles: Candles in ascending time order
        strength: Half-width of the comparison window

    Returns:
        Pivots in ascending index order
    """
    highs = np.array([c.high for c in candles], dtype=np.float64)
    lows = np.array([c.low for c in candles], dtype=np.float64)

    return [
        Pivot(
            index=i,
            value=candles[i].high if kind is PivotType.HIGH else candles[i].low,
            type=kind,
            time=candles[i].time,
        )
        for i, kind in _scan_extrema(highs, lows, strength)
    ]


def detect_series_pivots(
    series: AlignedSeries[float] | Sequence[float],
    candles: Sequence[Candle],
    strength: int,
) -> list[Pivot]:
    """
    Detect pivots of an oscillator series aligned to ``candles``.

    Plain sequences are taken to start at candle index 0. Returned pivot
    indices are candle indices, so they can be matched against price pivots
    directly.

    Args:
        series: Oscillator values
        candles: The candles the series was derived from
        strength: Half-width of the comparison window

    Returns:
        Pivots in ascending index order

    Raises:
        SeriesAlignmentError: If the series runs past the candle array
    """
    if not isinstance(series, AlignedSeries):
        series = AlignedSeries(tuple(series), 0)

    if series.start_index < 0 or series.end_index > len(candles):
        raise SeriesAlignmentError(
            f"series covers candles [{series.start_index}, {series.end_index}) "
            f"but only {len(candles)} candles were given"
        )

    values = np.asarray(series.values, dtype=np.float64)
    pivots = []
    for i, kind in _scan_extrema(values, values, strength):
        index = series.candle_index(i)
        pivots.append(
            Pivot(index=index, value=float(values[i]), type=kind, time=candles[index].time)
        )
    return pivots


def detect_stochastic_pivots(
    stoch: AlignedSeries[StochasticPoint],
    candles: Sequence[Candle],
    strength: int,
) -> list[Pivot]:
    """Detect pivots of the Stochastic %D line (see ``detect_series_pivots``)."""
    return detect_series_pivots(stoch.map(lambda p: p.d), candles, strength)


def split_pivots(pivots: Sequence[Pivot]) -> tuple[list[Pivot], list[Pivot]]:
    """Split a mixed pivot list into (highs, lows), keeping order."""
    highs = [p for p in pivots if p.type is PivotType.HIGH]
    lows = [p for p in pivots if p.type is PivotType.LOW]
    return highs, lows
