"""Moving averages and oscillators (pure math, no I/O).

All functions take plain sequences and return fresh lists or
AlignedSeries; the input is never modified. Too little data yields an
empty result instead of an exception.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ta_engine.models import AlignedSeries, Candle, MacdResult, StochasticPoint


def _check_period(name: str, value: int) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    Seeded with the first value and emitted for every bar, so the output
    is index-aligned with the input (no warm-up NaNs).

    Args:
        values: Sequence of values (typically closes)
        period: EMA period

    Returns:
        List of EMA values, same length as input
    """
    _check_period("period", period)
    if len(values) == 0:
        return []

    arr = np.asarray(values, dtype=np.float64)
    k = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        # Same as arr[i]*k + prev*(1-k), but exact when arr[i] == prev
        result[i] = result[i - 1] + k * (arr[i] - result[i - 1])

    return result.tolist()


def sma(values: Sequence[float], period: int) -> AlignedSeries[float]:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of values
        period: Window width

    Returns:
        AlignedSeries starting at index ``period - 1``
    """
    _check_period("period", period)
    if len(values) < period:
        return AlignedSeries.empty(period - 1)

    arr = np.asarray(values, dtype=np.float64)
    means = sliding_window_view(arr, period).mean(axis=1)
    return AlignedSeries(tuple(means.tolist()), period - 1)


def macd(
    values: Sequence[float],
    fast_period: int,
    slow_period: int,
    signal_period: int,
) -> MacdResult:
    """
    Calculate MACD line, signal line and histogram.

    macd = ema(fast) - ema(slow)
    signal = ema(macd, signal_period)
    histogram = macd - signal

    Args:
        values: Sequence of values (typically closes)
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal EMA period

    Returns:
        MacdResult whose three lists have the input's length
    """
    if len(values) == 0:
        return MacdResult(macd=[], signal=[], histogram=[])

    fast = np.asarray(ema(values, fast_period))
    slow = np.asarray(ema(values, slow_period))
    macd_line = fast - slow
    signal_line = np.asarray(ema(macd_line, signal_period))
    histogram = macd_line - signal_line

    return MacdResult(
        macd=macd_line.tolist(),
        signal=signal_line.tolist(),
        histogram=histogram.tolist(),
    )


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(values: Sequence[float], period: int) -> AlignedSeries[float]:
    """
    Calculate Relative Strength Index with Wilder's smoothing.

    The first average gain/loss is the mean of the first ``period`` changes;
    later bars use ``avg = (prev * (period - 1) + current) / period``.
    A zero average loss yields 100.

    Args:
        values: Sequence of values (typically closes)
        period: RSI period

    Returns:
        AlignedSeries starting at index ``period`` (empty if too short)
    """
    _check_period("period", period)
    if len(values) <= period:
        return AlignedSeries.empty(period)

    arr = np.asarray(values, dtype=np.float64)
    deltas = np.diff(arr)
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    result = [_rsi_value(avg_gain, avg_loss)]

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result.append(_rsi_value(avg_gain, avg_loss))

    return AlignedSeries(tuple(result), period)


def stochastic_offset(period: int, smooth_k: int, smooth_d: int) -> int:
    """Number of leading candles without a Stochastic value."""
    return period + smooth_k + smooth_d - 2


def stochastic(
    candles: Sequence[Candle],
    period: int,
    smooth_k: int,
    smooth_d: int,
) -> AlignedSeries[StochasticPoint]:
    """
    Calculate the slow Stochastic oscillator.

    raw %K = (close - lowest low) / (highest high - lowest low) * 100 over the
    ``period`` bars ending at each bar, starting at bar ``period``. A flat
    window (high == low) yields 50. Raw %K is smoothed by an SMA of
    ``smooth_k``; %D is an SMA of ``smooth_d`` over the smoothed %K.

    Args:
        candles: Candles in ascending time order
        period: Lookback for highest high / lowest low
        smooth_k: %K smoothing width
        smooth_d: %D smoothing width

    Returns:
        AlignedSeries of StochasticPoint starting at
        ``period + smooth_k + smooth_d - 2``
    """
    _check_period("period", period)
    _check_period("smooth_k", smooth_k)
    _check_period("smooth_d", smooth_d)

    offset = stochastic_offset(period, smooth_k, smooth_d)
    if len(candles) <= offset:
        return AlignedSeries.empty(offset)

    highs = np.array([c.high for c in candles], dtype=np.float64)
    lows = np.array([c.low for c in candles], dtype=np.float64)
    closes = np.array([c.close for c in candles], dtype=np.float64)

    # Window j covers bars [j, j + period - 1]; drop the first so raw %K
    # lines up with bars period..n-1
    highest_high = sliding_window_view(highs, period).max(axis=1)[1:]
    lowest_low = sliding_window_view(lows, period).min(axis=1)[1:]
    price_range = highest_high - lowest_low

    raw_k = np.divide(
        (closes[period:] - lowest_low) * 100.0,
        price_range,
        out=np.full_like(price_range, 50.0),
        where=price_range != 0,
    )
    raw_k = np.clip(raw_k, 0.0, 100.0)

    k_line = sliding_window_view(raw_k, smooth_k).mean(axis=1)
    d_line = sliding_window_view(k_line, smooth_d).mean(axis=1)
    k_line = k_line[smooth_d - 1:]

    points = tuple(
        StochasticPoint(k=float(k), d=float(d)) for k, d in zip(k_line, d_line)
    )
    return AlignedSeries(points, offset)
