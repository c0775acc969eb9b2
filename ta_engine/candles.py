"""Candle array utilities: timeframe aggregation, price inversion, downsampling.

Aggregation rules:
- open: first candle's open
- high: highest high
- low: lowest low
- close: last candle's close
- volume: sum of volumes
- time: first candle's time
"""

from __future__ import annotations

from typing import Sequence

from ta_engine.models import Candle


def aggregate_candles(candles: Sequence[Candle], factor: int) -> list[Candle]:
    """
    Merge every ``factor`` consecutive candles into one.

    Chunks are taken from the start of the array; a trailing partial chunk
    is still emitted (it is the forming higher-timeframe candle).

    Args:
        candles: Candles in ascending time order
        factor: Number of source candles per output candle

    Returns:
        Aggregated candles
    """
    if factor <= 0:
        raise ValueError(f"factor must be positive, got {factor}")

    result = []
    for i in range(0, len(candles), factor):
        chunk = candles[i:i + factor]
        result.append(
            Candle(
                time=chunk[0].time,
                open=chunk[0].open,
                high=max(c.high for c in chunk),
                low=min(c.low for c in chunk),
                close=chunk[-1].close,
                volume=sum(c.volume for c in chunk),
            )
        )
    return result


def aggregate_1m_to_5m(candles_1m: Sequence[Candle]) -> list[Candle]:
    """Aggregate 1-minute candles into 5-minute candles."""
    return aggregate_candles(candles_1m, 5)


def aggregate_15m_to_1h(candles_15m: Sequence[Candle]) -> list[Candle]:
    """Aggregate 15-minute candles into 1-hour candles."""
    return aggregate_candles(candles_15m, 4)


def invert_price(value: float, reference: float) -> float:
    """Mirror a price around ``reference``."""
    return 2 * reference - value


def invert_candles(candles: Sequence[Candle], reference: float) -> list[Candle]:
    """
    Mirror candles around ``reference`` for the flipped chart mode.

    High and low swap roles so the inverted candle stays well-formed.
    """
    return [
        Candle(
            time=c.time,
            open=invert_price(c.open, reference),
            high=invert_price(c.low, reference),
            low=invert_price(c.high, reference),
            close=invert_price(c.close, reference),
            volume=c.volume,
        )
        for c in candles
    ]


def downsample_closes(candles: Sequence[Candle], target_points: int) -> list[float]:
    """Pick ``target_points`` evenly spaced closes (all closes if fewer)."""
    if len(candles) == 0 or target_points <= 0:
        return []
    if len(candles) <= target_points:
        return [c.close for c in candles]

    step = len(candles) / target_points
    return [candles[int(i * step)].close for i in range(target_points)]
