"""Indicator-derived signal helpers used by the panels and the scanner."""

from __future__ import annotations

from typing import Literal, Sequence

from ta_engine.indicators.oscillators import ema
from ta_engine.models import Candle, CrossoverMarker, EmaAlignment, Trade, VolumeFlow

StochasticZone = Literal["overbought", "oversold", "neutral"]
TrendDirection = Literal["up", "down"]
MacdTurnPoint = Literal["bullish", "bearish"]


def detect_ema_alignment(
    candles: Sequence[Candle],
    ema1_period: int,
    ema2_period: int,
    ema3_period: int,
    lookback_bars: int,
) -> EmaAlignment | None:
    """
    Detect a fresh stacking of three EMAs of the close.

    Bullish means ema1 > ema2 > ema3 on the last bar, bearish the reverse.
    The stacking must have formed within the last ``lookback_bars`` bars.

    Args:
        candles: Candles in ascending time order
        ema1_period: Fastest EMA period
        ema2_period: Middle EMA period
        ema3_period: Slowest EMA period
        lookback_bars: How recent the formation must be

    Returns:
        EmaAlignment, or None if not stacked or stacked for too long
    """
    if len(candles) < 2 or lookback_bars <= 0:
        return None

    closes = [c.close for c in candles]
    ema1 = ema(closes, ema1_period)
    ema2 = ema(closes, ema2_period)
    ema3 = ema(closes, ema3_period)

    def state(i: int) -> str | None:
        if ema1[i] > ema2[i] > ema3[i]:
            return "bullish"
        if ema1[i] < ema2[i] < ema3[i]:
            return "bearish"
        return None

    last = len(closes) - 1
    current = state(last)
    if current is None:
        return None

    start = last
    while start > 0 and last - start < lookback_bars and state(start - 1) == current:
        start -= 1

    # start == 0 means the stacking predates the data, not a fresh formation
    bars_ago = last - start
    if bars_ago >= lookback_bars or start == 0:
        return None

    return EmaAlignment(
        type=current,
        bars_ago=bars_ago,
        ema1=ema1[last],
        ema2=ema2[last],
        ema3=ema3[last],
    )


def detect_crossovers(
    ema1: Sequence[float],
    ema2: Sequence[float],
    candles: Sequence[Candle],
    ema3: Sequence[float] | None = None,
) -> list[CrossoverMarker]:
    """
    Find chart markers where EMAs cross or newly stack.

    With two series a marker is emitted where ema1 crosses ema2. With a
    third series a marker is emitted on the bar where ema1 > ema2 > ema3
    (or the reverse) first holds after not holding on the previous bar.
    All series are indexed like ``candles``.

    Args:
        ema1: Fast EMA values
        ema2: Slower EMA values
        candles: Candles the EMAs were computed from
        ema3: Optional slowest EMA for the three-line rule

    Returns:
        Markers in ascending index order
    """
    n = min(len(ema1), len(ema2), len(candles))
    if ema3 is not None:
        n = min(n, len(ema3))

    markers: list[CrossoverMarker] = []
    for i in range(1, n):
        p1, p2 = ema1[i - 1], ema2[i - 1]
        c1, c2 = ema1[i], ema2[i]

        if ema3 is None:
            if p1 <= p2 and c1 > c2:
                markers.append(CrossoverMarker(index=i, time=candles[i].time, type="bullish"))
            elif p1 >= p2 and c1 < c2:
                markers.append(CrossoverMarker(index=i, time=candles[i].time, type="bearish"))
            continue

        p3, c3 = ema3[i - 1], ema3[i]
        if not p1 > p2 > p3 and c1 > c2 > c3:
            markers.append(CrossoverMarker(index=i, time=candles[i].time, type="bullish"))
        elif not p1 < p2 < p3 and c1 < c2 < c3:
            markers.append(CrossoverMarker(index=i, time=candles[i].time, type="bearish"))

    return markers


def stochastic_zone(k: float, overbought: float, oversold: float) -> StochasticZone:
    """Classify a %K reading against the overbought/oversold levels."""
    if k >= overbought:
        return "overbought"
    if k <= oversold:
        return "oversold"
    return "neutral"


def stochastic_trend(k: float, d: float) -> TrendDirection:
    """%K above %D is an up trend."""
    return "up" if k >= d else "down"


def macd_trend(macd_value: float, signal_value: float) -> TrendDirection:
    """MACD line above its signal is an up trend."""
    return "up" if macd_value >= signal_value else "down"


def detect_macd_turn_point(histogram: Sequence[float]) -> MacdTurnPoint | None:
    """
    Detect a turn in the MACD histogram over its last three bars.

    A falling histogram that rises on the last bar is a bullish turn;
    a rising one that falls is a bearish turn.
    """
    if len(histogram) < 3:
        return None

    before, middle, last = histogram[-3], histogram[-2], histogram[-1]
    if middle < before and last > middle:
        return "bullish"
    if middle > before and last < middle:
        return "bearish"
    return None


def volume_flow(trades: Sequence[Trade], window_ms: int, now_ms: int) -> VolumeFlow:
    """
    Sum aggressor buy and sell size over ``[now_ms - window_ms, now_ms]``.

    Args:
        trades: Trade prints in any order
        window_ms: Trailing window length in milliseconds
        now_ms: End of the window (caller's clock)

    Returns:
        VolumeFlow with buy/sell size and trade count
    """
    start = now_ms - window_ms
    buy_volume = 0.0
    sell_volume = 0.0
    count = 0

    for trade in trades:
        if not start <= trade.time <= now_ms:
            continue
        count += 1
        if trade.side == "buy":
            buy_volume += trade.size
        else:
            sell_volume += trade.size

    return VolumeFlow(buy_volume=buy_volume, sell_volume=sell_volume, trade_count=count)
