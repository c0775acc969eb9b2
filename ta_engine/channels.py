"""Parallel price channel detection.

Every pair of high pivots proposes an upper line and every pair of low
pivots a lower line. A combination is a channel when the two slopes are
roughly parallel and enough pivots sit on either line. Lines are fitted
in (candle index, price) space, so the angle is measured in price units
per bar.
"""

from __future__ import annotations

import logging
import math
from itertools import combinations
from typing import Sequence

import numpy as np

from ta_engine.models import (
    Candle,
    Channel,
    ChannelConfig,
    ChannelKind,
    LineEquation,
    Pivot,
)
from ta_engine.pivots import detect_pivots, split_pivots

logger = logging.getLogger(__name__)


def slopes_compatible(
    upper_slope: float,
    lower_slope: float,
    tolerance: float,
    flat_epsilon: float,
) -> bool:
    """
    Check whether two slopes are close enough to form a channel.

    Two near-flat slopes always match; otherwise the difference must be
    within ``tolerance`` times the mean absolute slope.
    """
    if abs(upper_slope) < flat_epsilon and abs(lower_slope) < flat_epsilon:
        return True
    mean_abs = (abs(upper_slope) + abs(lower_slope)) / 2
    return abs(upper_slope - lower_slope) <= tolerance * mean_abs


def classify_angle(angle_degrees: float, horizontal_threshold: float) -> ChannelKind:
    """Map a channel angle to horizontal/ascending/descending."""
    if abs(angle_degrees) < horizontal_threshold:
        return ChannelKind.HORIZONTAL
    if angle_degrees > 0:
        return ChannelKind.ASCENDING
    return ChannelKind.DESCENDING


def _touch_mask(
    indices: np.ndarray,
    values: np.ndarray,
    line: LineEquation,
    tolerance: float,
) -> np.ndarray:
    expected = line.slope * indices + line.intercept
    return np.abs(values - expected) <= tolerance * np.abs(expected)


def detect_channels(candles: Sequence[Candle], config: ChannelConfig) -> list[Channel]:
    """
    Find roughly parallel support/resistance line pairs.

    Only the last ``config.lookback_bars`` candles are considered. Line x
    values and pivot indices refer to positions in ``candles``.

    Args:
        candles: Candles in ascending time order
        config: Pivot strength, lookback, touch and slope thresholds

    Returns:
        Qualifying channels sorted by strength, then touches (strongest first)
    """
    n = len(candles)
    start = max(0, n - config.lookback_bars)
    window = list(candles[start:])

    pivots = [
        Pivot(index=p.index + start, value=p.value, type=p.type, time=p.time)
        for p in detect_pivots(window, config.pivot_strength)
    ]
    total = len(pivots)
    if total < config.min_touches * 2:
        logger.debug(
            "Channel scan skipped: %d pivots, need %d", total, config.min_touches * 2
        )
        return []

    highs, lows = split_pivots(pivots)
    # Most recent pivots first so a truncated search keeps recent lines
    highs.reverse()
    lows.reverse()
    indices = np.array([p.index for p in pivots], dtype=np.float64)
    values = np.array([p.value for p in pivots], dtype=np.float64)

    lower_lines = [
        LineEquation.through(a.index, a.value, b.index, b.value)
        for a, b in combinations(lows, 2)
    ]
    lower_masks = [
        _touch_mask(indices, values, line, config.touch_tolerance) for line in lower_lines
    ]

    last = n - 1
    budget = config.max_combinations
    evaluated = 0
    channels: list[Channel] = []
    for a, b in combinations(highs, 2):
        if evaluated >= budget:
            break
        upper = LineEquation.through(a.index, a.value, b.index, b.value)
        upper_mask = _touch_mask(indices, values, upper, config.touch_tolerance)

        for lower, lower_mask in zip(lower_lines, lower_masks):
            if evaluated >= budget:
                break
            evaluated += 1

            if not slopes_compatible(
                upper.slope,
                lower.slope,
                config.slope_tolerance,
                config.flat_slope_epsilon,
            ):
                continue
            # Crossed lines do not bound price at the window end
            if upper.value_at(last) < lower.value_at(last):
                continue

            mask = upper_mask | lower_mask
            touches = int(mask.sum())
            if touches < config.min_touches:
                continue

            angle = math.degrees(math.atan((upper.slope + lower.slope) / 2))
            channels.append(
                Channel(
                    kind=classify_angle(angle, config.horizontal_angle_degrees),
                    upper_line=upper,
                    lower_line=lower,
                    touches=touches,
                    strength=touches / total,
                    angle_degrees=angle,
                    pivots=tuple(p for p, hit in zip(pivots, mask) if hit),
                )
            )

    channels.sort(key=lambda c: (-c.strength, -c.touches))
    if evaluated >= budget:
        logger.debug("Channel scan stopped after %d line pairs", budget)
    logger.debug(
        "Channel scan: %d highs, %d lows, %d channels", len(highs), len(lows), len(channels)
    )
    return channels
