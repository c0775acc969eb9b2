"""Divergence detection between price pivots and oscillator pivots.

Regular divergence (reversal):
  - Bullish: price lower low + oscillator higher low
  - Bearish: price higher high + oscillator lower high

Hidden divergence (continuation):
  - Hidden bullish: price higher low + oscillator lower low
  - Hidden bearish: price lower high + oscillator higher high

Only consecutive same-type price pivots are paired. Each end of the pair
is matched to the nearest oscillator pivot of the same type; a pair with
no match within tolerance is skipped.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ta_engine.errors import SeriesAlignmentError
from ta_engine.indicators import stochastic
from ta_engine.models import (
    Candle,
    DivergenceConfig,
    DivergenceKind,
    DivergencePoint,
    Pivot,
    PivotType,
)
from ta_engine.pivots import detect_pivots, detect_stochastic_pivots, split_pivots

logger = logging.getLogger(__name__)


def _nearest_pivot(
    candidates: Sequence[Pivot],
    index: int,
    max_index_distance: int,
) -> Pivot | None:
    """Closest candidate by index distance; ties go to the earlier pivot."""
    best: Pivot | None = None
    best_distance = max_index_distance + 1
    for pivot in candidates:
        distance = abs(pivot.index - index)
        if distance < best_distance:
            best = pivot
            best_distance = distance
    return best


def _classify(
    pivot_type: PivotType,
    price_start: float,
    price_end: float,
    osc_start: float,
    osc_end: float,
) -> DivergenceKind | None:
    if pivot_type is PivotType.HIGH:
        if price_end > price_start and osc_end < osc_start:
            return DivergenceKind.BEARISH
        if price_end < price_start and osc_end > osc_start:
            return DivergenceKind.HIDDEN_BEARISH
    else:
        if price_end < price_start and osc_end > osc_start:
            return DivergenceKind.BULLISH
        if price_end > price_start and osc_end < osc_start:
            return DivergenceKind.HIDDEN_BULLISH
    return None


def _scan_pairs(
    price_pivots: Sequence[Pivot],
    osc_pivots: Sequence[Pivot],
    pivot_type: PivotType,
    max_index_distance: int,
) -> list[DivergencePoint]:
    results = []
    for prev, curr in zip(price_pivots, price_pivots[1:]):
        osc_prev = _nearest_pivot(osc_pivots, prev.index, max_index_distance)
        osc_curr = _nearest_pivot(osc_pivots, curr.index, max_index_distance)
        if osc_prev is None or osc_curr is None or osc_prev is osc_curr:
            continue

        kind = _classify(pivot_type, prev.value, curr.value, osc_prev.value, osc_curr.value)
        if kind is None:
            continue

        results.append(
            DivergencePoint(
                kind=kind,
                start_index=prev.index,
                end_index=curr.index,
                start_time=prev.time,
                end_time=curr.time,
                start_price_value=prev.value,
                end_price_value=curr.value,
                start_osc_value=osc_prev.value,
                end_osc_value=osc_curr.value,
            )
        )
    return results


def _check_indices(pivots: Sequence[Pivot], n: int, label: str) -> None:
    for pivot in pivots:
        if not 0 <= pivot.index < n:
            raise SeriesAlignmentError(
                f"{label} pivot index {pivot.index} outside candle array of length {n}"
            )


def detect_divergence(
    price_pivots: Sequence[Pivot],
    osc_pivots: Sequence[Pivot],
    candles: Sequence[Candle] | None = None,
    max_index_distance: int = 2,
) -> list[DivergencePoint]:
    """
    Classify divergences between price pivots and oscillator pivots.

    Args:
        price_pivots: Price pivots in ascending index order (mixed types)
        osc_pivots: Oscillator pivots keyed by candle index (mixed types)
        candles: When given, every pivot index is checked against it
        max_index_distance: Max bar distance for matching an oscillator pivot

    Returns:
        Divergences from high pairs first, then low pairs, in scan order

    Raises:
        SeriesAlignmentError: If ``candles`` is given and a pivot lies outside it
    """
    if max_index_distance < 0:
        raise ValueError(f"max_index_distance must be >= 0, got {max_index_distance}")

    if candles is not None:
        _check_indices(price_pivots, len(candles), "price")
        _check_indices(osc_pivots, len(candles), "oscillator")

    price_highs, price_lows = split_pivots(price_pivots)
    osc_highs, osc_lows = split_pivots(osc_pivots)

    divergences = _scan_pairs(price_highs, osc_highs, PivotType.HIGH, max_index_distance)
    divergences.extend(_scan_pairs(price_lows, osc_lows, PivotType.LOW, max_index_distance))
    return divergences


def detect_stochastic_divergence(
    candles: Sequence[Candle],
    config: DivergenceConfig,
) -> list[DivergencePoint]:
    """
    Run the full price vs Stochastic %D divergence pipeline.

    Args:
        candles: Candles in ascending time order
        config: Pivot strength, matching tolerance and Stochastic parameters

    Returns:
        Divergences as returned by ``detect_divergence``
    """
    stoch_config = config.stochastic
    stoch = stochastic(candles, stoch_config.period, stoch_config.smooth_k, stoch_config.smooth_d)
    if len(stoch) == 0:
        return []

    price_pivots = detect_pivots(candles, config.pivot_strength)
    osc_pivots = detect_stochastic_pivots(stoch, candles, config.pivot_strength)
    divergences = detect_divergence(
        price_pivots, osc_pivots, candles, config.max_index_distance
    )
    logger.debug(
        "Divergence scan: %d price pivots, %d oscillator pivots, %d divergences",
        len(price_pivots),
        len(osc_pivots),
        len(divergences),
    )
    return divergences
