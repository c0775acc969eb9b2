"""Support/resistance trendline search.

For each lookback period the search draws a line through every pair of
pivot lows (support) or pivot highs (resistance), rejects lines that
price cuts through or that drift away from the current price, and keeps
the line with the most touches. The best line over all periods wins.

The most recent ``excluded_tail`` bars are never fitted so the line is
not pulled toward the noise of the live candle; the winning line is then
extended to the last candle for display.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from typing import Iterator, Sequence

import numpy as np

from ta_engine.models import (
    Candle,
    LineEquation,
    Pivot,
    ScoredTrendline,
    TrendlineConfig,
    TrendlineKind,
    TrendlinePoint,
    TrendlineResult,
)
from ta_engine.pivots import detect_pivots, split_pivots

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Candidate:
    """Accepted line of one period, before extension to the last candle."""

    kind: TrendlineKind
    line: LineEquation
    anchor_time: int
    touches: int
    violations: int
    deviation_pct: float
    score: float
    period: int


def lookback_periods(candle_count: int, config: TrendlineConfig) -> list[int]:
    """Lookback periods searched for ``candle_count`` candles."""
    boundary = candle_count - config.excluded_tail
    if boundary < config.min_period:
        return []
    return list(range(config.min_period, boundary + 1, config.period_step))


def _pivot_pairs(pivots: Sequence[Pivot], budget: int) -> Iterator[tuple[Pivot, Pivot]]:
    """Yield (older, newer) pivot pairs, most recent pairs first, up to ``budget``."""
    count = 0
    for j in range(len(pivots) - 1, 0, -1):
        for i in range(j - 1, -1, -1):
            if count >= budget:
                return
            count += 1
            yield pivots[i], pivots[j]


def _search_side(
    kind: TrendlineKind,
    pivots: Sequence[Pivot],
    times: np.ndarray,
    extremes: np.ndarray,
    boundary_time: int,
    boundary_close: float,
    avg_height: float,
    config: TrendlineConfig,
) -> _Candidate | None:
    """Best line through ``pivots`` for one side of one period."""
    period = len(times)
    best: _Candidate | None = None

    for first, second in _pivot_pairs(pivots, config.max_combinations):
        if first.time == second.time:
            continue
        line = LineEquation.through(first.time, first.value, second.time, second.value)
        expected = line.slope * times + line.intercept

        if kind is TrendlineKind.SUPPORT:
            violations = int((extremes < expected * (1 - config.violation_tolerance)).sum())
        else:
            violations = int((extremes > expected * (1 + config.violation_tolerance)).sum())
        if violations / period > config.max_violation_rate:
            continue

        deviation = abs(line.value_at(boundary_time) - boundary_close)
        deviation_pct = deviation / abs(boundary_close)
        if deviation_pct > config.max_deviation_pct:
            continue
        if deviation > config.max_deviation_height_mult * avg_height:
            continue

        touches = int((np.abs(extremes - expected) <= config.touch_tolerance * np.abs(expected)).sum())
        score = touches * 1000 - deviation_pct * 100 * 100

        if best is None or score > best.score:
            best = _Candidate(
                kind=kind,
                line=line,
                anchor_time=first.time,
                touches=touches,
                violations=violations,
                deviation_pct=deviation_pct * 100,
                score=score,
                period=period,
            )

    return best


def _search_period(
    fit_candles: Sequence[Candle],
    config: TrendlineConfig,
    boundary_close: float,
    avg_height: float,
    period: int,
) -> tuple[_Candidate | None, _Candidate | None]:
    """Best (support, resistance) for the ``period`` bars before the boundary."""
    window = fit_candles[-period:]
    highs, lows = split_pivots(detect_pivots(window, config.pivot_strength))

    times = np.array([c.time for c in window], dtype=np.float64)
    boundary_time = window[-1].time
    search = partial(
        _search_side,
        times=times,
        boundary_time=boundary_time,
        boundary_close=boundary_close,
        avg_height=avg_height,
        config=config,
    )

    support = search(
        TrendlineKind.SUPPORT,
        lows,
        extremes=np.array([c.low for c in window], dtype=np.float64),
    )
    resistance = search(
        TrendlineKind.RESISTANCE,
        highs,
        extremes=np.array([c.high for c in window], dtype=np.float64),
    )
    return support, resistance


def _finalize(candidate: _Candidate | None, last_time: int) -> ScoredTrendline | None:
    if candidate is None:
        return None

    line = candidate.line
    return ScoredTrendline(
        kind=candidate.kind,
        line=(
            TrendlinePoint(candidate.anchor_time, line.value_at(candidate.anchor_time)),
            TrendlinePoint(last_time, line.value_at(last_time)),
        ),
        touches=candidate.touches,
        violations=candidate.violations,
        deviation_from_last_price=candidate.deviation_pct,
        slope=line.slope,
        intercept=line.intercept,
        period=candidate.period,
        score=candidate.score,
    )


def _better(current: _Candidate | None, new: _Candidate | None) -> _Candidate | None:
    if new is None:
        return current
    if current is None or new.score > current.score:
        return new
    return current


def fit_trendlines(
    candles: Sequence[Candle],
    config: TrendlineConfig,
    *,
    executor: Executor | None = None,
) -> TrendlineResult:
    """
    Find the best support and resistance trendlines.

    Periods are ``min_period, min_period + period_step, ...`` up to the
    number of fittable bars. Each period ends at the exclusion boundary
    (``len(candles) - excluded_tail``). Within a period at most
    ``max_combinations`` pivot pairs are tried per side.

    A candidate is rejected when more than ``max_violation_rate`` of the
    period's bars cross it beyond ``violation_tolerance``, or when its value
    at the boundary is more than ``max_deviation_pct`` (relative) or
    ``max_deviation_height_mult`` average candle heights (absolute) away
    from the boundary close. Score is ``touches * 1000 - deviation% * 100``.

    Args:
        candles: Candles in ascending time order, equally spaced
        config: Search thresholds and budgets
        executor: Optional executor used to search periods in parallel

    Returns:
        TrendlineResult; lines are extended to the last candle's time
    """
    periods = lookback_periods(len(candles), config)
    if not periods:
        return TrendlineResult()

    boundary = len(candles) - config.excluded_tail
    fit_candles = list(candles[:boundary])
    boundary_close = fit_candles[-1].close
    if boundary_close == 0:
        return TrendlineResult()

    recent = fit_candles[-config.avg_height_bars:]
    avg_height = float(np.mean([c.high - c.low for c in recent]))

    search = partial(_search_period, fit_candles, config, boundary_close, avg_height)
    if executor is None:
        results = map(search, periods)
    else:
        results = executor.map(search, periods)

    best_support: _Candidate | None = None
    best_resistance: _Candidate | None = None
    for support, resistance in results:
        best_support = _better(best_support, support)
        best_resistance = _better(best_resistance, resistance)

    logger.debug(
        "Trendline search: %d periods, support=%s, resistance=%s",
        len(periods),
        best_support is not None,
        best_resistance is not None,
    )

    last_time = candles[-1].time
    return TrendlineResult(
        support=_finalize(best_support, last_time),
        resistance=_finalize(best_resistance, last_time),
    )
