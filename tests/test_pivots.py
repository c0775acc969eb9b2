"""Tests for pivot detection."""

import pytest

from ta_engine.errors import SeriesAlignmentError
from ta_engine.models import AlignedSeries, Candle, PivotType, StochasticPoint
from ta_engine.pivots import (
    detect_pivots,
    detect_series_pivots,
    detect_stochastic_pivots,
    split_pivots,
)


def _candles(highs: list[float], lows: list[float] | None = None) -> list[Candle]:
    if lows is None:
        lows = [h - 1.0 for h in highs]
    return [
        Candle(
            time=1_700_000_000_000 + i * 60_000,
            open=(h + l) / 2,
            high=h,
            low=l,
            close=(h + l) / 2,
        )
        for i, (h, l) in enumerate(zip(highs, lows))
    ]


class TestDetectPivots:
    """Tests for price pivots."""

    def test_single_high_and_low(self):
        """A peak and a trough are detected at their indices."""
        highs = [10, 11, 12, 15, 12, 11, 10, 9, 8, 9, 10]
        lows = [9, 10, 11, 14, 11, 10, 9, 8, 5, 8, 9]
        pivots = detect_pivots(_candles(highs, lows), strength=2)

        found = {(p.index, p.type) for p in pivots}
        assert (3, PivotType.HIGH) in found
        assert (8, PivotType.LOW) in found

        high = next(p for p in pivots if p.type is PivotType.HIGH)
        assert high.value == 15
        assert high.time == 1_700_000_000_000 + 3 * 60_000

    def test_ties_are_not_pivots(self):
        """The extremum must be strict."""
        highs = [10, 11, 15, 15, 11, 10, 9]
        pivots = detect_pivots(_candles(highs), strength=2)
        assert not [p for p in pivots if p.type is PivotType.HIGH]

    def test_boundaries_excluded(self):
        """Indices within ``strength`` of either end never qualify."""
        highs = [20, 10, 11, 12, 11, 10, 25]
        pivots = detect_pivots(_candles(highs), strength=2)

        indices = [p.index for p in pivots if p.type is PivotType.HIGH]
        assert indices == [3]

    def test_every_pivot_is_strict_extremum(self):
        """Each reported high is above every neighbour within the window."""
        highs = [10, 13, 11, 14, 12, 16, 11, 13, 10, 12, 15, 11, 10]
        candles = _candles(highs)
        strength = 2
        for p in detect_pivots(candles, strength):
            window = range(p.index - strength, p.index + strength + 1)
            if p.type is PivotType.HIGH:
                assert all(candles[j].high < p.value for j in window if j != p.index)
            else:
                assert all(candles[j].low > p.value for j in window if j != p.index)

    def test_short_input(self):
        """Fewer than 2 * strength + 1 candles yields nothing."""
        assert detect_pivots(_candles([1, 3, 1]), strength=2) == []

    def test_invalid_strength(self):
        with pytest.raises(ValueError):
            detect_pivots(_candles([1, 2, 3]), strength=0)


class TestSeriesPivots:
    """Tests for oscillator pivots."""

    def test_indices_are_candle_indices(self):
        """Pivots of an offset series are reported on the candle axis."""
        candles = _candles([10.0] * 12)
        series = AlignedSeries((20.0, 30.0, 50.0, 30.0, 20.0), start_index=5)
        pivots = detect_series_pivots(series, candles, strength=2)

        assert len(pivots) == 1
        assert pivots[0].index == 7
        assert pivots[0].type is PivotType.HIGH
        assert pivots[0].time == candles[7].time

    def test_plain_sequence_starts_at_zero(self):
        candles = _candles([10.0] * 5)
        pivots = detect_series_pivots([50.0, 40.0, 10.0, 40.0, 50.0], candles, strength=2)

        assert [(p.index, p.type) for p in pivots] == [(2, PivotType.LOW)]

    def test_series_longer_than_candles(self):
        """A series that runs past the candle array is rejected."""
        candles = _candles([10.0] * 5)
        series = AlignedSeries((1.0, 2.0, 3.0, 2.0, 1.0), start_index=2)
        with pytest.raises(SeriesAlignmentError):
            detect_series_pivots(series, candles, strength=1)

    def test_stochastic_pivots_use_d_line(self):
        candles = _candles([10.0] * 8)
        stoch = AlignedSeries(
            tuple(StochasticPoint(k=50.0, d=d) for d in (30.0, 60.0, 30.0)),
            start_index=5,
        )
        pivots = detect_stochastic_pivots(stoch, candles, strength=1)

        assert [(p.index, p.value) for p in pivots] == [(6, 60.0)]


class TestSplitPivots:
    def test_split_keeps_order(self):
        highs = [10, 11, 15, 11, 10, 11, 16, 11, 10]
        lows = [9, 8, 10, 8, 5, 8, 10, 8, 9]
        high_pivots, low_pivots = split_pivots(detect_pivots(_candles(highs, lows), strength=1))

        assert [p.index for p in high_pivots] == [2, 6]
        assert [p.index for p in low_pivots] == [1, 4, 7]
