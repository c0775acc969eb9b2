"""Tests for divergence detection."""

import pytest

from ta_engine.divergence import detect_divergence, detect_stochastic_divergence
from ta_engine.errors import SeriesAlignmentError
from ta_engine.models import (
    Candle,
    DivergenceConfig,
    DivergenceKind,
    Pivot,
    PivotType,
)

BASE_TIME = 1_700_000_000_000


def _pivot(index: int, value: float, type_: PivotType) -> Pivot:
    return Pivot(index=index, value=value, type=type_, time=BASE_TIME + index * 60_000)


def _low(index: int, value: float) -> Pivot:
    return _pivot(index, value, PivotType.LOW)


def _high(index: int, value: float) -> Pivot:
    return _pivot(index, value, PivotType.HIGH)


class TestDetectDivergence:
    """Tests for divergence classification."""

    def test_regular_bullish(self):
        """Price lower low + oscillator higher low."""
        result = detect_divergence(
            [_low(10, 100.0), _low(20, 95.0)],
            [_low(10, 20.0), _low(20, 25.0)],
        )

        assert len(result) == 1
        div = result[0]
        assert div.kind is DivergenceKind.BULLISH
        assert (div.start_index, div.end_index) == (10, 20)
        assert (div.start_price_value, div.end_price_value) == (100.0, 95.0)
        assert (div.start_osc_value, div.end_osc_value) == (20.0, 25.0)
        assert div.start_time == BASE_TIME + 10 * 60_000

    def test_regular_bearish(self):
        """Price higher high + oscillator lower high."""
        result = detect_divergence(
            [_high(10, 100.0), _high(20, 105.0)],
            [_high(11, 80.0), _high(19, 70.0)],
        )
        assert [d.kind for d in result] == [DivergenceKind.BEARISH]

    def test_hidden_bullish(self):
        """Price higher low + oscillator lower low."""
        result = detect_divergence(
            [_low(10, 95.0), _low(20, 100.0)],
            [_low(10, 25.0), _low(20, 20.0)],
        )
        assert [d.kind for d in result] == [DivergenceKind.HIDDEN_BULLISH]

    def test_hidden_bearish(self):
        """Price lower high + oscillator higher high."""
        result = detect_divergence(
            [_high(10, 105.0), _high(20, 100.0)],
            [_high(10, 70.0), _high(20, 80.0)],
        )
        assert [d.kind for d in result] == [DivergenceKind.HIDDEN_BEARISH]

    def test_no_divergence_when_confirmed(self):
        """Price and oscillator moving together is not a divergence."""
        result = detect_divergence(
            [_low(10, 100.0), _low(20, 95.0)],
            [_low(10, 25.0), _low(20, 20.0)],
        )
        assert result == []

    def test_equal_oscillator_values_are_not_divergence(self):
        """A flat oscillator confirms nothing either way."""
        assert detect_divergence(
            [_low(10, 100.0), _low(20, 95.0)],
            [_low(10, 20.0), _low(20, 20.0)],
        ) == []
        assert detect_divergence(
            [_high(10, 100.0), _high(20, 105.0)],
            [_high(10, 80.0), _high(20, 80.0)],
        ) == []

    def test_equal_price_values_are_not_divergence(self):
        """A double bottom or double top is neither higher nor lower."""
        assert detect_divergence(
            [_low(10, 100.0), _low(20, 100.0)],
            [_low(10, 20.0), _low(20, 25.0)],
        ) == []
        assert detect_divergence(
            [_high(10, 100.0), _high(20, 100.0)],
            [_high(10, 80.0), _high(20, 70.0)],
        ) == []

    def test_unmatched_pivot_skips_pair(self):
        """An oscillator pivot farther than the tolerance is not used."""
        result = detect_divergence(
            [_low(10, 100.0), _low(20, 95.0)],
            [_low(10, 20.0), _low(24, 25.0)],
            max_index_distance=2,
        )
        assert result == []

    def test_shared_oscillator_pivot_skips_pair(self):
        """Both price pivots matching one oscillator pivot is not a divergence."""
        result = detect_divergence(
            [_low(10, 100.0), _low(12, 95.0)],
            [_low(11, 20.0)],
        )
        assert result == []

    def test_only_same_type_pivots_pair(self):
        """Price highs are never matched to oscillator lows."""
        result = detect_divergence(
            [_high(10, 100.0), _high(20, 105.0)],
            [_low(10, 80.0), _low(20, 70.0)],
        )
        assert result == []

    def test_highs_reported_before_lows(self):
        result = detect_divergence(
            [_low(5, 100.0), _high(10, 110.0), _low(15, 95.0), _high(20, 115.0)],
            [_low(5, 20.0), _high(10, 80.0), _low(15, 25.0), _high(20, 70.0)],
        )
        assert [d.kind for d in result] == [DivergenceKind.BEARISH, DivergenceKind.BULLISH]

    def test_pivot_outside_candles_raises(self):
        candles = [
            Candle(time=BASE_TIME + i * 60_000, open=1, high=1, low=1, close=1)
            for i in range(15)
        ]
        with pytest.raises(SeriesAlignmentError):
            detect_divergence(
                [_low(10, 100.0), _low(20, 95.0)],
                [_low(10, 20.0), _low(20, 25.0)],
                candles=candles,
            )

    def test_negative_distance_rejected(self):
        with pytest.raises(ValueError):
            detect_divergence([], [], max_index_distance=-1)


class TestStochasticDivergence:
    """Tests for the full price vs Stochastic pipeline."""

    def test_too_few_candles(self):
        candles = [
            Candle(time=BASE_TIME + i * 60_000, open=1, high=1.1, low=0.9, close=1)
            for i in range(10)
        ]
        assert detect_stochastic_divergence(candles, DivergenceConfig()) == []

    def test_results_reference_price_pivots(self):
        """Every reported divergence spans two candle indices in range."""
        closes = []
        price = 100.0
        # Two swings down with a weaker second leg
        for step in [-1.0] * 15 + [1.0] * 10 + [-0.4] * 15 + [1.0] * 20:
            price += step
            closes.append(price)
        candles = [
            Candle(
                time=BASE_TIME + i * 60_000,
                open=c,
                high=c + 0.3,
                low=c - 0.3,
                close=c,
            )
            for i, c in enumerate(closes)
        ]
        result = detect_stochastic_divergence(candles, DivergenceConfig())

        for div in result:
            assert 0 <= div.start_index < div.end_index < len(candles)
            assert div.start_time == candles[div.start_index].time
