"""Tests for candle aggregation, inversion and downsampling."""

import pytest

from ta_engine.candles import (
    aggregate_15m_to_1h,
    aggregate_1m_to_5m,
    aggregate_candles,
    downsample_closes,
    invert_candles,
    invert_price,
)
from ta_engine.models import Candle

BASE_TIME = 1_700_000_000_000
MINUTE = 60_000


def _make_candles(n: int, minutes: int = 1) -> list[Candle]:
    """Create n candles with distinct, easily predictable fields."""
    return [
        Candle(
            time=BASE_TIME + i * minutes * MINUTE,
            open=100.0 + i,
            high=105.0 + i,
            low=95.0 + i,
            close=101.0 + i,
            volume=10.0,
        )
        for i in range(n)
    ]


class TestAggregateCandles:
    """Tests for timeframe aggregation."""

    def test_1m_to_5m(self):
        candles = aggregate_1m_to_5m(_make_candles(10))

        assert len(candles) == 2
        first = candles[0]
        assert first.time == BASE_TIME
        assert first.open == 100.0
        assert first.high == 109.0
        assert first.low == 95.0
        assert first.close == 105.0
        assert first.volume == 50.0
        assert candles[1].time == BASE_TIME + 5 * MINUTE

    def test_partial_trailing_chunk(self):
        """A forming higher-timeframe candle is still emitted."""
        candles = aggregate_1m_to_5m(_make_candles(12))

        assert len(candles) == 3
        assert candles[-1].volume == 20.0
        assert candles[-1].close == 112.0

    def test_15m_to_1h(self):
        candles = aggregate_15m_to_1h(_make_candles(8, minutes=15))

        assert len(candles) == 2
        assert candles[1].time == BASE_TIME + 60 * MINUTE
        assert candles[1].volume == 40.0

    def test_empty(self):
        assert aggregate_candles([], 5) == []

    def test_invalid_factor(self):
        with pytest.raises(ValueError):
            aggregate_candles(_make_candles(3), 0)


class TestInvertCandles:
    """Tests for the flipped chart mode."""

    def test_invert_price(self):
        assert invert_price(110.0, 100.0) == 90.0

    def test_high_and_low_swap(self):
        candle = _make_candles(1)[0]
        inverted = invert_candles([candle], reference=100.0)[0]

        assert inverted.high == 105.0  # mirrored low
        assert inverted.low == 95.0  # mirrored high
        assert inverted.open == 100.0
        assert inverted.close == 99.0
        assert inverted.high >= inverted.low
        assert inverted.time == candle.time

    def test_double_inversion_is_identity(self):
        candles = _make_candles(5)
        assert invert_candles(invert_candles(candles, 100.0), 100.0) == candles


class TestDownsampleCloses:
    def test_fewer_than_target(self):
        candles = _make_candles(5)
        assert downsample_closes(candles, 10) == [c.close for c in candles]

    def test_even_spacing(self):
        candles = _make_candles(100)
        closes = downsample_closes(candles, 10)

        assert len(closes) == 10
        assert closes[0] == 101.0
        assert closes[1] == 111.0

    def test_empty(self):
        assert downsample_closes([], 10) == []
