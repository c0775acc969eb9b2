"""Technical indicators (pure math, no I/O)."""

from ta_engine.indicators.oscillators import (
    ema,
    sma,
    macd,
    rsi,
    stochastic,
    stochastic_offset,
)
from ta_engine.indicators.signals import (
    MacdTurnPoint,
    StochasticZone,
    TrendDirection,
    detect_crossovers,
    detect_ema_alignment,
    detect_macd_turn_point,
    macd_trend,
    stochastic_trend,
    stochastic_zone,
    volume_flow,
)

__all__ = [
    "ema",
    "sma",
    "macd",
    "rsi",
    "stochastic",
    "stochastic_offset",
    "MacdTurnPoint",
    "StochasticZone",
    "TrendDirection",
    "detect_crossovers",
    "detect_ema_alignment",
    "detect_macd_turn_point",
    "macd_trend",
    "stochastic_trend",
    "stochastic_zone",
    "volume_flow",
]
