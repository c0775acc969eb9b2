"""Data models."""

from ta_engine.models.candle import (
    AlignedSeries,
    Candle,
    MacdResult,
    StochasticPoint,
    Trade,
)
from ta_engine.models.patterns import (
    Channel,
    ChannelKind,
    CrossoverMarker,
    DivergenceKind,
    DivergencePoint,
    EmaAlignment,
    LineEquation,
    Pivot,
    PivotType,
    ScoredTrendline,
    TrendlineKind,
    TrendlinePoint,
    TrendlineResult,
    VolumeFlow,
)
from ta_engine.models.config import (
    ChannelConfig,
    DivergenceConfig,
    StochasticConfig,
    TrendlineConfig,
)

__all__ = [
    # Series
    "AlignedSeries",
    "Candle",
    "MacdResult",
    "StochasticPoint",
    "Trade",
    # Patterns
    "Channel",
    "ChannelKind",
    "CrossoverMarker",
    "DivergenceKind",
    "DivergencePoint",
    "EmaAlignment",
    "LineEquation",
    "Pivot",
    "PivotType",
    "ScoredTrendline",
    "TrendlineKind",
    "TrendlinePoint",
    "TrendlineResult",
    "VolumeFlow",
    # Config
    "ChannelConfig",
    "DivergenceConfig",
    "StochasticConfig",
    "TrendlineConfig",
]
