"""Structural pattern models: pivots, divergences, channels, trendlines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

AlignmentType = Literal["bullish", "bearish"]


class PivotType(str, Enum):
    """Local extremum type."""

    HIGH = "high"
    LOW = "low"


class DivergenceKind(str, Enum):
    """Price/oscillator divergence classification."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    HIDDEN_BULLISH = "hidden-bullish"
    HIDDEN_BEARISH = "hidden-bearish"

    @property
    def is_bullish(self) -> bool:
        return self in (DivergenceKind.BULLISH, DivergenceKind.HIDDEN_BULLISH)

    @property
    def is_hidden(self) -> bool:
        return self in (DivergenceKind.HIDDEN_BULLISH, DivergenceKind.HIDDEN_BEARISH)


class ChannelKind(str, Enum):
    """Channel orientation."""

    HORIZONTAL = "horizontal"
    ASCENDING = "ascending"
    DESCENDING = "descending"


class TrendlineKind(str, Enum):
    """Which side of price a trendline bounds."""

    SUPPORT = "support"
    RESISTANCE = "resistance"


@dataclass(slots=True, frozen=True)
class Pivot:
    """Strict local extremum of a price or oscillator series.

    ``index`` is always a candle index, also for oscillator pivots.
    """

    index: int
    value: float
    type: PivotType
    time: int

    @property
    def price(self) -> float:
        return self.value

    @property
    def is_high(self) -> bool:
        return self.type is PivotType.HIGH


@dataclass(slots=True, frozen=True)
class DivergencePoint:
    """A classified divergence between two price pivots and their oscillator pivots."""

    kind: DivergenceKind
    start_index: int
    end_index: int
    start_time: int
    end_time: int
    start_price_value: float
    end_price_value: float
    start_osc_value: float
    end_osc_value: float


@dataclass(slots=True, frozen=True)
class LineEquation:
    """Straight line ``value = slope * x + intercept``."""

    slope: float
    intercept: float

    @classmethod
    def through(cls, x1: float, y1: float, x2: float, y2: float) -> LineEquation:
        """Line through two points with distinct x."""
        slope = (y2 - y1) / (x2 - x1)
        return cls(slope, y1 - slope * x1)

    def value_at(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(slots=True, frozen=True)
class Channel:
    """A pair of roughly parallel lines bounding recent price action.

    Lines are expressed over candle indices of the array passed to
    ``detect_channels``.
    """

    kind: ChannelKind
    upper_line: LineEquation
    lower_line: LineEquation
    touches: int
    strength: float  # touches / total pivots
    angle_degrees: float
    pivots: tuple[Pivot, ...] = field(default_factory=tuple)

    def upper_at(self, index: int) -> float:
        return self.upper_line.value_at(index)

    def lower_at(self, index: int) -> float:
        return self.lower_line.value_at(index)


@dataclass(slots=True, frozen=True)
class TrendlinePoint:
    """A trendline endpoint in (time, price) space."""

    time: int
    value: float


@dataclass(slots=True, frozen=True)
class ScoredTrendline:
    """Winning support or resistance line of the combinatorial search."""

    kind: TrendlineKind
    line: tuple[TrendlinePoint, TrendlinePoint]
    touches: int
    violations: int
    deviation_from_last_price: float  # percent of the boundary close
    slope: float  # price per millisecond
    intercept: float
    period: int
    score: float

    def value_at(self, time: int) -> float:
        return self.slope * time + self.intercept


@dataclass(slots=True, frozen=True)
class TrendlineResult:
    """Best support and resistance lines, either of which may be missing."""

    support: ScoredTrendline | None = None
    resistance: ScoredTrendline | None = None


@dataclass(slots=True, frozen=True)
class CrossoverMarker:
    """Chart marker for an EMA cross or a fresh three-EMA stacking."""

    index: int
    time: int
    type: AlignmentType


@dataclass(slots=True, frozen=True)
class EmaAlignment:
    """Three stacked EMAs and how many bars ago the stacking formed."""

    type: AlignmentType
    bars_ago: int
    ema1: float
    ema2: float
    ema3: float


@dataclass(slots=True, frozen=True)
class VolumeFlow:
    """Aggressor buy/sell volume over a trailing time window."""

    buy_volume: float
    sell_volume: float
    trade_count: int

    @property
    def net_volume(self) -> float:
        return self.buy_volume - self.sell_volume

    @property
    def buy_ratio(self) -> float:
        total = self.buy_volume + self.sell_volume
        if total == 0:
            return 0.5
        return self.buy_volume / total
