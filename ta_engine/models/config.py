"""Pattern-detection configuration models.

Thresholds default to the values the charting and scanning layers have
always used. They are tunable per deployment; nothing in the detectors
re-derives them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StochasticConfig(BaseModel):
    """Stochastic oscillator parameters."""

    model_config = ConfigDict(frozen=True)

    period: int = Field(14, gt=0)
    smooth_k: int = Field(3, gt=0)
    smooth_d: int = Field(3, gt=0)


class DivergenceConfig(BaseModel):
    """Divergence detection parameters."""

    model_config = ConfigDict(frozen=True)

    pivot_strength: int = Field(3, gt=0)
    # Max bar distance between a price pivot and its oscillator pivot
    max_index_distance: int = Field(2, ge=0)
    stochastic: StochasticConfig = StochasticConfig()


class ChannelConfig(BaseModel):
    """Channel/envelope fitting parameters."""

    model_config = ConfigDict(frozen=True)

    pivot_strength: int = Field(3, gt=0)
    lookback_bars: int = Field(100, gt=0)
    min_touches: int = Field(2, gt=0)

    # A pivot touches a line when within this relative distance (0.5%)
    touch_tolerance: float = Field(0.005, ge=0)
    # Max slope difference as a fraction of the mean absolute slope
    slope_tolerance: float = Field(0.2, ge=0)
    # Both slopes below this count as flat and always compatible
    flat_slope_epsilon: float = Field(1e-4, ge=0)
    # |angle| below this is a horizontal channel
    horizontal_angle_degrees: float = Field(5.0, ge=0)
    # Upper/lower line pairs evaluated before the search stops
    max_combinations: int = Field(50_000, gt=0)


class TrendlineConfig(BaseModel):
    """Trendline search parameters."""

    model_config = ConfigDict(frozen=True)

    # Lookback periods scanned: min_period, min_period + step, ...
    min_period: int = Field(20, gt=1)
    period_step: int = Field(10, gt=0)
    # Most recent bars never used for fitting
    excluded_tail: int = Field(10, ge=0)
    pivot_strength: int = Field(3, gt=0)
    # Pivot pairs evaluated per period
    max_combinations: int = Field(100, gt=0)

    touch_tolerance: float = Field(0.003, ge=0)  # 0.3%
    violation_tolerance: float = Field(0.001, ge=0)  # 0.1%
    max_violation_rate: float = Field(0.02, ge=0)  # 2% of fitted bars

    # Line value at the exclusion boundary must stay near the boundary close
    max_deviation_pct: float = Field(0.05, ge=0)
    max_deviation_height_mult: float = Field(10.0, ge=0)
    avg_height_bars: int = Field(20, gt=0)
