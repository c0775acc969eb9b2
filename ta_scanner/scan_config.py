"""Scan presets loaded from scanner.yaml.

Every scan type has its own section; missing sections fall back to the
defaults below. No YAML file means all defaults.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ta_engine.models import (
    ChannelConfig,
    DivergenceConfig,
    StochasticConfig,
    TrendlineConfig,
)
from ta_scanner.config import get_settings

logger = logging.getLogger(__name__)


class StochasticVariantConfig(BaseModel):
    """One Stochastic variant checked by the stochastic scan."""

    enabled: bool = True
    period: int = Field(14, gt=0)
    smooth_k: int = Field(3, gt=0)
    smooth_d: int = Field(3, gt=0)


def _default_variants() -> dict[str, StochasticVariantConfig]:
    return {
        "ultra_fast": StochasticVariantConfig(period=9, smooth_k=3, smooth_d=3),
        "fast": StochasticVariantConfig(period=14, smooth_k=3, smooth_d=3),
        "medium": StochasticVariantConfig(period=40, smooth_k=4, smooth_d=4),
        "slow": StochasticVariantConfig(period=60, smooth_k=10, smooth_d=10),
    }


class StochasticScannerConfig(BaseModel):
    """All enabled variants must agree on oversold or overbought."""

    enabled: bool = True
    oversold_threshold: float = 20.0
    overbought_threshold: float = 80.0
    variants: dict[str, StochasticVariantConfig] = Field(default_factory=_default_variants)

    @model_validator(mode="after")
    def _validate(self):
        if self.oversold_threshold >= self.overbought_threshold:
            raise ValueError(
                "oversold_threshold must be below overbought_threshold, got "
                f"{self.oversold_threshold} >= {self.overbought_threshold}"
            )
        return self

    def enabled_variants(self) -> dict[str, StochasticVariantConfig]:
        return {name: v for name, v in self.variants.items() if v.enabled}


class VolumeSpikeConfig(BaseModel):
    """Last candle's volume versus the average of the preceding candles."""

    enabled: bool = True
    lookback_period: int = Field(20, gt=0)
    volume_threshold: float = 2.0  # multiple of average volume
    price_change_threshold: float = 0.5  # percent, open to close


class EmaAlignmentScannerConfig(BaseModel):
    enabled: bool = True
    ema1_period: int = Field(5, gt=0)
    ema2_period: int = Field(13, gt=0)
    ema3_period: int = Field(21, gt=0)
    lookback_bars: int = Field(5, gt=0)


class MacdReversalScannerConfig(BaseModel):
    """MACD/signal crossover within the last few bars."""

    enabled: bool = True
    fast_period: int = Field(5, gt=0)
    slow_period: int = Field(13, gt=0)
    signal_period: int = Field(5, gt=0)
    recent_reversal_lookback: int = Field(3, gt=1)
    min_candles: int = Field(50, gt=0)


class RsiReversalScannerConfig(BaseModel):
    """RSI leaving the oversold/overbought zone within the last few bars."""

    enabled: bool = True
    period: int = Field(14, gt=0)
    oversold_level: float = 30.0
    overbought_level: float = 70.0
    recent_reversal_lookback: int = Field(3, gt=1)
    min_candles: int = Field(50, gt=0)

    @model_validator(mode="after")
    def _validate(self):
        if self.oversold_level >= self.overbought_level:
            raise ValueError(
                "oversold_level must be below overbought_level, got "
                f"{self.oversold_level} >= {self.overbought_level}"
            )
        return self


class ChannelScannerConfig(BaseModel):
    enabled: bool = True
    pivot_strength: int = Field(3, gt=0)
    lookback_bars: int = Field(100, gt=0)
    min_touches: int = Field(4, gt=0)
    max_combinations: int = Field(50_000, gt=0)

    def to_channel_config(self) -> ChannelConfig:
        return ChannelConfig(
            pivot_strength=self.pivot_strength,
            lookback_bars=self.lookback_bars,
            min_touches=self.min_touches,
            max_combinations=self.max_combinations,
        )


class DivergenceScannerConfig(BaseModel):
    """Price vs Stochastic %D divergence on the most recent pivot pair."""

    enabled: bool = True
    pivot_strength: int = Field(3, gt=0)
    max_index_distance: int = Field(2, ge=0)
    min_candles: int = Field(50, gt=0)
    scan_bullish: bool = True
    scan_bearish: bool = True
    scan_hidden: bool = False
    stochastic: StochasticConfig = StochasticConfig()

    def to_divergence_config(self) -> DivergenceConfig:
        return DivergenceConfig(
            pivot_strength=self.pivot_strength,
            max_index_distance=self.max_index_distance,
            stochastic=self.stochastic,
        )


class SupportResistanceScannerConfig(BaseModel):
    """Price within ``proximity_pct`` of the best support/resistance trendline."""

    enabled: bool = True
    proximity_pct: float = Field(0.5, ge=0)
    min_candles: int = Field(60, gt=0)
    trendline: TrendlineConfig = TrendlineConfig()


class ScanConfig(BaseModel):
    """Top-level scanner.yaml configuration."""

    symbols: list[str] = []
    stochastic: StochasticScannerConfig = StochasticScannerConfig()
    volume_spike: VolumeSpikeConfig = VolumeSpikeConfig()
    ema_alignment: EmaAlignmentScannerConfig = EmaAlignmentScannerConfig()
    macd_reversal: MacdReversalScannerConfig = MacdReversalScannerConfig()
    rsi_reversal: RsiReversalScannerConfig = RsiReversalScannerConfig()
    channel: ChannelScannerConfig = ChannelScannerConfig()
    divergence: DivergenceScannerConfig = DivergenceScannerConfig()
    support_resistance: SupportResistanceScannerConfig = SupportResistanceScannerConfig()


def load_scan_config(path: Path | str | None = None) -> ScanConfig:
    """Load scan presets from YAML.

    Falls back to defaults if the file doesn't exist.

    Raises:
        ValueError: If the file contents fail validation
    """
    if path is None:
        path = get_settings().config_path
    config_path = Path(path)

    if not config_path.exists():
        logger.info("No scanner config found at %s, using defaults", config_path)
        return ScanConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    try:
        config = ScanConfig(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid scanner config {config_path}: {e}") from e

    logger.info(
        "Loaded scanner config from %s: %d symbols, %d stochastic variants",
        config_path,
        len(config.symbols),
        len(config.stochastic.enabled_variants()),
    )
    return config
