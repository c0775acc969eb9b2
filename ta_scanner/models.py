"""Scan result models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel

SignalType = Literal["bullish", "bearish"]


class ScanType(str, Enum):
    """Available scans."""

    STOCHASTIC = "stochastic"
    VOLUME_SPIKE = "volume_spike"
    EMA_ALIGNMENT = "ema_alignment"
    MACD_REVERSAL = "macd_reversal"
    RSI_REVERSAL = "rsi_reversal"
    CHANNEL = "channel"
    DIVERGENCE = "divergence"
    SUPPORT_RESISTANCE = "support_resistance"


class StochasticValue(BaseModel):
    variant: str
    k: float
    d: float
    timeframe: str


class VolumeValue(BaseModel):
    timeframe: str
    volume_ratio: float
    price_change_percent: float
    avg_volume: float
    current_volume: float


class EmaAlignmentValue(BaseModel):
    timeframe: str
    alignment_type: SignalType
    bars_ago: int
    ema1: float
    ema2: float
    ema3: float


class MacdReversalValue(BaseModel):
    timeframe: str
    direction: SignalType
    time: int
    price: float
    macd_value: float
    signal_value: float


class RsiReversalValue(BaseModel):
    timeframe: str
    direction: SignalType
    time: int
    price: float
    rsi_value: float
    zone: Literal["oversold", "overbought"]


class ChannelValue(BaseModel):
    timeframe: str
    type: Literal["horizontal", "ascending", "descending"]
    touches: int
    strength: float
    angle: float
    upper_price: float
    lower_price: float
    current_price: float
    distance_to_upper: float  # percent of current price
    distance_to_lower: float


class DivergenceValue(BaseModel):
    timeframe: str
    type: Literal["bullish", "bearish", "hidden-bullish", "hidden-bearish"]
    start_time: int
    end_time: int
    start_price_value: float
    end_price_value: float
    start_osc_value: float
    end_osc_value: float


class SupportResistanceValue(BaseModel):
    timeframe: str
    support_level: float | None
    resistance_level: float | None
    current_price: float
    distance_to_support: float | None  # percent of current price
    distance_to_resistance: float | None
    support_touches: int
    resistance_touches: int
    near_level: Literal["support", "resistance"]


ScanValue = (
    StochasticValue
    | VolumeValue
    | EmaAlignmentValue
    | MacdReversalValue
    | RsiReversalValue
    | ChannelValue
    | DivergenceValue
    | SupportResistanceValue
)


class ScanResult(BaseModel):
    """A symbol that matched a scan on one timeframe."""

    symbol: str
    scan_type: ScanType
    timeframe: str
    signal_type: SignalType
    description: str
    matched_at: int  # Unix timestamp in milliseconds
    values: list[ScanValue]
    close_prices: list[float] = []
