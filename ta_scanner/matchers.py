"""Per-timeframe signal matchers.

Each matcher takes the candles of one symbol/timeframe plus its scan
preset and returns a Match, or None when the scan does not fire (or the
data is too thin to tell). Matchers are pure; pass an IndicatorCaches
instance to reuse indicator results across repeated scans.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ta_engine.channels import detect_channels
from ta_engine.divergence import detect_stochastic_divergence
from ta_engine.indicators import detect_ema_alignment, macd, rsi, stochastic
from ta_engine.memoization import IndicatorCaches
from ta_engine.models import Candle, ChannelKind
from ta_engine.trendlines import fit_trendlines
from ta_scanner.models import (
    ChannelValue,
    DivergenceValue,
    EmaAlignmentValue,
    MacdReversalValue,
    RsiReversalValue,
    ScanValue,
    SignalType,
    StochasticValue,
    SupportResistanceValue,
    VolumeValue,
)
from ta_scanner.scan_config import (
    ChannelScannerConfig,
    DivergenceScannerConfig,
    EmaAlignmentScannerConfig,
    MacdReversalScannerConfig,
    RsiReversalScannerConfig,
    StochasticScannerConfig,
    SupportResistanceScannerConfig,
    VolumeSpikeConfig,
)


@dataclass(slots=True)
class Match:
    """A fired scan on one timeframe."""

    signal_type: SignalType
    description: str
    values: list[ScanValue]


def match_stochastic(
    candles: Sequence[Candle],
    timeframe: str,
    config: StochasticScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """All enabled variants oversold (bullish) or all overbought (bearish)."""
    variants = config.enabled_variants()
    if not variants:
        return None

    stochastic_fn = caches.stochastic if caches else stochastic
    values: list[StochasticValue] = []
    signal_types: set[str] = set()

    for name, variant in variants.items():
        stoch = stochastic_fn(candles, variant.period, variant.smooth_k, variant.smooth_d)
        if len(stoch) == 0:
            return None

        latest = stoch[-1]
        if latest.k < config.oversold_threshold:
            signal_types.add("bullish")
        elif latest.k > config.overbought_threshold:
            signal_types.add("bearish")
        else:
            return None
        values.append(StochasticValue(variant=name, k=latest.k, d=latest.d, timeframe=timeframe))

    if len(signal_types) != 1:
        return None

    signal_type = signal_types.pop()
    if signal_type == "bullish":
        description = (
            f"All stochastic variants oversold on {timeframe} "
            f"(K < {config.oversold_threshold:g})"
        )
    else:
        description = (
            f"All stochastic variants overbought on {timeframe} "
            f"(K > {config.overbought_threshold:g})"
        )
    return Match(signal_type, description, values)


def match_volume_spike(
    candles: Sequence[Candle],
    timeframe: str,
    config: VolumeSpikeConfig,
) -> Match | None:
    """Last candle's volume spikes above average with a large body."""
    if len(candles) < config.lookback_period + 1:
        return None

    current = candles[-1]
    previous = candles[-(config.lookback_period + 1):-1]
    avg_volume = float(np.mean([c.volume for c in previous]))
    if avg_volume <= 0 or current.open == 0:
        return None

    volume_ratio = current.volume / avg_volume
    price_change = (current.close - current.open) / current.open * 100
    if volume_ratio < config.volume_threshold or abs(price_change) < config.price_change_threshold:
        return None

    signal_type: SignalType = "bullish" if price_change > 0 else "bearish"
    direction = "increase" if price_change > 0 else "decrease"
    value = VolumeValue(
        timeframe=timeframe,
        volume_ratio=volume_ratio,
        price_change_percent=price_change,
        avg_volume=avg_volume,
        current_volume=current.volume,
    )
    description = (
        f"Volume spike ({volume_ratio:.1f}x) with {abs(price_change):.2f}% "
        f"price {direction} on {timeframe}"
    )
    return Match(signal_type, description, [value])


def match_ema_alignment(
    candles: Sequence[Candle],
    timeframe: str,
    config: EmaAlignmentScannerConfig,
) -> Match | None:
    """Three EMAs freshly stacked in one direction."""
    if len(candles) < config.lookback_bars:
        return None

    alignment = detect_ema_alignment(
        candles,
        config.ema1_period,
        config.ema2_period,
        config.ema3_period,
        config.lookback_bars,
    )
    if alignment is None:
        return None

    value = EmaAlignmentValue(
        timeframe=timeframe,
        alignment_type=alignment.type,
        bars_ago=alignment.bars_ago,
        ema1=alignment.ema1,
        ema2=alignment.ema2,
        ema3=alignment.ema3,
    )
    if alignment.bars_ago == 0:
        description = f"EMA alignment just formed on {timeframe} ({alignment.type})"
    else:
        description = (
            f"EMA {alignment.type} alignment {alignment.bars_ago} bars ago on {timeframe}"
        )
    return Match(alignment.type, description, [value])


def match_macd_reversal(
    candles: Sequence[Candle],
    timeframe: str,
    config: MacdReversalScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """MACD line crossed its signal line within the recent lookback."""
    if len(candles) < config.min_candles:
        return None

    macd_fn = caches.macd if caches else macd
    closes = [c.close for c in candles]
    result = macd_fn(closes, config.fast_period, config.slow_period, config.signal_period)

    lookback = config.recent_reversal_lookback
    if len(result) < lookback + 1:
        return None

    base = len(result) - lookback
    signal_type: SignalType | None = None
    for i in range(base + 1, len(result)):
        prev_macd, curr_macd = result.macd[i - 1], result.macd[i]
        prev_signal, curr_signal = result.signal[i - 1], result.signal[i]
        if prev_macd <= prev_signal and curr_macd > curr_signal:
            signal_type = "bullish"
            break
        if prev_macd >= prev_signal and curr_macd < curr_signal:
            signal_type = "bearish"
            break

    if signal_type is None:
        return None

    last = candles[-1]
    value = MacdReversalValue(
        timeframe=timeframe,
        direction=signal_type,
        time=last.time,
        price=last.close,
        macd_value=result.macd[-1],
        signal_value=result.signal[-1],
    )
    return Match(signal_type, f"MACD {signal_type} crossover on {timeframe}", [value])


def match_rsi_reversal(
    candles: Sequence[Candle],
    timeframe: str,
    config: RsiReversalScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """RSI crossed back out of oversold/overbought within the recent lookback."""
    if len(candles) < config.min_candles:
        return None

    rsi_fn = caches.rsi if caches else rsi
    series = rsi_fn([c.close for c in candles], config.period)

    lookback = config.recent_reversal_lookback
    if len(series) < lookback + 1:
        return None

    recent = series[-lookback:]
    signal_type: SignalType | None = None
    for prev, curr in zip(recent, recent[1:]):
        if prev <= config.oversold_level < curr:
            signal_type = "bullish"
            break
        if prev >= config.overbought_level > curr:
            signal_type = "bearish"
            break

    if signal_type is None:
        return None

    last = candles[-1]
    zone = "oversold" if signal_type == "bullish" else "overbought"
    value = RsiReversalValue(
        timeframe=timeframe,
        direction=signal_type,
        time=last.time,
        price=last.close,
        rsi_value=series[-1],
        zone=zone,
    )
    description = f"RSI {zone} reversal on {timeframe} ({series[-1]:.1f})"
    return Match(signal_type, description, [value])


def match_channel(
    candles: Sequence[Candle],
    timeframe: str,
    config: ChannelScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """Strongest channel; bullish when price sits nearer the lower line."""
    if len(candles) < config.lookback_bars:
        return None

    channels_fn = caches.channels if caches else detect_channels
    channels = channels_fn(candles, config.to_channel_config())
    if not channels:
        return None

    best = channels[0]
    current_price = candles[-1].close
    last_index = len(candles) - 1
    upper_price = best.upper_at(last_index)
    lower_price = best.lower_at(last_index)
    distance_to_upper = (upper_price - current_price) / current_price * 100
    distance_to_lower = (current_price - lower_price) / current_price * 100

    signal_type: SignalType = (
        "bullish" if abs(distance_to_lower) < abs(distance_to_upper) else "bearish"
    )
    value = ChannelValue(
        timeframe=timeframe,
        type=best.kind.value,
        touches=best.touches,
        strength=best.strength,
        angle=best.angle_degrees,
        upper_price=upper_price,
        lower_price=lower_price,
        current_price=current_price,
        distance_to_upper=distance_to_upper,
        distance_to_lower=distance_to_lower,
    )
    kind_label = {
        ChannelKind.HORIZONTAL: "Horizontal",
        ChannelKind.ASCENDING: "Ascending",
        ChannelKind.DESCENDING: "Descending",
    }[best.kind]
    description = f"{kind_label} channel detected on {timeframe} ({best.touches} touches)"
    return Match(signal_type, description, [value])


def match_divergence(
    candles: Sequence[Candle],
    timeframe: str,
    config: DivergenceScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """Most recent price/Stochastic divergence, if its kind is enabled."""
    if len(candles) < config.min_candles:
        return None

    divergence_fn = caches.divergences if caches else detect_stochastic_divergence
    divergences = divergence_fn(candles, config.to_divergence_config())
    if not divergences:
        return None

    recent = max(divergences, key=lambda d: d.end_index)
    if recent.kind.is_hidden:
        report = config.scan_hidden
    elif recent.kind.is_bullish:
        report = config.scan_bullish
    else:
        report = config.scan_bearish
    if not report:
        return None

    signal_type: SignalType = "bullish" if recent.kind.is_bullish else "bearish"
    value = DivergenceValue(
        timeframe=timeframe,
        type=recent.kind.value,
        start_time=recent.start_time,
        end_time=recent.end_time,
        start_price_value=recent.start_price_value,
        end_price_value=recent.end_price_value,
        start_osc_value=recent.start_osc_value,
        end_osc_value=recent.end_osc_value,
    )
    description = f"{recent.kind.value.replace('-', ' ')} divergence detected on {timeframe}"
    return Match(signal_type, description, [value])


def match_support_resistance(
    candles: Sequence[Candle],
    timeframe: str,
    config: SupportResistanceScannerConfig,
    caches: IndicatorCaches | None = None,
) -> Match | None:
    """Price within ``proximity_pct`` of the best support or resistance trendline."""
    if len(candles) < config.min_candles:
        return None

    trendlines_fn = caches.trendlines if caches else fit_trendlines
    result = trendlines_fn(candles, config.trendline)
    if result.support is None and result.resistance is None:
        return None

    current_price = candles[-1].close
    last_time = candles[-1].time

    support_level = distance_to_support = None
    if result.support is not None:
        support_level = result.support.value_at(last_time)
        distance_to_support = (current_price - support_level) / current_price * 100

    resistance_level = distance_to_resistance = None
    if result.resistance is not None:
        resistance_level = result.resistance.value_at(last_time)
        distance_to_resistance = (resistance_level - current_price) / current_price * 100

    near_support = (
        distance_to_support is not None and abs(distance_to_support) <= config.proximity_pct
    )
    near_resistance = (
        distance_to_resistance is not None
        and abs(distance_to_resistance) <= config.proximity_pct
    )
    if near_support and near_resistance:
        near_support = abs(distance_to_support) <= abs(distance_to_resistance)
        near_resistance = not near_support
    if not (near_support or near_resistance):
        return None

    near_level = "support" if near_support else "resistance"
    value = SupportResistanceValue(
        timeframe=timeframe,
        support_level=support_level,
        resistance_level=resistance_level,
        current_price=current_price,
        distance_to_support=distance_to_support,
        distance_to_resistance=distance_to_resistance,
        support_touches=result.support.touches if result.support else 0,
        resistance_touches=result.resistance.touches if result.resistance else 0,
        near_level=near_level,
    )
    signal_type: SignalType = "bullish" if near_support else "bearish"
    return Match(signal_type, f"Price near {near_level} trendline on {timeframe}", [value])
