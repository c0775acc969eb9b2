"""Scanner service.

Runs one scan type across symbols and timeframes. Engine calls are CPU
bound, so each symbol is dispatched to a thread pool; results for a batch
are gathered with exceptions captured so a single bad symbol never
aborts the batch.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from ta_engine.candles import aggregate_1m_to_5m, downsample_closes
from ta_engine.memoization import IndicatorCaches
from ta_engine.models import Candle
from ta_scanner import matchers
from ta_scanner.config import ScannerSettings, get_settings
from ta_scanner.models import ScanResult, ScanType
from ta_scanner.scan_config import ScanConfig

logger = logging.getLogger(__name__)

# (symbol, timeframe, lookback) -> candles, or None when unavailable
CandleSource = Callable[[str, str, int], Optional[Sequence[Candle]]]

# Closes attached to each result for sparkline rendering
CLOSE_PRICE_POINTS = 100


class ScannerService:
    """Evaluate scans for symbols over the configured timeframes."""

    def __init__(
        self,
        candle_source: CandleSource,
        settings: Optional[ScannerSettings] = None,
        caches: Optional[IndicatorCaches] = None,
    ):
        self.candle_source = candle_source
        self.settings = settings or get_settings()
        self.caches = caches or IndicatorCaches(
            max_size=self.settings.cache_size,
            ttl_ms=self.settings.cache_ttl_ms,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="scanner",
        )

    def get_candles(self, symbol: str, timeframe: str) -> Optional[Sequence[Candle]]:
        """Fetch candles, deriving 5m from 1m when the source has none."""
        lookback = self.settings.lookback_candles
        candles = self.candle_source(symbol, timeframe, lookback)
        if candles:
            return candles

        if timeframe == "5m":
            candles_1m = self.candle_source(symbol, "1m", lookback * 5)
            if candles_1m:
                return aggregate_1m_to_5m(candles_1m)[-lookback:]

        return None

    def recent_closes(self, symbol: str, fallback: Sequence[Candle]) -> list[float]:
        """Last 1m closes for the result sparkline.

        Falls back to downsampled closes of ``fallback`` (the matched
        timeframe's candles) when 1m data is unavailable.
        """
        try:
            candles_1m = self.candle_source(symbol, "1m", CLOSE_PRICE_POINTS)
        except Exception as e:
            logger.warning("1m closes unavailable for %s: %s", symbol, e)
            candles_1m = None

        if candles_1m:
            return [c.close for c in candles_1m[-CLOSE_PRICE_POINTS:]]
        return downsample_closes(fallback, CLOSE_PRICE_POINTS)

    def _match(
        self,
        scan_type: ScanType,
        candles: Sequence[Candle],
        timeframe: str,
        config: ScanConfig,
    ) -> Optional[matchers.Match]:
        caches = self.caches
        if scan_type == ScanType.STOCHASTIC:
            return matchers.match_stochastic(candles, timeframe, config.stochastic, caches)
        if scan_type == ScanType.VOLUME_SPIKE:
            return matchers.match_volume_spike(candles, timeframe, config.volume_spike)
        if scan_type == ScanType.EMA_ALIGNMENT:
            return matchers.match_ema_alignment(candles, timeframe, config.ema_alignment)
        if scan_type == ScanType.MACD_REVERSAL:
            return matchers.match_macd_reversal(candles, timeframe, config.macd_reversal, caches)
        if scan_type == ScanType.RSI_REVERSAL:
            return matchers.match_rsi_reversal(candles, timeframe, config.rsi_reversal, caches)
        if scan_type == ScanType.CHANNEL:
            return matchers.match_channel(candles, timeframe, config.channel, caches)
        if scan_type == ScanType.DIVERGENCE:
            return matchers.match_divergence(candles, timeframe, config.divergence, caches)
        if scan_type == ScanType.SUPPORT_RESISTANCE:
            return matchers.match_support_resistance(
                candles, timeframe, config.support_resistance, caches
            )
        raise ValueError(f"Unknown scan type: {scan_type}")

    def _is_enabled(self, scan_type: ScanType, config: ScanConfig) -> bool:
        return getattr(config, scan_type.value).enabled

    def scan(
        self,
        symbol: str,
        scan_type: ScanType,
        config: ScanConfig,
        timeframes: Optional[Sequence[str]] = None,
    ) -> Optional[ScanResult]:
        """
        Run one scan for a symbol.

        Timeframes are tried in order; the first match wins. A timeframe
        that fails (missing data, engine error) is logged and skipped.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            scan_type: Scan to run
            config: Scan presets
            timeframes: Override of the settings' timeframes

        Returns:
            ScanResult for the first matching timeframe, or None
        """
        if not self._is_enabled(scan_type, config):
            return None

        for timeframe in timeframes or self.settings.timeframes:
            try:
                candles = self.get_candles(symbol, timeframe)
                if not candles:
                    logger.debug("No candles for %s %s", symbol, timeframe)
                    continue

                match = self._match(scan_type, candles, timeframe, config)
            except Exception as e:
                logger.warning(
                    "Scan %s failed for %s %s: %s", scan_type.value, symbol, timeframe, e
                )
                continue

            if match is None:
                continue

            return ScanResult(
                symbol=symbol,
                scan_type=scan_type,
                timeframe=timeframe,
                signal_type=match.signal_type,
                description=match.description,
                matched_at=int(time.time() * 1000),
                values=match.values,
                close_prices=self.recent_closes(symbol, candles),
            )

        return None

    async def scan_symbols(
        self,
        symbols: Sequence[str],
        scan_type: ScanType,
        config: ScanConfig,
    ) -> list[ScanResult]:
        """
        Run one scan across many symbols on the worker pool.

        Returns:
            Matching results in symbol order
        """
        loop = asyncio.get_running_loop()
        started = time.perf_counter()

        tasks = [
            loop.run_in_executor(self._executor, self.scan, symbol, scan_type, config)
            for symbol in symbols
        ]
        task_results = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[ScanResult] = []
        failed = 0
        for symbol, result in zip(symbols, task_results):
            if isinstance(result, Exception):
                failed += 1
                logger.warning("Scan %s failed for %s: %s", scan_type.value, symbol, result)
            elif result is not None:
                results.append(result)

        logger.info(
            "Scan %s: %d/%d symbols matched (%d failed) in %.2fs",
            scan_type.value,
            len(results),
            len(symbols),
            failed,
            time.perf_counter() - started,
        )
        return results

    def close(self) -> None:
        """Shut down the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ScannerService":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
