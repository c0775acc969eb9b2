"""CLI entry point for running scans over candles stored in a JSON file.

The file maps symbol -> timeframe -> candle list, each candle an object
with time (ms), open, high, low, close and optional volume:

    {"BTCUSDT": {"1m": [{"time": 1700000000000, "open": 1, ...}, ...]}}

Usage:
    python -m ta_scanner candles.json --scan channel
    python -m ta_scanner candles.json --scan stochastic --symbols BTCUSDT,ETHUSDT
    python -m ta_scanner candles.json --scan divergence --config scanner.yaml -o out.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import orjson

from ta_engine.models import Candle
from ta_scanner.config import get_settings
from ta_scanner.models import ScanResult, ScanType
from ta_scanner.scan_config import load_scan_config
from ta_scanner.scanner import ScannerService

CandleStore = dict[str, dict[str, list[Candle]]]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run technical-analysis scans over candles from a JSON file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ta_scanner candles.json --scan channel
  python -m ta_scanner candles.json --scan rsi_reversal --timeframes 5m
  python -m ta_scanner candles.json --scan support_resistance -o results.json
        """,
    )
    parser.add_argument("candles", type=Path, help="JSON candle file")
    parser.add_argument(
        "--scan",
        choices=[t.value for t in ScanType],
        required=True,
        help="Scan type to run",
    )
    parser.add_argument(
        "--symbols",
        type=str,
        default=None,
        help="Comma-separated symbols (default: every symbol in the file)",
    )
    parser.add_argument(
        "--timeframes",
        type=str,
        default=None,
        help="Comma-separated timeframes (default: SCANNER_TIMEFRAMES)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Scan presets YAML (default: SCANNER_CONFIG_PATH)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args()


def load_candles(path: Path) -> CandleStore:
    """Read the symbol -> timeframe -> candles mapping."""
    raw = orjson.loads(path.read_bytes())
    return {
        symbol: {
            timeframe: [Candle(**c) for c in candles]
            for timeframe, candles in by_timeframe.items()
        }
        for symbol, by_timeframe in raw.items()
    }


def print_results(results: list[ScanResult]) -> None:
    if not results:
        print("No matches.")
        return

    print(f"\n{'Symbol':<14} {'TF':<5} {'Signal':<8} Description")
    print("-" * 80)
    for r in results:
        print(f"{r.symbol:<14} {r.timeframe:<5} {r.signal_type:<8} {r.description}")
    print()


async def main() -> None:
    args = parse_args()

    settings = get_settings()
    level = logging.DEBUG if args.verbose else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    if not args.candles.exists():
        print(f"Error: candle file not found: {args.candles}")
        sys.exit(1)

    store = load_candles(args.candles)
    config = load_scan_config(args.config)

    if args.symbols:
        symbols = [s.strip() for s in args.symbols.split(",")]
    else:
        symbols = config.symbols or list(store)

    if args.timeframes:
        timeframes = [t.strip() for t in args.timeframes.split(",")]
        settings = settings.model_copy(update={"timeframes": timeframes})

    def candle_source(symbol: str, timeframe: str, lookback: int) -> list[Candle] | None:
        candles = store.get(symbol, {}).get(timeframe)
        return candles[-lookback:] if candles else None

    with ScannerService(candle_source, settings=settings) as scanner:
        results = await scanner.scan_symbols(symbols, ScanType(args.scan), config)

    print_results(results)

    if args.output:
        payload = [r.model_dump(mode="json") for r in results]
        Path(args.output).write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        print(f"Saved {len(results)} results to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())
