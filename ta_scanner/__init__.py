"""Signal scanner built on ta_engine.

Settings come from SCANNER_* environment variables, scan presets from
scanner.yaml. Candles are supplied by the caller through a candle source
callable; the scanner itself performs no network or exchange access.

Usage:
    python -m ta_scanner candles.json --scan channel
"""

from ta_scanner.models import ScanResult, ScanType
from ta_scanner.scan_config import ScanConfig, load_scan_config
from ta_scanner.scanner import CandleSource, ScannerService

__all__ = [
    "CandleSource",
    "ScanConfig",
    "ScanResult",
    "ScanType",
    "ScannerService",
    "load_scan_config",
]
