"""Scanner runtime settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class ScannerSettings(BaseSettings):
    """Scanner settings loaded from environment variables (prefix SCANNER_)."""

    model_config = SettingsConfigDict(
        env_prefix="SCANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Worker pool for per-symbol scans
    max_workers: int = 8

    # Indicator caches (one LRU per indicator kind)
    cache_size: int = 50
    cache_ttl_ms: int = 30_000

    # Candles requested per timeframe
    lookback_candles: int = 150
    timeframes: list[str] = ["1m", "5m"]

    # Scan presets
    config_path: str = "scanner.yaml"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> ScannerSettings:
    """Get cached settings instance."""
    return ScannerSettings()
