"""Tests for scanner settings and scan presets."""

import textwrap

import pytest

from ta_scanner.config import ScannerSettings
from ta_scanner.scan_config import (
    ChannelScannerConfig,
    ScanConfig,
    StochasticScannerConfig,
    load_scan_config,
)


# ── ScanConfig model tests ────────────────────────────────────────────────


class TestScanConfig:
    def test_defaults(self):
        config = ScanConfig()
        assert config.symbols == []
        assert config.stochastic.oversold_threshold == 20.0
        assert config.stochastic.overbought_threshold == 80.0
        assert set(config.stochastic.variants) == {"ultra_fast", "fast", "medium", "slow"}
        assert config.macd_reversal.fast_period == 5
        assert config.macd_reversal.slow_period == 13
        assert config.ema_alignment.ema3_period == 21

    def test_enabled_variants(self):
        config = StochasticScannerConfig(
            variants={
                "fast": {"period": 14},
                "slow": {"period": 60, "enabled": False},
            }
        )
        assert list(config.enabled_variants()) == ["fast"]

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValueError):
            StochasticScannerConfig(oversold_threshold=80, overbought_threshold=20)

    def test_channel_config_conversion(self):
        channel = ChannelScannerConfig(lookback_bars=150, min_touches=5).to_channel_config()
        assert channel.lookback_bars == 150
        assert channel.min_touches == 5
        assert channel.pivot_strength == 3

    def test_divergence_config_conversion(self):
        config = ScanConfig(divergence={"max_index_distance": 4, "stochastic": {"period": 21}})
        divergence = config.divergence.to_divergence_config()
        assert divergence.max_index_distance == 4
        assert divergence.stochastic.period == 21


# ── load_scan_config tests ────────────────────────────────────────────────


class TestLoadScanConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_scan_config(tmp_path / "missing.yaml")
        assert config == ScanConfig()

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "scanner.yaml"
        path.write_text(textwrap.dedent("""\
            symbols:
              - BTCUSDT
              - ETHUSDT
            volume_spike:
              volume_threshold: 3.0
            channel:
              min_touches: 6
            support_resistance:
              proximity_pct: 1.0
              trendline:
                min_period: 30
        """))

        config = load_scan_config(path)

        assert config.symbols == ["BTCUSDT", "ETHUSDT"]
        assert config.volume_spike.volume_threshold == 3.0
        assert config.volume_spike.lookback_period == 20
        assert config.channel.min_touches == 6
        assert config.support_resistance.proximity_pct == 1.0
        assert config.support_resistance.trendline.min_period == 30

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "scanner.yaml"
        path.write_text("")
        assert load_scan_config(path) == ScanConfig()

    def test_invalid_values_raise(self, tmp_path):
        path = tmp_path / "scanner.yaml"
        path.write_text(textwrap.dedent("""\
            rsi_reversal:
              oversold_level: 80
              overbought_level: 20
        """))

        with pytest.raises(ValueError, match="Invalid scanner config"):
            load_scan_config(path)

    def test_non_positive_period_raises(self, tmp_path):
        path = tmp_path / "scanner.yaml"
        path.write_text("macd_reversal:\n  fast_period: 0\n")

        with pytest.raises(ValueError):
            load_scan_config(path)


# ── ScannerSettings tests ─────────────────────────────────────────────────


class TestScannerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SCANNER_MAX_WORKERS", raising=False)
        settings = ScannerSettings(_env_file=None)
        assert settings.max_workers == 8
        assert settings.cache_size == 50
        assert settings.cache_ttl_ms == 30_000
        assert settings.timeframes == ["1m", "5m"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SCANNER_MAX_WORKERS", "2")
        monkeypatch.setenv("SCANNER_TIMEFRAMES", '["5m"]')
        settings = ScannerSettings(_env_file=None)
        assert settings.max_workers == 2
        assert settings.timeframes == ["5m"]
