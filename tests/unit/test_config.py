"""
Unit tests for configuration loading.

Tests:
- Defaults when no file exists
- YAML loading with ${VAR:default} placeholders
- Environment overrides
- Validation errors
"""

import pytest
from pydantic import ValidationError

from market_analytics.config.loader import ENV_OVERRIDES, ConfigLoader, PROJECT_ROOT
from market_analytics.config.settings import AnalyticsConfig, IndicatorConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(ENV_OVERRIDES) + ["ANALYTICS_TEST_LEVEL"]:
        monkeypatch.delenv(name, raising=False)


def write_config(directory, text):
    (directory / "analytics.yaml").write_text(text)
    return ConfigLoader(config_dir=directory)


def test_defaults_when_file_missing(tmp_path):
    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.volume_profile.bucket_count == 50
    assert config.volume_profile.value_area_pct == pytest.approx(0.70)
    assert config.order_flow.default_window == "5m"
    assert config.order_flow.price_bucket_size == pytest.approx(10.0)
    assert config.buffers.max_trades == 50
    assert config.portfolio.capital_base is None


def test_repository_config_is_valid():
    config = ConfigLoader(config_dir=PROJECT_ROOT / "config").load_config(use_cache=False)

    assert isinstance(config, AnalyticsConfig)
    assert config.system.log_level == "INFO"


def test_yaml_values_and_placeholders(tmp_path, monkeypatch):
    monkeypatch.setenv("ANALYTICS_TEST_LEVEL", "debug")
    loader = write_config(tmp_path, """
system:
  log_level: ${ANALYTICS_TEST_LEVEL:INFO}
order_flow:
  default_window: 1h
  price_bucket_size: 0.5
""")

    config = loader.load_config()

    assert config.system.log_level == "DEBUG"
    assert config.order_flow.default_window == "1h"
    assert config.order_flow.price_bucket_size == pytest.approx(0.5)


def test_placeholder_default_used_when_unset(tmp_path):
    loader = write_config(tmp_path, "system:\n  log_level: ${ANALYTICS_TEST_LEVEL:warning}\n")

    assert loader.load_config().system.log_level == "WARNING"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("VOLUME_PROFILE_BUCKETS", "24")
    monkeypatch.setenv("PORTFOLIO_CAPITAL_BASE", "2500")
    monkeypatch.setenv("ORDER_FLOW_WINDOW", "15m")

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.volume_profile.bucket_count == 24
    assert config.portfolio.capital_base == pytest.approx(2500.0)
    assert config.order_flow.default_window == "15m"


def test_bad_env_cast_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("VOLUME_PROFILE_BUCKETS", "many")

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.volume_profile.bucket_count == 50


def test_cache_and_reload(tmp_path):
    loader = write_config(tmp_path, "buffers:\n  max_candles: 100\n")
    first = loader.load_config()

    write_config(tmp_path, "buffers:\n  max_candles: 200\n")

    assert loader.load_config() is first
    assert loader.reload().buffers.max_candles == 200


def test_invalid_values_raise(tmp_path):
    loader = write_config(tmp_path, "volume_profile:\n  value_area_pct: 1.5\n")

    with pytest.raises(ValidationError):
        loader.load_config()


def test_unknown_window_rejected():
    with pytest.raises(ValidationError):
        AnalyticsConfig(order_flow={"default_window": "2m"})


def test_macd_periods_validated():
    with pytest.raises(ValidationError):
        IndicatorConfig(macd_fast=26, macd_slow=12)
