"""
Unit tests for structured logging helpers.
"""

import json
import logging

import pytest

from market_analytics.config.settings import SystemConfig
from market_analytics.utils.logger import JSONFormatter, configure_logging, get_analytics_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_json_formatter_includes_extras():
    record = logging.LogRecord("market_analytics.test", logging.WARNING, __file__, 1, "skipped %d", (2,), None)
    record.component = "depth"
    record.skipped = 2
    record.market = "BTC/USDT"

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "skipped 2"
    assert data["level"] == "WARNING"
    assert data["component"] == "depth"
    assert data["skipped"] == 2
    assert data["market"] == "BTC/USDT"


def test_setup_logging_writes_json_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "analytics.log"

    setup_logging("debug", log_file=str(log_file))
    get_analytics_logger("market_analytics.test").recompute("snapshot", "BTC/USDT", 0.0015, window="5m")
    for handler in restore_root_logger.handlers:
        handler.flush()

    line = json.loads(log_file.read_text().strip().splitlines()[-1])

    assert restore_root_logger.level == logging.DEBUG
    assert line["component"] == "snapshot"
    assert line["window"] == "5m"
    assert line["execution_time"] == pytest.approx(0.0015)


@pytest.mark.parametrize("json_logs", [True, False])
def test_configure_logging_honours_json_logs(tmp_path, restore_root_logger, json_logs):
    system = SystemConfig(log_level="warning", json_logs=json_logs, log_file=str(tmp_path / "analytics.log"))

    configure_logging(system)

    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 2
    assert all(
        isinstance(handler.formatter, JSONFormatter) == json_logs
        for handler in restore_root_logger.handlers
    )


def test_feed_failure_logged_as_warning(caplog):
    diagnostics = get_analytics_logger("market_analytics.test")

    with caplog.at_level(logging.DEBUG, logger="market_analytics.test"):
        diagnostics.feed_failure("get_candles", "BTC/USDT", ConnectionError("timeout"))

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.WARNING, logging.DEBUG]
    assert caplog.records[1].exc_info is not None
