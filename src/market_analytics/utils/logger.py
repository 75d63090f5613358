"""
Enhanced Logging Utilities

Provides structured logging with:
- JSON formatting for production
- Recompute timings
- Malformed-input diagnostics
- Multi-level filtering
"""

import logging
import json
import sys
import time
from datetime import datetime
from typing import Optional
from pathlib import Path
from contextlib import contextmanager


_EXTRA_FIELDS = (
    'correlation_id',
    'market',
    'component',
    'window',
    'skipped',
    'reason',
    'execution_time',
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for field_name in _EXTRA_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """Logger for tracking recompute timings."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def timer(self, operation: str, **context):
        """Context manager for timing operations (logged at DEBUG)."""
        start_time = time.perf_counter()

        try:
            yield
        finally:
            execution_time = time.perf_counter() - start_time
            extra = {'execution_time': execution_time, **context}
            self.logger.debug(
                f"Operation completed: {operation} in {execution_time * 1000:.2f}ms",
                extra=extra
            )


class AnalyticsLogger:
    """Specialized logger for analytics diagnostics."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.performance = PerformanceLogger(self.logger)

    def malformed_input(self, component: str, skipped: int, reason: str, market: Optional[str] = None):
        """Log records dropped as contract violations by the feed."""
        extra = {
            'component': component,
            'skipped': skipped,
            'reason': reason,
            'market': market,
        }
        self.logger.warning(
            f"{component}: skipped {skipped} malformed record(s) ({reason})",
            extra=extra
        )

    def recompute(self, component: str, market: str, execution_time: float, **context):
        """Log a completed recomputation."""
        extra = {
            'component': component,
            'market': market,
            'execution_time': execution_time,
            **context
        }
        self.logger.debug(f"Recomputed {component} for {market} in {execution_time * 1000:.2f}ms", extra=extra)

    def feed_failure(self, operation: str, market: str, error: BaseException):
        """Log a feed request that degraded to no data."""
        extra = {'component': 'feed', 'market': market}
        self.logger.warning(f"Feed {operation} failed for {market}, treating as no data: {error}", extra=extra)
        self.logger.debug("Feed failure detail", exc_info=error, extra=extra)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
    correlation_id: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON formatting
        correlation_id: Optional correlation ID for request tracking

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if correlation_id:
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.correlation_id = correlation_id
            return record

        logging.setLogRecordFactory(record_factory)

    return logger


def configure_logging(system) -> logging.Logger:
    """Setup logging from the `system` section of an AnalyticsConfig."""
    return setup_logging(system.log_level, system.log_file, json_format=system.json_logs)


def get_analytics_logger(name: str) -> AnalyticsLogger:
    """Get an analytics-specific logger instance."""
    return AnalyticsLogger(name)
