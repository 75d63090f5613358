"""Shared utilities: logging setup and guarded arithmetic."""

from .logger import (
    JSONFormatter,
    AnalyticsLogger,
    PerformanceLogger,
    setup_logging,
    configure_logging,
    get_analytics_logger,
)
from .math_utils import StatisticalUtils, PriceUtils, is_finite, fsum

__all__ = [
    'JSONFormatter',
    'AnalyticsLogger',
    'PerformanceLogger',
    'setup_logging',
    'configure_logging',
    'get_analytics_logger',
    'StatisticalUtils',
    'PriceUtils',
    'is_finite',
    'fsum',
]
