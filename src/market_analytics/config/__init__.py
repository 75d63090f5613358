"""
Configuration management module.

Loads configuration from YAML files and provides easy access.
"""

from .loader import ConfigLoader, get_config, reload_config
from .settings import (
    AnalyticsConfig,
    SystemConfig,
    BufferConfig,
    DepthConfig,
    OrderFlowConfig,
    VolumeProfileConfig,
    IndicatorConfig,
    PortfolioConfig,
)

__all__ = [
    'ConfigLoader',
    'get_config',
    'reload_config',
    'AnalyticsConfig',
    'SystemConfig',
    'BufferConfig',
    'DepthConfig',
    'OrderFlowConfig',
    'VolumeProfileConfig',
    'IndicatorConfig',
    'PortfolioConfig',
]
