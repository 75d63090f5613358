"""
Configuration models using Pydantic for type-safe validation.

This module defines all configuration models for the analytics engine:
- SystemConfig: Log level, log format, log file
- BufferConfig: Ring buffer capacities
- DepthConfig: Order book ladder depth
- OrderFlowConfig: Default window, price bucket width
- VolumeProfileConfig: Bucket count, value area share
- IndicatorConfig: Indicator periods
- PortfolioConfig: Capital basis for ROI
"""

from typing import Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Enums for Configuration
# ============================================================================

class LogLevel(str, Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FlowWindowName(str, Enum):
    """Order flow lookback windows."""
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"


# ============================================================================
# System Configuration
# ============================================================================

class SystemConfig(BaseModel):
    """System-wide settings."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )

    json_logs: bool = Field(
        default=True,
        description="Emit JSON log lines"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        return v.upper() if isinstance(v, str) else v


# ============================================================================
# Analytics Configuration
# ============================================================================

class BufferConfig(BaseModel):
    """Ring buffer capacities held by the analytics service."""

    max_candles: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Candles kept per market"
    )

    max_trades: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Recent trades kept per market (oldest evicted)"
    )


class DepthConfig(BaseModel):
    """Order book ladder configuration."""

    max_levels: Optional[int] = Field(
        default=20,
        ge=1,
        le=1000,
        description="Levels per side in the depth view (None = all)"
    )


class OrderFlowConfig(BaseModel):
    """Order flow analyzer configuration."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    default_window: FlowWindowName = Field(
        default=FlowWindowName.FIVE_MINUTES,
        description="Lookback window used when none is requested"
    )

    price_bucket_size: float = Field(
        default=10.0,
        gt=0.0,
        description="Price bucket width for level imbalance (tick-size dependent)"
    )


class VolumeProfileConfig(BaseModel):
    """Volume profile builder configuration."""

    bucket_count: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Number of equal-width price buckets"
    )

    value_area_pct: float = Field(
        default=0.70,
        gt=0.0,
        le=1.0,
        description="Share of volume in the value area (0.70 = 70%)"
    )


class IndicatorConfig(BaseModel):
    """Technical indicator periods."""

    sma_period: int = Field(default=20, ge=1)
    ema_period: int = Field(default=20, ge=1)
    rsi_period: int = Field(default=14, ge=1)
    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=2)
    macd_signal: int = Field(default=9, ge=1)
    bollinger_period: int = Field(default=20, ge=1)
    bollinger_std: float = Field(default=2.0, gt=0.0)

    @model_validator(mode='after')
    def fast_below_slow(self):
        """Validate that macd_fast < macd_slow."""
        if self.macd_fast >= self.macd_slow:
            raise ValueError('macd_fast must be < macd_slow')
        return self


class PortfolioConfig(BaseModel):
    """Portfolio metrics configuration."""

    capital_base: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Deposited capital used as the ROI denominator"
    )


# ============================================================================
# Root Configuration
# ============================================================================

class AnalyticsConfig(BaseModel):
    """Complete analytics engine configuration."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    buffers: BufferConfig = Field(default_factory=BufferConfig)
    depth: DepthConfig = Field(default_factory=DepthConfig)
    order_flow: OrderFlowConfig = Field(default_factory=OrderFlowConfig)
    volume_profile: VolumeProfileConfig = Field(default_factory=VolumeProfileConfig)
    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    portfolio: PortfolioConfig = Field(default_factory=PortfolioConfig)
