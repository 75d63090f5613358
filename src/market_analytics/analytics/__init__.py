"""
Analytics components: depth, order flow, volume profile, indicators and
the per-market service that ties them to a feed.
"""

from .models import (
    Candle,
    Trade,
    TradeSide,
    FlowWindow,
    OrderBookLevel,
    OrderBookSnapshot,
    ensure_utc,
    utc_now,
)
from .depth import DepthAggregator, DepthLevel, DepthView
from .order_flow import OrderFlowAnalyzer, OrderFlowView, PriceLevelFlow
from .volume_profile import VolumeProfileBuilder, VolumeProfileView, VolumeBucket, ValueArea
from .engine import MarketAnalyticsService, AnalyticsSnapshot
from . import indicators

__all__ = [
    'Candle',
    'Trade',
    'TradeSide',
    'FlowWindow',
    'OrderBookLevel',
    'OrderBookSnapshot',
    'ensure_utc',
    'utc_now',
    'DepthAggregator',
    'DepthLevel',
    'DepthView',
    'OrderFlowAnalyzer',
    'OrderFlowView',
    'PriceLevelFlow',
    'VolumeProfileBuilder',
    'VolumeProfileView',
    'VolumeBucket',
    'ValueArea',
    'MarketAnalyticsService',
    'AnalyticsSnapshot',
    'indicators',
]
