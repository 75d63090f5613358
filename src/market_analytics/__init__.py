"""
Market Analytics Engine

Order book depth, order flow, volume profile, technical indicators and
portfolio metrics over a market data feed.
"""

__version__ = "0.1.0"

from .analytics import (
    Candle,
    Trade,
    TradeSide,
    FlowWindow,
    OrderBookLevel,
    OrderBookSnapshot,
    DepthAggregator,
    OrderFlowAnalyzer,
    VolumeProfileBuilder,
    MarketAnalyticsService,
    AnalyticsSnapshot,
)
from .feed import MarketFeed, InMemoryFeed, FeedError
from .portfolio import (
    TradeHistoryEntry,
    Position,
    PortfolioMetrics,
    PositionTracker,
    calculate_portfolio_metrics,
)
from .config import AnalyticsConfig, get_config

__all__ = [
    'Candle',
    'Trade',
    'TradeSide',
    'FlowWindow',
    'OrderBookLevel',
    'OrderBookSnapshot',
    'DepthAggregator',
    'OrderFlowAnalyzer',
    'VolumeProfileBuilder',
    'MarketAnalyticsService',
    'AnalyticsSnapshot',
    'MarketFeed',
    'InMemoryFeed',
    'FeedError',
    'TradeHistoryEntry',
    'Position',
    'PortfolioMetrics',
    'PositionTracker',
    'calculate_portfolio_metrics',
    'AnalyticsConfig',
    'get_config',
]
