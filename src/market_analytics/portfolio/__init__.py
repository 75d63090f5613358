"""
Portfolio tracking: positions folded from fills, aggregate metrics, export.
"""

from .models import (
    PositionSide,
    TradeHistoryEntry,
    Position,
    PortfolioMetrics,
)
from .tracker import PositionTracker
from .metrics import calculate_portfolio_metrics
from .export import (
    trade_history_frame,
    export_trade_history_csv,
    export_portfolio_json,
)

__all__ = [
    'PositionSide',
    'TradeHistoryEntry',
    'Position',
    'PortfolioMetrics',
    'PositionTracker',
    'calculate_portfolio_metrics',
    'trade_history_frame',
    'export_trade_history_csv',
    'export_portfolio_json',
]
