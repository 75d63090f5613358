"""
Portfolio data models.

This module defines the trade-history entry, the per-market Position folded
from fills, and the aggregate PortfolioMetrics.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..analytics.models import TradeSide, ensure_utc
from ..utils.math_utils import StatisticalUtils


class PositionSide(str, Enum):
    """Direction of the net exposure."""
    LONG = "long"
    SHORT = "short"
    FLAT = "flat"


def split_market(market: str):
    """'BTC/USDT' -> ('BTC', 'USDT'); markets without a separator keep an empty quote."""
    for separator in ("/", "-", "_"):
        if separator in market:
            base, quote = market.split(separator, 1)
            return base, quote
    return market, ""


@dataclass(frozen=True)
class TradeHistoryEntry:
    """
    A fill from the upstream ledger.

    realized_pnl is attributed per trade by the ledger and is used as-is for
    the aggregate metrics.
    """
    id: str
    market: str
    side: TradeSide
    price: float
    quantity: float
    timestamp: datetime
    fee: float = 0.0
    realized_pnl: float = 0.0
    trade_id: Optional[str] = None
    order_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "side", TradeSide.parse(self.side))
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    @property
    def notional(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "trade_id": self.trade_id,
            "order_id": self.order_id,
            "market": self.market,
            "side": self.side.value,
            "price": self.price,
            "quantity": self.quantity,
            "fee": self.fee,
            "realized_pnl": self.realized_pnl,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Position:
    """
    Net position in one market.

    base_quantity is signed: positive for long exposure, negative for short.
    average_entry_price only moves on fills that increase exposure.
    """

    # ========================================================================
    # Identity
    # ========================================================================
    market: str
    base_asset: str = ""
    quote_asset: str = ""

    # ========================================================================
    # Position Details
    # ========================================================================
    base_quantity: float = 0.0
    average_entry_price: float = 0.0
    current_price: Optional[float] = None

    # ========================================================================
    # P&L
    # ========================================================================
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0

    # ========================================================================
    # Activity
    # ========================================================================
    total_trades: int = 0
    total_volume: float = 0.0
    fees_paid: float = 0.0
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.base_asset:
            self.base_asset, self.quote_asset = split_market(self.market)

    @property
    def side(self) -> PositionSide:
        if self.base_quantity > 0:
            return PositionSide.LONG
        if self.base_quantity < 0:
            return PositionSide.SHORT
        return PositionSide.FLAT

    @property
    def is_open(self) -> bool:
        return self.base_quantity != 0

    @property
    def quote_quantity(self) -> float:
        """Cost basis of the open quantity in quote units."""
        return abs(self.base_quantity) * self.average_entry_price

    @property
    def total_pnl(self) -> float:
        return self.realized_pnl + self.unrealized_pnl

    @property
    def pnl_percentage(self) -> float:
        return StatisticalUtils.percentage(self.total_pnl, self.quote_quantity)

    def update_price(self, new_price: float) -> None:
        """
        Update current price and recalculate unrealized P&L.

        Args:
            new_price: New market price
        """
        self.current_price = new_price
        self._calculate_unrealized_pnl()

    def _calculate_unrealized_pnl(self) -> None:
        """(current - entry) x quantity; the signed quantity inverts shorts."""
        if self.current_price is None or not self.is_open:
            self.unrealized_pnl = 0.0
            return

        self.unrealized_pnl = (self.current_price - self.average_entry_price) * self.base_quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convert position to dictionary for serialization."""
        return {
            "market": self.market,
            "base_asset": self.base_asset,
            "quote_asset": self.quote_asset,
            "side": self.side.value,
            "base_quantity": self.base_quantity,
            "quote_quantity": self.quote_quantity,
            "average_entry_price": self.average_entry_price,
            "current_price": self.current_price,
            "realized_pnl": self.realized_pnl,
            "unrealized_pnl": self.unrealized_pnl,
            "total_pnl": self.total_pnl,
            "pnl_percentage": self.pnl_percentage,
            "total_trades": self.total_trades,
            "total_volume": self.total_volume,
            "fees_paid": self.fees_paid,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class PortfolioMetrics:
    """Aggregate performance derived from a trade history."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_realized_pnl: float = 0.0
    total_unrealized_pnl: float = 0.0
    average_profit_per_trade: float = 0.0
    average_loss_per_trade: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    win_rate: float = 0.0
    total_volume: float = 0.0
    total_fees_paid: float = 0.0
    roi: float = 0.0
    capital_base: Optional[float] = None
    skipped_entries: int = 0

    @property
    def total_pnl(self) -> float:
        return self.total_realized_pnl + self.total_unrealized_pnl

    @property
    def net_pnl(self) -> float:
        return self.total_pnl - self.total_fees_paid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "total_realized_pnl": self.total_realized_pnl,
            "total_unrealized_pnl": self.total_unrealized_pnl,
            "total_pnl": self.total_pnl,
            "net_pnl": self.net_pnl,
            "average_profit_per_trade": self.average_profit_per_trade,
            "average_loss_per_trade": self.average_loss_per_trade,
            "largest_win": self.largest_win,
            "largest_loss": self.largest_loss,
            "win_rate": self.win_rate,
            "total_volume": self.total_volume,
            "total_fees_paid": self.total_fees_paid,
            "roi": self.roi,
            "capital_base": self.capital_base,
            "skipped_entries": self.skipped_entries,
        }
