"""
Order Flow Analyzer - windowed buy/sell flow and price-level imbalance.

Calculates:
1. Buy and sell notional volume inside a lookback window
2. Net flow and flow ratio (net flow as % of total volume)
3. Per price-bucket buy/sell quantity imbalance
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .models import FlowWindow, Trade, TradeSide, ensure_utc, utc_now
from .validation import filter_valid, trade_problem
from ..utils.math_utils import PriceUtils, StatisticalUtils

logger = logging.getLogger(__name__)

DEFAULT_PRICE_BUCKET_SIZE = 10.0


@dataclass
class PriceLevelFlow:
    """Buy/sell quantity traded inside one price bucket."""
    price: float
    buy: float
    sell: float
    imbalance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price': self.price,
            'buy': self.buy,
            'sell': self.sell,
            'imbalance': self.imbalance,
        }


@dataclass
class OrderFlowView:
    """Order flow result for one window."""
    window: FlowWindow
    buy_volume: float
    sell_volume: float
    net_flow: float
    flow_ratio: float
    buy_count: int
    sell_count: int
    total_trades: int
    levels: List[PriceLevelFlow] = field(default_factory=list)
    skipped_trades: int = 0

    @property
    def total_volume(self) -> float:
        return self.buy_volume + self.sell_volume

    @property
    def dominant_side(self) -> str:
        if self.net_flow > 0:
            return 'buy'
        if self.net_flow < 0:
            return 'sell'
        return 'neutral'

    @property
    def max_abs_imbalance(self) -> float:
        return max((abs(level.imbalance) for level in self.levels), default=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'window': self.window.value,
            'buy_volume': self.buy_volume,
            'sell_volume': self.sell_volume,
            'net_flow': self.net_flow,
            'flow_ratio': self.flow_ratio,
            'buy_count': self.buy_count,
            'sell_count': self.sell_count,
            'total_trades': self.total_trades,
            'total_volume': self.total_volume,
            'dominant_side': self.dominant_side,
            'max_abs_imbalance': self.max_abs_imbalance,
            'levels': [level.to_dict() for level in self.levels],
            'skipped_trades': self.skipped_trades,
        }


class OrderFlowAnalyzer:
    """
    Order Flow Analyzer - windowed flow over a trade buffer.

    Flow:
        buy_volume  = sum(price x quantity) of buys in window
        sell_volume = sum(price x quantity) of sells in window
        net_flow    = buy_volume - sell_volume
        flow_ratio  = net_flow / (buy_volume + sell_volume) x 100

    Price-level imbalance:
        bucket      = floor(price / bucket_size) x bucket_size
        imbalance   = buy quantity - sell quantity per bucket

    Every call filters the full buffer again; windows share no state.
    """

    def __init__(self, price_bucket_size: float = DEFAULT_PRICE_BUCKET_SIZE):
        """
        Initialize Order Flow Analyzer.

        Args:
            price_bucket_size: Width of the price buckets used for imbalance
        """
        if price_bucket_size <= 0:
            raise ValueError(f"price_bucket_size must be positive, got {price_bucket_size}")
        self.price_bucket_size = price_bucket_size
        self.skipped_records = 0
        self._stats_lock = threading.Lock()

        logger.debug(f"OrderFlowAnalyzer initialized - price_bucket_size={price_bucket_size}")

    def analyze(
        self,
        trades: Iterable[Trade],
        window: Union[FlowWindow, str] = FlowWindow.FIVE_MINUTES,
        now: Optional[datetime] = None,
        price_bucket_size: Optional[float] = None,
        market: Optional[str] = None
    ) -> Optional[OrderFlowView]:
        """
        Compute order flow over the trades inside the window.

        Args:
            trades: Trade buffer (any order)
            window: Lookback window ('1m', '5m', '15m', '1h')
            now: Reference time (default: current UTC time)
            price_bucket_size: Override the analyzer's bucket width for this call
            market: Optional market name for log context

        Returns:
            OrderFlowView, or None when no trade falls inside the window
        """
        window = FlowWindow.parse(window)
        bucket_size = price_bucket_size if price_bucket_size is not None else self.price_bucket_size
        if bucket_size <= 0:
            raise ValueError(f"price_bucket_size must be positive, got {bucket_size}")

        now = ensure_utc(now) if now is not None else utc_now()

        valid, skipped = filter_valid(trades or [], trade_problem, 'order_flow', market)
        with self._stats_lock:
            self.skipped_records += skipped

        cutoff = window.delta
        recent = [t for t in valid if now - t.timestamp < cutoff]

        if not recent:
            logger.debug(f"No trades in {window.value} window for {market or 'market'}")
            return None

        buys = [t for t in recent if t.side is TradeSide.BUY]
        sells = [t for t in recent if t.side is TradeSide.SELL]

        buy_volume = sum(t.notional for t in buys)
        sell_volume = sum(t.notional for t in sells)
        net_flow = buy_volume - sell_volume
        flow_ratio = StatisticalUtils.percentage(net_flow, buy_volume + sell_volume)

        result = OrderFlowView(
            window=window,
            buy_volume=buy_volume,
            sell_volume=sell_volume,
            net_flow=net_flow,
            flow_ratio=flow_ratio,
            buy_count=len(buys),
            sell_count=len(sells),
            total_trades=len(recent),
            levels=self._price_levels(recent, bucket_size),
            skipped_trades=skipped,
        )

        logger.debug(
            f"Order flow for {market or 'market'} ({window.value}): "
            f"net={net_flow:.2f} ratio={flow_ratio:.2f}% "
            f"buys={len(buys)} sells={len(sells)}"
        )

        return result

    @staticmethod
    def _price_levels(trades: List[Trade], bucket_size: float) -> List[PriceLevelFlow]:
        """Accumulate buy/sell quantity per price bucket, highest price first."""
        buckets: Dict[float, Dict[str, float]] = defaultdict(lambda: {'buy': 0.0, 'sell': 0.0})

        for trade in trades:
            level = PriceUtils.floor_to_bucket(trade.price, bucket_size)
            buckets[level][trade.side.value] += trade.quantity

        levels = [
            PriceLevelFlow(
                price=price,
                buy=data['buy'],
                sell=data['sell'],
                imbalance=data['buy'] - data['sell'],
            )
            for price, data in buckets.items()
        ]
        levels.sort(key=lambda level: level.price, reverse=True)
        return levels
