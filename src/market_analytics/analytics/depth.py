"""
Depth Aggregator - normalized order book ladder.

Calculates:
1. Per-side ladders with cumulative totals from the best price outward
2. Best bid / best ask, spread and spread percent
3. Bar widths relative to the largest level (and largest cumulative total)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import LevelInput, OrderBookLevel, as_level
from .validation import filter_valid, level_problem
from ..utils.math_utils import StatisticalUtils

logger = logging.getLogger(__name__)


@dataclass
class DepthLevel:
    """Order book level annotated for visualization."""
    price: float
    quantity: float
    cumulative_total: float
    width_percent: float = 0.0
    total_width_percent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price': self.price,
            'quantity': self.quantity,
            'cumulative_total': self.cumulative_total,
            'width_percent': self.width_percent,
            'total_width_percent': self.total_width_percent,
        }


@dataclass
class DepthView:
    """Depth ladder for both sides of the book."""
    bids: List[DepthLevel] = field(default_factory=list)
    asks: List[DepthLevel] = field(default_factory=list)
    best_bid: Optional[DepthLevel] = None
    best_ask: Optional[DepthLevel] = None
    spread: float = 0.0
    spread_percent: float = 0.0
    mid_price: Optional[float] = None
    max_quantity: float = 0.0
    is_crossed: bool = False
    skipped_levels: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bids': [level.to_dict() for level in self.bids],
            'asks': [level.to_dict() for level in self.asks],
            'best_bid': self.best_bid.to_dict() if self.best_bid else None,
            'best_ask': self.best_ask.to_dict() if self.best_ask else None,
            'spread': self.spread,
            'spread_percent': self.spread_percent,
            'mid_price': self.mid_price,
            'max_quantity': self.max_quantity,
            'is_crossed': self.is_crossed,
            'skipped_levels': self.skipped_levels,
        }


class DepthAggregator:
    """
    Depth Aggregator - turns raw bid/ask lists into a visualization ladder.

    Ladder rules:
    - Bids sorted descending by price, asks ascending
    - cumulative_total = running sum of quantity from the best price outward
    - width_percent = quantity / max quantity across both sides x 100
    - spread = best ask - best bid, spread_percent = spread / best bid x 100

    A crossed book (best ask <= best bid) is reported with is_crossed set,
    never rejected.
    """

    def __init__(self, max_levels: Optional[int] = None):
        """
        Initialize Depth Aggregator.

        Args:
            max_levels: Keep at most this many levels per side (None = all)
        """
        if max_levels is not None and max_levels <= 0:
            raise ValueError(f"max_levels must be positive, got {max_levels}")
        self.max_levels = max_levels
        self.skipped_records = 0
        self._stats_lock = threading.Lock()

    def aggregate(
        self,
        bids: Iterable[LevelInput],
        asks: Iterable[LevelInput],
        market: Optional[str] = None
    ) -> Optional[DepthView]:
        """
        Build the depth view.

        Args:
            bids: Bid levels as OrderBookLevel or (price, quantity)
            asks: Ask levels as OrderBookLevel or (price, quantity)
            market: Optional market name for log context

        Returns:
            DepthView, or None when both sides are empty
        """
        bid_levels, skipped_bids = self._prepare(bids or [], market)
        ask_levels, skipped_asks = self._prepare(asks or [], market)
        skipped = skipped_bids + skipped_asks
        with self._stats_lock:
            self.skipped_records += skipped

        bid_levels.sort(key=lambda level: level.price, reverse=True)
        ask_levels.sort(key=lambda level: level.price)

        if self.max_levels is not None:
            bid_levels = bid_levels[:self.max_levels]
            ask_levels = ask_levels[:self.max_levels]

        if not bid_levels and not ask_levels:
            logger.debug(f"No depth data for {market or 'market'}")
            return None

        max_quantity = max((level.quantity for level in bid_levels + ask_levels), default=0.0)

        bid_ladder = self._build_ladder(bid_levels, max_quantity)
        ask_ladder = self._build_ladder(ask_levels, max_quantity)

        max_total = max(
            (ladder[-1].cumulative_total for ladder in (bid_ladder, ask_ladder) if ladder),
            default=0.0
        )
        for level in bid_ladder + ask_ladder:
            level.total_width_percent = StatisticalUtils.percentage(level.cumulative_total, max_total)

        best_bid = bid_ladder[0] if bid_ladder else None
        best_ask = ask_ladder[0] if ask_ladder else None

        spread = 0.0
        spread_percent = 0.0
        mid_price = None
        is_crossed = False

        if best_bid and best_ask:
            spread = best_ask.price - best_bid.price
            spread_percent = StatisticalUtils.percentage(spread, best_bid.price)
            mid_price = (best_ask.price + best_bid.price) / 2
            is_crossed = best_ask.price <= best_bid.price

            if is_crossed:
                logger.warning(
                    f"Crossed book for {market or 'market'}: "
                    f"bid {best_bid.price} >= ask {best_ask.price}"
                )

        return DepthView(
            bids=bid_ladder,
            asks=ask_ladder,
            best_bid=best_bid,
            best_ask=best_ask,
            spread=spread,
            spread_percent=spread_percent,
            mid_price=mid_price,
            max_quantity=max_quantity,
            is_crossed=is_crossed,
            skipped_levels=skipped,
        )

    def _prepare(self, levels: Iterable[LevelInput], market: Optional[str]):
        """Coerce inputs to OrderBookLevel copies and drop malformed ones."""
        coerced: List[OrderBookLevel] = []
        unreadable = 0
        for raw in levels:
            try:
                coerced.append(as_level(raw))
            except (TypeError, ValueError, IndexError):
                unreadable += 1

        valid, skipped = filter_valid(coerced, level_problem, 'depth', market)
        if unreadable:
            logger.warning(f"depth: skipped {unreadable} unreadable level(s)")
        return valid, skipped + unreadable

    @staticmethod
    def _build_ladder(levels: List[OrderBookLevel], max_quantity: float) -> List[DepthLevel]:
        """Annotate sorted levels with running totals and widths."""
        ladder: List[DepthLevel] = []
        running_total = 0.0

        for level in levels:
            running_total += level.quantity
            ladder.append(DepthLevel(
                price=level.price,
                quantity=level.quantity,
                cumulative_total=running_total,
                width_percent=StatisticalUtils.percentage(level.quantity, max_quantity),
            ))

        return ladder
