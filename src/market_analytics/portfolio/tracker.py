"""
Position Tracker - folds fills into per-market positions.

Fill rules:
1. A fill in the direction of the current exposure (or from flat) moves the
   weighted average entry price:
       avg = (avg x |qty| + fill_price x fill_qty) / (|qty| + fill_qty)
2. A fill against the exposure realizes (fill_price - avg) x closed_qty
   (sign inverted for shorts) and leaves the average untouched
3. A fill larger than the exposure closes it and opens the remainder in the
   other direction at the fill price
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from .models import Position, TradeHistoryEntry
from ..analytics.validation import filter_valid, history_problem

logger = logging.getLogger(__name__)


class PositionTracker:
    """
    Folds a trade history into positions and marks them to market.

    Positions are recomputed from the fills handed in; the tracker keeps no
    state beyond the positions built from those fills.
    """

    def __init__(self):
        """Initialize an empty tracker."""
        self._positions: Dict[str, Position] = {}
        self.skipped_records = 0

    @classmethod
    def from_history(
        cls,
        history: Iterable[TradeHistoryEntry],
        prices: Optional[Mapping[str, float]] = None
    ) -> "PositionTracker":
        """Build a tracker from a full trade history and optional live prices."""
        tracker = cls()
        tracker.apply_fills(history)
        if prices:
            tracker.update_prices(prices)
        return tracker

    def apply_fills(self, fills: Iterable[TradeHistoryEntry]) -> None:
        """
        Apply fills in chronological order.

        Histories usually arrive newest first; they are sorted ascending by
        timestamp (stable, so same-timestamp fills keep their given order).
        """
        valid, skipped = filter_valid(fills or [], history_problem, 'portfolio')
        self.skipped_records += skipped

        for fill in sorted(valid, key=lambda f: f.timestamp):
            self._apply(fill)

    def apply_fill(self, fill: TradeHistoryEntry) -> Optional[Position]:
        """
        Apply a single fill.

        Args:
            fill: Trade history entry

        Returns:
            The updated position, or None if the fill was malformed
        """
        valid, skipped = filter_valid(
            [fill], history_problem, 'portfolio', getattr(fill, 'market', None)
        )
        self.skipped_records += skipped
        if not valid:
            return None
        return self._apply(fill)

    def _apply(self, fill: TradeHistoryEntry) -> Position:
        position = self._positions.get(fill.market)
        if position is None:
            position = Position(market=fill.market)
            self._positions[fill.market] = position

        position.total_trades += 1
        position.total_volume += fill.notional
        position.fees_paid += fill.fee
        position.updated_at = fill.timestamp

        if fill.quantity == 0:
            return position

        signed_qty = fill.quantity * fill.side.sign
        current_qty = position.base_quantity

        if current_qty == 0 or (current_qty > 0) == (signed_qty > 0):
            self._increase(position, fill.price, signed_qty)
        else:
            self._reduce(position, fill.price, signed_qty)

        if position.current_price is not None:
            position.update_price(position.current_price)

        logger.debug(
            f"Fill {fill.id} {fill.side.value} {fill.quantity} @ {fill.price} -> "
            f"{position.market} qty={position.base_quantity} avg={position.average_entry_price:.4f}"
        )

        return position

    @staticmethod
    def _increase(position: Position, price: float, signed_qty: float) -> None:
        """Extend exposure and move the weighted average entry price."""
        old_qty = abs(position.base_quantity)
        add_qty = abs(signed_qty)
        position.average_entry_price = (
            position.average_entry_price * old_qty + price * add_qty
        ) / (old_qty + add_qty)
        position.base_quantity += signed_qty

    @staticmethod
    def _reduce(position: Position, price: float, signed_qty: float) -> None:
        """Realize P&L on the closed part; flip into the remainder if any."""
        direction = 1 if position.base_quantity > 0 else -1
        open_qty = abs(position.base_quantity)
        fill_qty = abs(signed_qty)
        closed_qty = min(open_qty, fill_qty)

        position.realized_pnl += (price - position.average_entry_price) * closed_qty * direction

        remainder = fill_qty - closed_qty
        if remainder > 0:
            position.base_quantity = -direction * remainder
            position.average_entry_price = price
            logger.debug(f"Position {position.market} flipped to {position.side.value} @ {price}")
        else:
            position.base_quantity = direction * (open_qty - closed_qty)

    def update_price(self, market: str, price: float) -> Optional[Position]:
        """Mark one market to a new live price."""
        position = self._positions.get(market)
        if position is None:
            return None
        position.update_price(price)
        return position

    def update_prices(self, prices: Mapping[str, float]) -> None:
        """Mark several markets at once; unknown markets are ignored."""
        for market, price in prices.items():
            self.update_price(market, price)

    def get(self, market: str) -> Optional[Position]:
        return self._positions.get(market)

    def positions(self) -> List[Position]:
        """All positions (including flat ones with realized P&L), by market."""
        return [self._positions[m] for m in sorted(self._positions)]

    def open_positions(self) -> List[Position]:
        return [p for p in self.positions() if p.is_open]
