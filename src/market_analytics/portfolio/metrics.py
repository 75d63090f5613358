"""
Portfolio Metrics Calculator - aggregate performance from trade history.

Calculates:
1. Win/loss counts and win rate
2. Average profit / loss, largest win / loss
3. Volume, fees, realized and unrealized P&L
4. ROI against an explicit capital base
"""

import logging
from typing import Iterable, Optional

from .models import PortfolioMetrics, Position, TradeHistoryEntry
from ..analytics.validation import filter_valid, history_problem
from ..utils.math_utils import StatisticalUtils, fsum

logger = logging.getLogger(__name__)


def calculate_portfolio_metrics(
    history: Iterable[TradeHistoryEntry],
    positions: Iterable[Position] = (),
    capital_base: Optional[float] = None
) -> PortfolioMetrics:
    """
    Calculate aggregate portfolio metrics.

    ROI = total realized P&L / capital_base x 100. Without a positive
    capital base ROI is reported as 0.

    Args:
        history: Trade history entries (any order)
        positions: Open positions supplying unrealized P&L
        capital_base: Deposited capital used as the ROI denominator

    Returns:
        PortfolioMetrics (all zeros for an empty history)
    """
    entries, skipped = filter_valid(history or [], history_problem, 'portfolio_metrics')
    unrealized = fsum(p.unrealized_pnl for p in positions or ())

    if not entries:
        return PortfolioMetrics(
            total_unrealized_pnl=unrealized,
            capital_base=capital_base,
            skipped_entries=skipped,
        )

    profits = [e.realized_pnl for e in entries if e.realized_pnl > 0]
    losses = [abs(e.realized_pnl) for e in entries if e.realized_pnl < 0]

    total_realized = fsum(e.realized_pnl for e in entries)
    total_trades = len(entries)

    roi = 0.0
    if capital_base is not None and capital_base > 0:
        roi = StatisticalUtils.percentage(total_realized, capital_base)
    elif capital_base is not None:
        logger.warning(f"Ignoring non-positive capital base {capital_base}; ROI reported as 0")

    metrics = PortfolioMetrics(
        total_trades=total_trades,
        winning_trades=len(profits),
        losing_trades=len(losses),
        total_realized_pnl=total_realized,
        total_unrealized_pnl=unrealized,
        average_profit_per_trade=StatisticalUtils.mean(profits),
        average_loss_per_trade=-StatisticalUtils.mean(losses),
        largest_win=max(profits) if profits else 0.0,
        largest_loss=-max(losses) if losses else 0.0,
        win_rate=StatisticalUtils.percentage(len(profits), total_trades),
        total_volume=fsum(e.notional for e in entries),
        total_fees_paid=fsum(e.fee for e in entries),
        roi=roi,
        capital_base=capital_base,
        skipped_entries=skipped,
    )

    logger.debug(
        f"Portfolio metrics: trades={total_trades} win_rate={metrics.win_rate:.1f}% "
        f"realized={total_realized:.2f} roi={roi:.2f}%"
    )

    return metrics
