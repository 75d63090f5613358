"""
Input validation for feed records.

Records that violate the feed contract (high < low, negative quantity,
non-finite numbers) are dropped before any aggregation. Each filter call
logs a single warning with the number of records skipped.
"""

from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from ..utils.logger import get_analytics_logger
from ..utils.math_utils import is_finite

_diagnostics = get_analytics_logger(__name__)

T = TypeVar("T")


def candle_problem(candle: Any) -> Optional[str]:
    """Reason a candle is malformed, or None."""
    if not is_finite(candle.open, candle.high, candle.low, candle.close, candle.volume):
        return "non-finite OHLCV value"
    if candle.high < candle.low:
        return f"high {candle.high} below low {candle.low}"
    if candle.volume < 0:
        return f"negative volume {candle.volume}"
    return None


def trade_problem(trade: Any) -> Optional[str]:
    """Reason a trade is malformed, or None."""
    if not is_finite(trade.price, trade.quantity):
        return "non-finite price or quantity"
    if trade.price < 0:
        return f"negative price {trade.price}"
    if trade.quantity < 0:
        return f"negative quantity {trade.quantity}"
    return None


def level_problem(level: Any) -> Optional[str]:
    """Reason an order book level is malformed, or None."""
    if not is_finite(level.price, level.quantity):
        return "non-finite price or quantity"
    if level.price < 0:
        return f"negative price {level.price}"
    if level.quantity < 0:
        return f"negative quantity {level.quantity}"
    return None


def history_problem(entry: Any) -> Optional[str]:
    """Reason a trade history entry is malformed, or None."""
    if not is_finite(entry.price, entry.quantity, entry.fee, entry.realized_pnl):
        return "non-finite price, quantity, fee or realized pnl"
    if entry.price < 0:
        return f"negative price {entry.price}"
    if entry.quantity < 0:
        return f"negative quantity {entry.quantity}"
    return None


def filter_valid(
    records: Iterable[T],
    checker: Callable[[T], Optional[str]],
    component: str,
    market: Optional[str] = None
) -> Tuple[List[T], int]:
    """
    Split records into the valid ones and a skip count.

    Args:
        records: Records to check
        checker: Returns a reason string for a malformed record
        component: Name used in the diagnostic log line
        market: Optional market for log context

    Returns:
        (valid records in original order, number skipped)
    """
    valid: List[T] = []
    skipped = 0
    first_reason = None

    for record in records:
        try:
            reason = checker(record)
        except (AttributeError, TypeError) as e:
            reason = f"unreadable record: {e}"

        if reason is None:
            valid.append(record)
        else:
            skipped += 1
            if first_reason is None:
                first_reason = reason

    if skipped:
        _diagnostics.malformed_input(component, skipped, first_reason, market=market)

    return valid, skipped
