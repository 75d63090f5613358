"""Trade history and portfolio export helpers.

This module provides:
- trade_history_frame: trade history as a pandas DataFrame, newest first.
- export_trade_history_csv: CSV writer with the ledger column layout.
- export_portfolio_json: positions, history and metrics as one JSON document.
"""

import json
import logging
import os
from typing import Any, Dict, Iterable, Optional, Sequence

import pandas as pd

from .models import PortfolioMetrics, Position, TradeHistoryEntry
from ..analytics.models import utc_now

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Date", "Market", "Side", "Price", "Quantity", "Fee", "Realized P&L"]

# Decimal places per numeric column in the CSV export
CSV_PRECISION = {"Price": 2, "Quantity": 6, "Fee": 4, "Realized P&L": 2}


def trade_history_frame(history: Iterable[TradeHistoryEntry]) -> pd.DataFrame:
    """Build a DataFrame with one row per fill, newest first."""
    rows = [
        {
            "Date": entry.timestamp.isoformat(),
            "Market": entry.market,
            "Side": entry.side.value,
            "Price": entry.price,
            "Quantity": entry.quantity,
            "Fee": entry.fee,
            "Realized P&L": entry.realized_pnl,
            "_ts": entry.timestamp,
        }
        for entry in history or []
    ]

    if not rows:
        return pd.DataFrame(columns=CSV_COLUMNS)

    df = pd.DataFrame(rows)
    df = df.sort_values("_ts", ascending=False, kind="mergesort").drop(columns="_ts")
    return df.reset_index(drop=True)[CSV_COLUMNS]


def export_trade_history_csv(
    history: Iterable[TradeHistoryEntry],
    file_path: str,
    *,
    create_dirs: bool = True
) -> str:
    """
    Write the trade history to CSV.

    An empty history still produces a file with the header row.

    Args:
        history: Trade history entries
        file_path: Destination CSV path
        create_dirs: Create parent directories if missing

    Returns:
        The path written
    """
    df = trade_history_frame(history)
    if not df.empty:
        df = df.round(CSV_PRECISION)

    parent = os.path.dirname(os.path.abspath(file_path))
    if create_dirs and parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    df.to_csv(file_path, index=False)
    logger.info(f"Exported {len(df)} trades to {file_path}")
    return file_path


def portfolio_document(
    positions: Sequence[Position],
    history: Sequence[TradeHistoryEntry],
    metrics: Optional[PortfolioMetrics]
) -> Dict[str, Any]:
    return {
        "positions": [p.to_dict() for p in positions],
        "trade_history": [e.to_dict() for e in history],
        "metrics": metrics.to_dict() if metrics else None,
        "exported_at": utc_now().isoformat(),
    }


def export_portfolio_json(
    positions: Sequence[Position],
    history: Sequence[TradeHistoryEntry],
    metrics: Optional[PortfolioMetrics],
    file_path: Optional[str] = None
) -> str:
    """
    Serialize the portfolio as indented JSON.

    Args:
        positions: Positions to include
        history: Trade history entries
        metrics: Aggregate metrics (may be None)
        file_path: If given, the document is also written there

    Returns:
        JSON string
    """
    content = json.dumps(portfolio_document(positions, history, metrics), indent=2)

    if file_path:
        parent = os.path.dirname(os.path.abspath(file_path))
        if parent and not os.path.exists(parent):
            os.makedirs(parent, exist_ok=True)
        with open(file_path, "w") as f:
            f.write(content)
        logger.info(f"Exported portfolio with {len(positions)} positions to {file_path}")

    return content
