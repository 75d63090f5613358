"""
Unit tests for calculate_portfolio_metrics.

Tests:
- Win/loss aggregates and win rate
- ROI against an explicit capital base
- Empty history and malformed entries
"""

import pytest

from market_analytics.portfolio.metrics import calculate_portfolio_metrics
from market_analytics.portfolio.models import Position


@pytest.fixture
def history(make_fill):
    return [
        make_fill("buy", 1, 100, minutes=0, fee=0.1),
        make_fill("sell", 1, 120, minutes=1, fee=0.1, realized_pnl=20),
        make_fill("buy", 2, 50, minutes=2, fee=0.2),
        make_fill("sell", 2, 45, minutes=3, fee=0.2, realized_pnl=-10),
        make_fill("sell", 1, 130, minutes=4, fee=0.1, realized_pnl=40),
    ]


def test_aggregates(history):
    metrics = calculate_portfolio_metrics(history)

    assert metrics.total_trades == 5
    assert metrics.winning_trades == 2
    assert metrics.losing_trades == 1
    assert metrics.win_rate == pytest.approx(40.0)
    assert metrics.total_realized_pnl == pytest.approx(50.0)
    assert metrics.average_profit_per_trade == pytest.approx(30.0)
    assert metrics.average_loss_per_trade == pytest.approx(-10.0)
    assert metrics.largest_win == pytest.approx(40.0)
    assert metrics.largest_loss == pytest.approx(-10.0)
    assert metrics.total_volume == pytest.approx(100 + 120 + 100 + 90 + 130)
    assert metrics.total_fees_paid == pytest.approx(0.7)


def test_roi_uses_capital_base(history):
    metrics = calculate_portfolio_metrics(history, capital_base=1000)

    assert metrics.roi == pytest.approx(5.0)
    assert metrics.capital_base == 1000


@pytest.mark.parametrize("capital_base", [None, 0, -100])
def test_roi_without_capital_base_is_zero(history, capital_base):
    assert calculate_portfolio_metrics(history, capital_base=capital_base).roi == 0.0


def test_unrealized_from_positions(history):
    position = Position(market="BTC/USDT", base_quantity=1, average_entry_price=100)
    position.update_price(125)

    metrics = calculate_portfolio_metrics(history, positions=[position])

    assert metrics.total_unrealized_pnl == pytest.approx(25.0)
    assert metrics.total_pnl == pytest.approx(75.0)
    assert metrics.net_pnl == pytest.approx(75.0 - 0.7)


def test_empty_history():
    metrics = calculate_portfolio_metrics([])

    assert metrics.total_trades == 0
    assert metrics.win_rate == 0.0
    assert metrics.roi == 0.0
    assert metrics.average_profit_per_trade == 0.0


def test_win_rate_bounds(make_fill):
    all_wins = [make_fill("sell", 1, 100, realized_pnl=5) for _ in range(3)]

    assert calculate_portfolio_metrics(all_wins).win_rate == pytest.approx(100.0)


def test_malformed_entries_skipped(history, make_fill):
    history.append(make_fill("buy", -1, 100))

    metrics = calculate_portfolio_metrics(history)

    assert metrics.total_trades == 5
    assert metrics.skipped_entries == 1


def test_to_dict(history):
    data = calculate_portfolio_metrics(history, capital_base=500).to_dict()

    assert data["roi"] == pytest.approx(10.0)
    assert data["total_pnl"] == pytest.approx(50.0)
