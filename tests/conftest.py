"""Shared fixtures for the analytics test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from market_analytics.analytics.models import Candle, Trade, OrderBookSnapshot, OrderBookLevel
from market_analytics.feed import InMemoryFeed
from market_analytics.portfolio.models import TradeHistoryEntry


MARKET = "BTC/USDT"


@pytest.fixture
def now():
    """Fixed reference time for windowed calculations."""
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_candle(now):
    """Factory for candles spaced one minute apart, ending at `now`."""
    def _make(index=0, open=None, high=100.0, low=100.0, close=100.0, volume=1.0, is_closed=True):
        return Candle(
            time=now + timedelta(minutes=index),
            open=close if open is None else open,
            high=high,
            low=low,
            close=close,
            volume=volume,
            is_closed=is_closed,
        )
    return _make


@pytest.fixture
def make_trade(now):
    """Factory for trades `seconds_ago` before `now`."""
    counter = {"n": 0}

    def _make(price, quantity, side="buy", seconds_ago=10):
        counter["n"] += 1
        return Trade(
            id=f"t{counter['n']}",
            price=price,
            quantity=quantity,
            side=side,
            timestamp=now - timedelta(seconds=seconds_ago),
            market=MARKET,
        )
    return _make


@pytest.fixture
def make_fill(now):
    """Factory for trade history entries `minutes` after `now`."""
    counter = {"n": 0}

    def _make(side, quantity, price, minutes=0, fee=0.0, realized_pnl=0.0, market=MARKET):
        counter["n"] += 1
        return TradeHistoryEntry(
            id=f"f{counter['n']}",
            market=market,
            side=side,
            price=price,
            quantity=quantity,
            timestamp=now + timedelta(minutes=minutes),
            fee=fee,
            realized_pnl=realized_pnl,
        )
    return _make


@pytest.fixture
def sample_book():
    """Small two-sided book, deliberately delivered out of order."""
    return OrderBookSnapshot(
        bids=[OrderBookLevel(99.0, 2.0), OrderBookLevel(100.0, 1.0), OrderBookLevel(98.0, 4.0)],
        asks=[OrderBookLevel(102.0, 3.0), OrderBookLevel(101.0, 1.0)],
    )


@pytest.fixture
def feed():
    return InMemoryFeed()
