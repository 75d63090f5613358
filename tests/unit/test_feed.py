"""
Unit tests for the InMemoryFeed.

Tests:
- Pull requests and limits
- Subscription delivery and disposers
- Subscriber error isolation
"""

import pytest

from market_analytics.analytics.models import OrderBookSnapshot
from market_analytics.feed import FeedError, FeedConnectionError, MarketFeed


MARKET = "BTC/USDT"


def test_feed_implements_contract(feed):
    assert isinstance(feed, MarketFeed)
    assert issubclass(FeedConnectionError, FeedError)


@pytest.mark.asyncio
async def test_get_candles_respects_limit(feed, make_candle):
    feed.seed_candles(MARKET, "1m", [make_candle(i) for i in range(10)])

    candles = await feed.get_candles(MARKET, "1m", limit=3)

    assert [c.time for c in candles] == [make_candle(i).time for i in range(7, 10)]
    assert await feed.get_candles(MARKET, "5m") == []


@pytest.mark.asyncio
async def test_get_recent_trades_newest_first(feed, make_trade):
    feed.seed_trades(MARKET, [make_trade(100, 1, seconds_ago=s) for s in (30, 10, 20)])

    trades = await feed.get_recent_trades(MARKET, limit=2)

    assert [t.timestamp for t in trades] == sorted((t.timestamp for t in trades), reverse=True)
    assert len(trades) == 2


@pytest.mark.asyncio
async def test_get_order_book_depth(feed, sample_book):
    feed.seed_order_book(MARKET, sample_book)

    book = await feed.get_order_book(MARKET, depth=1)
    missing = await feed.get_order_book("ETH/USDT")

    assert len(book.bids) == 1
    assert len(book.asks) == 1
    assert missing.is_empty


def test_subscribe_and_dispose(feed, make_trade):
    received = []
    dispose = feed.subscribe_trades(MARKET, received.append)

    feed.publish_trade(MARKET, make_trade(100, 1))
    dispose()
    dispose()
    feed.publish_trade(MARKET, make_trade(101, 1))

    assert len(received) == 1
    assert feed.subscriber_count("trades", MARKET) == 0


def test_candle_publish_replaces_same_time(feed, make_candle):
    received = []
    feed.subscribe_candles(MARKET, "1m", received.append)

    feed.publish_candle(MARKET, "1m", make_candle(0, close=100, is_closed=False))
    feed.publish_candle(MARKET, "1m", make_candle(0, close=101, high=101, is_closed=True))

    assert len(received) == 2
    assert len(feed._candles[(MARKET, "1m")]) == 1
    assert feed._candles[(MARKET, "1m")][0].close == 101


def test_failing_subscriber_does_not_block_others(feed, caplog):
    received = []

    def broken(book):
        raise RuntimeError("boom")

    feed.subscribe_order_book(MARKET, broken)
    feed.subscribe_order_book(MARKET, received.append)

    with caplog.at_level("ERROR"):
        feed.publish_order_book(MARKET, OrderBookSnapshot())

    assert len(received) == 1
    assert any("broken" in record.getMessage() for record in caplog.records)
