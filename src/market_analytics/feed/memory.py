"""
In-memory market feed.

Holds seeded history per market and delivers pushed updates synchronously
to subscribers. Used for tests, demos and replaying recorded data.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Tuple

from .base import (
    CandleHandler,
    Disposer,
    MarketFeed,
    OrderBookHandler,
    TradeHandler,
)
from ..analytics.models import Candle, OrderBookSnapshot, Trade

logger = logging.getLogger(__name__)


class InMemoryFeed(MarketFeed):
    """
    Feed backed by in-process data.

    Usage:
        feed = InMemoryFeed()
        feed.seed_candles('BTC/USDT', '1m', candles)

        dispose = feed.subscribe_trades('BTC/USDT', on_trade)
        feed.publish_trade('BTC/USDT', trade)
        dispose()
    """

    def __init__(self):
        """Initialize the feed with empty stores."""
        self._candles: Dict[Tuple[str, str], List[Candle]] = defaultdict(list)
        self._trades: Dict[str, List[Trade]] = defaultdict(list)
        self._books: Dict[str, OrderBookSnapshot] = {}

        # Subscribers: {topic: [handler1, handler2, ...]}
        self._subscribers: Dict[Tuple, List[Callable]] = defaultdict(list)

    # ========================================================================
    # Seeding
    # ========================================================================

    def seed_candles(self, market: str, timeframe: str, candles: List[Candle]) -> None:
        self._candles[(market, timeframe)] = list(candles)

    def seed_trades(self, market: str, trades: List[Trade]) -> None:
        """Seed trades; stored newest first."""
        self._trades[market] = sorted(trades, key=lambda t: t.timestamp, reverse=True)

    def seed_order_book(self, market: str, book: OrderBookSnapshot) -> None:
        self._books[market] = book

    # ========================================================================
    # Pull
    # ========================================================================

    async def get_candles(self, market: str, timeframe: str, limit: int = 500) -> List[Candle]:
        candles = self._candles.get((market, timeframe), [])
        return list(candles[-limit:]) if limit else []

    async def get_recent_trades(self, market: str, limit: int = 50) -> List[Trade]:
        return list(self._trades.get(market, [])[:limit])

    async def get_order_book(self, market: str, depth: int = 20) -> OrderBookSnapshot:
        book = self._books.get(market)
        if book is None:
            return OrderBookSnapshot()
        return OrderBookSnapshot(
            bids=list(book.bids[:depth]),
            asks=list(book.asks[:depth]),
            timestamp=book.timestamp,
        )

    # ========================================================================
    # Push
    # ========================================================================

    def subscribe_candles(self, market: str, timeframe: str, handler: CandleHandler) -> Disposer:
        return self._subscribe(('candles', market, timeframe), handler)

    def subscribe_trades(self, market: str, handler: TradeHandler) -> Disposer:
        return self._subscribe(('trades', market), handler)

    def subscribe_order_book(self, market: str, handler: OrderBookHandler) -> Disposer:
        return self._subscribe(('order_book', market), handler)

    def publish_candle(self, market: str, timeframe: str, candle: Candle) -> None:
        """Record a candle update and deliver it to subscribers."""
        series = self._candles[(market, timeframe)]
        if series and series[-1].time == candle.time:
            series[-1] = candle
        else:
            series.append(candle)
        self._dispatch(('candles', market, timeframe), candle)

    def publish_trade(self, market: str, trade: Trade) -> None:
        """Record a trade and deliver it to subscribers."""
        self._trades[market].insert(0, trade)
        self._dispatch(('trades', market), trade)

    def publish_order_book(self, market: str, book: OrderBookSnapshot) -> None:
        """Record an order book snapshot and deliver it to subscribers."""
        self._books[market] = book
        self._dispatch(('order_book', market), book)

    def subscriber_count(self, *topic) -> int:
        return len(self._subscribers.get(tuple(topic), []))

    def _subscribe(self, topic: Tuple, handler: Callable) -> Disposer:
        self._subscribers[topic].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {topic}")

        def dispose() -> None:
            handlers = self._subscribers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug(f"Unsubscribed {getattr(handler, '__name__', handler)} from {topic}")

        return dispose

    def _dispatch(self, topic: Tuple, payload) -> None:
        """Call every subscriber; one failing handler does not stop the others."""
        for handler in list(self._subscribers.get(topic, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Error in subscriber {getattr(handler, '__name__', handler)} for {topic}")
