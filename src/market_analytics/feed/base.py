"""
Market Feed - Abstract Base Class.

This module defines the interface the analytics engine consumes:
- MarketFeed: pull (request/response) and push (subscription) primitives
- FeedError: transport or auth failure raised by a feed implementation

Subscriptions return a disposer: a zero-argument callable that removes the
handler. Calling a disposer more than once is a no-op.
"""

from abc import ABC, abstractmethod
from typing import Callable, List

from ..analytics.models import Candle, OrderBookSnapshot, Trade


CandleHandler = Callable[[Candle], None]
TradeHandler = Callable[[Trade], None]
OrderBookHandler = Callable[[OrderBookSnapshot], None]
Disposer = Callable[[], None]


class FeedError(Exception):
    """Base exception for feed transport errors."""
    pass


class FeedConnectionError(FeedError):
    """Network-level failure reaching the feed."""
    pass


class FeedAuthenticationError(FeedError):
    """Feed rejected the credentials."""
    pass


class MarketFeed(ABC):
    """
    Abstract base class for market data feeds.

    Implementations deliver raw candles, trades and order books for a
    market. The analytics service treats any exception raised here as
    "no data".
    """

    @abstractmethod
    async def get_candles(self, market: str, timeframe: str, limit: int = 500) -> List[Candle]:
        """
        Get historical candles, oldest first.

        Args:
            market: Market symbol (e.g., 'BTC/USDT')
            timeframe: Candle timeframe (e.g., '1m', '1h')
            limit: Maximum candles to return

        Returns:
            List of candles

        Raises:
            FeedError: On transport failure
        """
        pass

    @abstractmethod
    async def get_recent_trades(self, market: str, limit: int = 50) -> List[Trade]:
        """
        Get recent trades, newest first.

        Args:
            market: Market symbol
            limit: Maximum trades to return

        Returns:
            List of trades

        Raises:
            FeedError: On transport failure
        """
        pass

    @abstractmethod
    async def get_order_book(self, market: str, depth: int = 20) -> OrderBookSnapshot:
        """
        Get the current order book.

        Args:
            market: Market symbol
            depth: Levels per side

        Returns:
            OrderBookSnapshot

        Raises:
            FeedError: On transport failure
        """
        pass

    @abstractmethod
    def subscribe_candles(self, market: str, timeframe: str, handler: CandleHandler) -> Disposer:
        """Push candle updates (including in-progress candles) to handler."""
        pass

    @abstractmethod
    def subscribe_trades(self, market: str, handler: TradeHandler) -> Disposer:
        """Push every new trade to handler."""
        pass

    @abstractmethod
    def subscribe_order_book(self, market: str, handler: OrderBookHandler) -> Disposer:
        """Push order book snapshots to handler."""
        pass
