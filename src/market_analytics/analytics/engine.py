"""
Analytics Service - per-market coordinator for the analytics calculations.

Subscribes to a market feed, keeps capped candle and trade buffers,
recomputes depth / order flow / volume profile on every update and
publishes an AnalyticsSnapshot to registered listeners.
"""

import asyncio
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Optional, Sequence, Union

from .depth import DepthAggregator, DepthView
from .indicators import bollinger_bands, closes, ema, macd, rsi, sma, vwap
from .models import Candle, FlowWindow, OrderBookSnapshot, Trade, ensure_utc, utc_now
from .order_flow import OrderFlowAnalyzer, OrderFlowView
from .validation import candle_problem
from .volume_profile import VolumeProfileBuilder, VolumeProfileView
from ..config.settings import AnalyticsConfig
from ..utils.logger import get_analytics_logger

if TYPE_CHECKING:
    from ..feed.base import Disposer, MarketFeed

logger = logging.getLogger(__name__)

SnapshotHandler = Callable[["AnalyticsSnapshot"], None]


@dataclass
class AnalyticsSnapshot:
    """Snapshot of all analytics for a market at a point in time."""
    market: str
    timestamp: datetime

    depth: Optional[DepthView] = None
    order_flow: Optional[OrderFlowView] = None
    volume_profile: Optional[VolumeProfileView] = None

    # Latest indicator values over the candle buffer (None until warmed up)
    indicators: Dict[str, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market": self.market,
            "timestamp": self.timestamp.isoformat(),
            "depth": self.depth.to_dict() if self.depth else None,
            "order_flow": self.order_flow.to_dict() if self.order_flow else None,
            "volume_profile": self.volume_profile.to_dict() if self.volume_profile else None,
            "indicators": dict(self.indicators),
        }


def _last(values) -> Optional[float]:
    if len(values) == 0:
        return None
    value = float(values[-1])
    return None if math.isnan(value) else value


class MarketAnalyticsService:
    """
    Analytics coordinator for one market.

    Responsibilities:
    1. Pull initial history from the feed (bootstrap)
    2. Subscribe to candle, trade and order book pushes
    3. Maintain capped ring buffers
    4. Recompute analytics and notify listeners on every accepted update

    Buffers:
        trades  - newest first, oldest evicted past max_trades
        candles - oldest first, oldest evicted past max_candles

    Usage:
        service = MarketAnalyticsService('BTC/USDT', feed)
        await service.bootstrap()
        dispose = service.on_update(render)
        service.start()
        ...
        service.stop()
    """

    def __init__(
        self,
        market: str,
        feed: "MarketFeed",
        config: Optional[AnalyticsConfig] = None,
        timeframe: str = "1m"
    ):
        """
        Initialize the service.

        Args:
            market: Market symbol (e.g., 'BTC/USDT')
            feed: Market feed implementation
            config: Analytics configuration (defaults if None)
            timeframe: Candle timeframe to track
        """
        self.market = market
        self.feed = feed
        self.config = config or AnalyticsConfig()
        self.timeframe = timeframe

        self._candles: Deque[Candle] = deque(maxlen=self.config.buffers.max_candles)
        self._trades: Deque[Trade] = deque(maxlen=self.config.buffers.max_trades)
        self._order_book = OrderBookSnapshot()
        self._lock = threading.Lock()

        self.flow_window = FlowWindow.parse(self.config.order_flow.default_window)

        self.depth_aggregator = DepthAggregator(max_levels=self.config.depth.max_levels)
        self.order_flow_analyzer = OrderFlowAnalyzer(
            price_bucket_size=self.config.order_flow.price_bucket_size
        )
        self.volume_profile_builder = VolumeProfileBuilder(
            bucket_count=self.config.volume_profile.bucket_count,
            value_area_pct=self.config.volume_profile.value_area_pct,
        )

        self._listeners: List[SnapshotHandler] = []
        self._disposers: List["Disposer"] = []
        self._diagnostics = get_analytics_logger(__name__)

        # Runtime state
        self.running = False
        self.latest: Optional[AnalyticsSnapshot] = None

        # Statistics
        self.events_processed = 0
        self.events_ignored = 0
        self.snapshots_published = 0
        self.last_update_time: Optional[datetime] = None

        logger.info(f"MarketAnalyticsService initialized for {market} ({timeframe})")

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def bootstrap(self) -> AnalyticsSnapshot:
        """
        Load initial candles, trades and order book concurrently.

        A failed request is logged and treated as no data; the other two
        still populate their buffers.

        Returns:
            Snapshot computed over the loaded data
        """
        buffers = self.config.buffers
        with self._diagnostics.performance.timer('bootstrap', market=self.market):
            results = await asyncio.gather(
                self.feed.get_candles(self.market, self.timeframe, limit=buffers.max_candles),
                self.feed.get_recent_trades(self.market, limit=buffers.max_trades),
                self.feed.get_order_book(self.market, depth=self.config.depth.max_levels or 20),
                return_exceptions=True,
            )

        candles, trades, book = (
            self._unwrap(operation, result)
            for operation, result in zip(("get_candles", "get_recent_trades", "get_order_book"), results)
        )

        with self._lock:
            self._candles.clear()
            for candle in candles or []:
                self._upsert_candle(candle)

            self._trades.clear()
            self._trades.extend(list(trades or [])[:self._trades.maxlen])

            self._order_book = book if book is not None else OrderBookSnapshot()

        logger.info(
            f"Bootstrapped {self.market}: {len(self._candles)} candles, "
            f"{len(self._trades)} trades"
        )

        return self._publish()

    def _unwrap(self, operation: str, result):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            self._diagnostics.feed_failure(operation, self.market, result)
            return None
        return result

    def start(self) -> None:
        """Subscribe to live feed updates."""
        if self.running:
            logger.warning(f"MarketAnalyticsService for {self.market} already running")
            return

        self._disposers = [
            self.feed.subscribe_candles(self.market, self.timeframe, self._on_candle),
            self.feed.subscribe_trades(self.market, self._on_trade),
            self.feed.subscribe_order_book(self.market, self._on_order_book),
        ]
        self.running = True
        logger.info(f"MarketAnalyticsService started for {self.market}")

    def stop(self) -> None:
        """Dispose all feed subscriptions."""
        if not self.running:
            return

        for dispose in self._disposers:
            dispose()
        self._disposers = []
        self.running = False
        logger.info(f"MarketAnalyticsService stopped for {self.market}")

    # ========================================================================
    # Listeners
    # ========================================================================

    def on_update(self, handler: SnapshotHandler) -> Callable[[], None]:
        """
        Register a listener for published snapshots.

        Returns:
            Disposer removing the listener (safe to call twice)
        """
        self._listeners.append(handler)

        def dispose() -> None:
            if handler in self._listeners:
                self._listeners.remove(handler)

        return dispose

    def set_flow_window(self, window: Union[FlowWindow, str]) -> None:
        """Change the window used for published order flow."""
        self.flow_window = FlowWindow.parse(window)
        logger.debug(f"{self.market} order flow window set to {self.flow_window.value}")

    # ========================================================================
    # Feed handlers
    # ========================================================================

    def _on_candle(self, candle: Candle) -> None:
        with self._lock:
            accepted = self._upsert_candle(candle)
            if accepted:
                self.events_processed += 1
            else:
                self.events_ignored += 1

        if accepted:
            self._publish()

    def _on_trade(self, trade: Trade) -> None:
        with self._lock:
            self._trades.appendleft(trade)
            self.events_processed += 1

        self._publish()

    def _on_order_book(self, book: OrderBookSnapshot) -> None:
        with self._lock:
            self._order_book = book
            self.events_processed += 1

        self._publish()

    def _upsert_candle(self, candle: Candle) -> bool:
        """
        Merge a candle into the buffer. Caller holds the lock.

        Returns:
            True if the buffer changed
        """
        if self._candles:
            last = self._candles[-1]
            if candle.time == last.time:
                if last.is_closed:
                    logger.debug(f"Ignoring update to closed candle {candle.time.isoformat()}")
                    return False
                self._candles[-1] = candle
                return True
            if candle.time < last.time:
                logger.debug(f"Ignoring out-of-order candle {candle.time.isoformat()}")
                return False

        self._candles.append(candle)
        return True

    # ========================================================================
    # Computation
    # ========================================================================

    def candles(self) -> List[Candle]:
        with self._lock:
            return list(self._candles)

    def trades(self) -> List[Trade]:
        with self._lock:
            return list(self._trades)

    def order_book(self) -> OrderBookSnapshot:
        with self._lock:
            book = self._order_book
            return OrderBookSnapshot(list(book.bids), list(book.asks), book.timestamp)

    def snapshot(
        self,
        window: Optional[Union[FlowWindow, str]] = None,
        now: Optional[datetime] = None
    ) -> AnalyticsSnapshot:
        """
        Compute all analytics over copies of the current buffers.

        Args:
            window: Order flow window for this call only (default: flow_window)
            now: Reference time for the flow window (default: current UTC time)

        Returns:
            AnalyticsSnapshot; each section is None when it has no data
        """
        with self._lock:
            candles = list(self._candles)
            trades = list(self._trades)
            bids = list(self._order_book.bids)
            asks = list(self._order_book.asks)

        window = FlowWindow.parse(window) if window is not None else self.flow_window
        now = ensure_utc(now) if now is not None else utc_now()

        start_time = time.perf_counter()

        snapshot = AnalyticsSnapshot(
            market=self.market,
            timestamp=now,
            depth=self.depth_aggregator.aggregate(bids, asks, market=self.market),
            order_flow=self.order_flow_analyzer.analyze(trades, window, now=now, market=self.market),
            volume_profile=self.volume_profile_builder.build(candles, market=self.market),
            indicators=self._latest_indicators(candles),
        )

        self._diagnostics.recompute(
            'snapshot', self.market, time.perf_counter() - start_time,
            window=window.value
        )

        return snapshot

    def _latest_indicators(self, candles: Sequence[Candle]) -> Dict[str, Optional[float]]:
        """Most recent value of each configured indicator."""
        usable = []
        for candle in candles:
            try:
                if candle_problem(candle) is None:
                    usable.append(candle)
            except (AttributeError, TypeError):
                continue

        settings = self.config.indicators
        prices = closes(usable)
        macd_result = macd(prices, settings.macd_fast, settings.macd_slow, settings.macd_signal)
        bands = bollinger_bands(prices, settings.bollinger_period, settings.bollinger_std)

        return {
            "sma": _last(sma(prices, settings.sma_period)),
            "ema": _last(ema(prices, settings.ema_period)),
            "rsi": _last(rsi(prices, settings.rsi_period)),
            "macd": _last(macd_result.macd),
            "macd_signal": _last(macd_result.signal),
            "macd_histogram": _last(macd_result.histogram),
            "bollinger_upper": _last(bands.upper),
            "bollinger_middle": _last(bands.middle),
            "bollinger_lower": _last(bands.lower),
            "vwap": _last(vwap(usable)),
        }

    def _publish(self) -> AnalyticsSnapshot:
        """Recompute and deliver the snapshot to every listener."""
        snapshot = self.snapshot()
        with self._lock:
            self.latest = snapshot
            self.snapshots_published += 1
            self.last_update_time = snapshot.timestamp

        for handler in list(self._listeners):
            try:
                handler(snapshot)
            except Exception:
                logger.exception(
                    f"Error in analytics listener {getattr(handler, '__name__', handler)} for {self.market}"
                )

        return snapshot

    def get_statistics(self) -> Dict[str, Any]:
        """Get service statistics."""
        with self._lock:
            return {
                'market': self.market,
                'running': self.running,
                'events_processed': self.events_processed,
                'events_ignored': self.events_ignored,
                'snapshots_published': self.snapshots_published,
                'last_update_time': self.last_update_time,
                'buffered_candles': len(self._candles),
                'buffered_trades': len(self._trades),
                'skipped_records': (
                    self.depth_aggregator.skipped_records
                    + self.order_flow_analyzer.skipped_records
                    + self.volume_profile_builder.skipped_records
                ),
                'flow_window': self.flow_window.value,
            }
