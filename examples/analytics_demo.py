"""
Market Analytics Demo

Demonstrates how to:
1. Load configuration and set up logging
2. Bootstrap a MarketAnalyticsService from a feed
3. React to live trades, candles and order books
4. Track positions and export portfolio metrics
"""

import asyncio
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from market_analytics.analytics import (
    Candle,
    Trade,
    OrderBookLevel,
    OrderBookSnapshot,
    MarketAnalyticsService,
    utc_now,
)
from market_analytics.config import get_config
from market_analytics.feed import InMemoryFeed
from market_analytics.portfolio import (
    TradeHistoryEntry,
    PositionTracker,
    calculate_portfolio_metrics,
    export_trade_history_csv,
    export_portfolio_json,
)
from market_analytics.utils import configure_logging

MARKET = 'BTC/USDT'


def seed_feed(feed: InMemoryFeed) -> None:
    """Load an hour of synthetic history into the feed."""
    start = utc_now().replace(second=0, microsecond=0) - timedelta(minutes=60)
    candles = []
    price = 65000.0
    for i in range(60):
        drift = 25.0 if i % 5 else -40.0
        close = price + drift
        candles.append(Candle(
            time=start + timedelta(minutes=i),
            open=price,
            high=max(price, close) + 15,
            low=min(price, close) - 15,
            close=close,
            volume=2.0 + (i % 7),
        ))
        price = close
    feed.seed_candles(MARKET, '1m', candles)

    now = utc_now()
    feed.seed_trades(MARKET, [
        Trade(
            id=f"seed-{i}",
            price=price + (i % 4) * 5,
            quantity=0.05 * (1 + i % 3),
            side='buy' if i % 3 else 'sell',
            timestamp=now - timedelta(seconds=15 * i),
        )
        for i in range(30)
    ])

    feed.seed_order_book(MARKET, OrderBookSnapshot(
        bids=[OrderBookLevel(price - 5 * i, 0.2 + 0.1 * i) for i in range(1, 16)],
        asks=[OrderBookLevel(price + 5 * i, 0.15 + 0.12 * i) for i in range(1, 16)],
    ))


def print_snapshot(snapshot) -> None:
    print(f"\n[{snapshot.timestamp:%H:%M:%S}] {snapshot.market}")
    if snapshot.depth:
        depth = snapshot.depth
        print(f"  Depth:  bid {depth.best_bid.price:.2f} / ask {depth.best_ask.price:.2f} "
              f"spread {depth.spread:.2f} ({depth.spread_percent:.4f}%)")
    if snapshot.order_flow:
        flow = snapshot.order_flow
        print(f"  Flow:   {flow.window.value} net {flow.net_flow:+.2f} ratio {flow.flow_ratio:+.2f}% "
              f"({flow.dominant_side})")
    if snapshot.volume_profile:
        profile = snapshot.volume_profile
        print(f"  Profile: POC {profile.poc.price_center:.2f} "
              f"VA {profile.value_area.low:.2f}-{profile.value_area.high:.2f}")
    rsi = snapshot.indicators.get('rsi')
    if rsi is not None:
        print(f"  RSI:    {rsi:.1f}")


async def demo_service(config):
    """Demo 1: Live analytics over an in-memory feed."""
    print("\n" + "=" * 80)
    print("DEMO 1: Market Analytics Service")
    print("=" * 80)

    feed = InMemoryFeed()
    seed_feed(feed)

    service = MarketAnalyticsService(MARKET, feed, config)
    print_snapshot(await service.bootstrap())

    dispose = service.on_update(print_snapshot)
    service.start()

    last_price = service.candles()[-1].close
    feed.publish_trade(MARKET, Trade(
        id='live-1', price=last_price + 10, quantity=1.5, side='buy', timestamp=utc_now()
    ))

    service.set_flow_window('1m')
    feed.publish_trade(MARKET, Trade(
        id='live-2', price=last_price - 10, quantity=0.4, side='sell', timestamp=utc_now()
    ))

    dispose()
    service.stop()
    print(f"\nService stats: {service.get_statistics()}")


def demo_portfolio(config):
    """Demo 2: Positions, metrics and export."""
    print("\n" + "=" * 80)
    print("DEMO 2: Portfolio Metrics")
    print("=" * 80)

    start = utc_now() - timedelta(hours=2)
    history = [
        TradeHistoryEntry('1', MARKET, 'buy', 64000, 0.5, start, fee=3.2),
        TradeHistoryEntry('2', MARKET, 'buy', 65000, 0.5, start + timedelta(minutes=20), fee=3.25),
        TradeHistoryEntry('3', MARKET, 'sell', 66000, 0.4, start + timedelta(minutes=50), fee=2.64, realized_pnl=600),
        TradeHistoryEntry('4', 'ETH/USDT', 'buy', 3200, 2, start + timedelta(minutes=60), fee=0.64),
        TradeHistoryEntry('5', 'ETH/USDT', 'sell', 3100, 1, start + timedelta(minutes=90), fee=0.31, realized_pnl=-100),
    ]

    tracker = PositionTracker.from_history(history, prices={MARKET: 65500, 'ETH/USDT': 3150})
    for position in tracker.open_positions():
        print(f"  {position.market}: {position.side.value} {position.base_quantity:.4f} "
              f"@ {position.average_entry_price:.2f} "
              f"realized {position.realized_pnl:+.2f} unrealized {position.unrealized_pnl:+.2f}")

    capital_base = config.portfolio.capital_base or 50000.0
    metrics = calculate_portfolio_metrics(history, tracker.positions(), capital_base=capital_base)
    print(f"\n  Win rate: {metrics.win_rate:.1f}%  ROI: {metrics.roi:.2f}%  "
          f"Net P&L: {metrics.net_pnl:+.2f}")

    out_dir = Path(tempfile.mkdtemp(prefix='analytics-demo-'))
    export_trade_history_csv(history, str(out_dir / 'trades.csv'))
    export_portfolio_json(tracker.positions(), history, metrics, str(out_dir / 'portfolio.json'))
    print(f"\n  Exported to {out_dir}")


async def main():
    config = get_config()
    configure_logging(config.system)

    await demo_service(config)
    demo_portfolio(config)


if __name__ == "__main__":
    asyncio.run(main())
