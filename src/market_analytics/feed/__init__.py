"""
Market feed interface consumed by the analytics engine.

Components:
- MarketFeed: abstract pull/push contract
- InMemoryFeed: in-process implementation for tests and replays
"""

from .base import (
    MarketFeed,
    FeedError,
    FeedConnectionError,
    FeedAuthenticationError,
    Disposer,
)
from .memory import InMemoryFeed

__all__ = [
    'MarketFeed',
    'FeedError',
    'FeedConnectionError',
    'FeedAuthenticationError',
    'Disposer',
    'InMemoryFeed',
]
