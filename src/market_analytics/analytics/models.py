"""
Market data models consumed by the analytics engine.

Value objects delivered by the feed:
- Candle: OHLCV bar (the last bar of a series may still be open)
- Trade: a single executed trade
- OrderBookLevel / OrderBookSnapshot: raw depth
- FlowWindow: the enumerated order-flow lookback windows
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeSide(str, Enum):
    """Aggressor side of a trade or fill."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Union[str, "TradeSide"]) -> "TradeSide":
        """Accept 'Buy', 'SELL', 'buy' or a TradeSide."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(getattr(value, "value", value)).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown trade side: {value!r}") from None

    @property
    def sign(self) -> int:
        return 1 if self is TradeSide.BUY else -1


class FlowWindow(str, Enum):
    """Lookback windows supported by the order flow analyzer."""
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"

    @property
    def seconds(self) -> int:
        return _WINDOW_SECONDS[self]

    @property
    def delta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    @classmethod
    def parse(cls, value: Union[str, "FlowWindow"]) -> "FlowWindow":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(getattr(value, "value", value)).strip().lower())
        except ValueError:
            valid = ", ".join(w.value for w in cls)
            raise ValueError(f"Unknown flow window {value!r}, expected one of: {valid}") from None


_WINDOW_SECONDS = {
    FlowWindow.ONE_MINUTE: 60,
    FlowWindow.FIVE_MINUTES: 300,
    FlowWindow.FIFTEEN_MINUTES: 900,
    FlowWindow.ONE_HOUR: 3600,
}


@dataclass
class Candle:
    """
    OHLCV candle.

    Within a series `time` strictly increases. The last candle may be
    replaced while `is_closed` is False; closed candles are immutable.
    """
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    is_closed: bool = True

    def __post_init__(self):
        self.time = ensure_utc(self.time)

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3

    @property
    def price_range(self) -> float:
        return self.high - self.low

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "is_closed": self.is_closed,
        }


@dataclass(frozen=True)
class Trade:
    """A single executed trade. Immutable once created."""
    id: str
    price: float
    quantity: float
    side: TradeSide
    timestamp: datetime
    market: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "side", TradeSide.parse(self.side))
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    @property
    def notional(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "market": self.market,
            "price": self.price,
            "quantity": self.quantity,
            "side": self.side.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class OrderBookLevel:
    """Raw price level as delivered by the feed."""
    price: float
    quantity: float


LevelInput = Union[OrderBookLevel, Tuple[float, float], Sequence[float]]


def as_level(value: LevelInput) -> OrderBookLevel:
    """Coerce an OrderBookLevel or a (price, quantity) pair."""
    if isinstance(value, OrderBookLevel):
        return value
    price, quantity = value[0], value[1]
    return OrderBookLevel(price=float(price), quantity=float(quantity))


@dataclass
class OrderBookSnapshot:
    """Bids and asks for one market at one instant."""
    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks
