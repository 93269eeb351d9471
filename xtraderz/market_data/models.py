"""Market data records: order-book snapshots, trades, candles and statistics."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Iterator, TypeVar

from ..models import _format_time

T = TypeVar("T")


class MarketDataType(Enum):
    ORDER_BOOK = "OrderBook"
    EXECUTION = "Execution"
    CANDLESTICK = "Candlestick"
    STATISTICS = "Statistics"


@dataclass
class PriceLevel:
    """Aggregated volume resting at one price."""

    price: int
    volume: int
    order_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"price": self.price, "volume": self.volume, "order_count": self.order_count}


@dataclass
class OrderBookData:
    """Order-book snapshot: bids highest first, asks lowest first."""

    symbol: str
    timestamp: datetime
    bids: list[PriceLevel] = field(default_factory=list)
    asks: list[PriceLevel] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timestamp": _format_time(self.timestamp),
            "bids": [level.to_dict() for level in self.bids],
            "asks": [level.to_dict() for level in self.asks],
        }


@dataclass
class ExecutionData:
    """A trade as published to market data consumers."""

    symbol: str
    timestamp: datetime
    price: int
    volume: int
    side: str
    is_market_maker: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timestamp": _format_time(self.timestamp),
            "price": self.price,
            "volume": self.volume,
            "side": self.side,
            "is_market_maker": self.is_market_maker,
        }


class CandleInterval(Enum):
    MINUTE_1 = "1m"
    MINUTE_5 = "5m"
    MINUTE_15 = "15m"
    MINUTE_30 = "30m"
    HOUR_1 = "1h"
    HOUR_4 = "4h"
    DAY_1 = "1d"
    WEEK_1 = "1w"

    def to_seconds(self) -> int:
        """Length of the interval in seconds."""
        return _INTERVAL_SECONDS[self]

    @classmethod
    def from_string(cls, s: str) -> CandleInterval | None:
        """Parse a label such as ``"1m"``; None if it names no interval."""
        try:
            return cls(s)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


_INTERVAL_SECONDS = {
    CandleInterval.MINUTE_1: 60,
    CandleInterval.MINUTE_5: 300,
    CandleInterval.MINUTE_15: 900,
    CandleInterval.MINUTE_30: 1800,
    CandleInterval.HOUR_1: 3600,
    CandleInterval.HOUR_4: 14400,
    CandleInterval.DAY_1: 86400,
    CandleInterval.WEEK_1: 604800,
}


@dataclass
class Candle:
    """Open, high, low, close and volume over one interval."""

    symbol: str
    open_time: datetime
    close_time: datetime
    interval: CandleInterval
    open: int
    high: int
    low: int
    close: int
    volume: int
    trade_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "open_time": _format_time(self.open_time),
            "close_time": _format_time(self.close_time),
            "interval": self.interval.value,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "trade_count": self.trade_count,
        }


@dataclass
class MarketStatistics:
    """Rolling 24-hour statistics for one symbol."""

    symbol: str
    timestamp: datetime
    open_price_24h: int = 0
    high_price_24h: int = 0
    low_price_24h: int = 0
    last_price: int = 0
    volume_24h: int = 0
    price_change_24h: float = 0.0
    bid_price: int = 0
    ask_price: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timestamp": _format_time(self.timestamp),
            "open_price_24h": self.open_price_24h,
            "high_price_24h": self.high_price_24h,
            "low_price_24h": self.low_price_24h,
            "last_price": self.last_price,
            "volume_24h": self.volume_24h,
            "price_change_24h": self.price_change_24h,
            "bid_price": self.bid_price,
            "ask_price": self.ask_price,
        }


class CircularBuffer(Generic[T]):
    """Bounded FIFO that drops its oldest item when full."""

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._items: deque[T] = deque()

    def push(self, value: T) -> None:
        if len(self._items) == self._capacity and self._items:
            self._items.popleft()
        self._items.append(value)

    def get_all(self) -> list[T]:
        """Every stored item, oldest first."""
        return list(self._items)

    def get_recent(self, count: int) -> list[T]:
        """The newest ``count`` items, oldest first."""
        if count >= len(self._items):
            return list(self._items)
        start = len(self._items) - count
        return [item for index, item in enumerate(self._items) if index >= start]

    def capacity(self) -> int:
        return self._capacity

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))