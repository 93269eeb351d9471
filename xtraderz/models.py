"""Core order, execution and order-book types."""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_FRACTION = re.compile(r"^(?P<head>.*T\d{2}:\d{2}:\d{2})(?P<frac>\.\d+)?(?P<tail>.*)$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(moment: datetime) -> str:
    """Render a timestamp as RFC 3339 in UTC with a trailing ``Z``."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, accepting ``Z`` and any fraction length."""
    value = text.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    match = _FRACTION.match(value)
    if match and match.group("frac"):
        digits = match.group("frac")[1:7].ljust(6, "0")
        value = f"{match.group('head')}.{digits}{match.group('tail')}"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Side(Enum):
    BUY = "Buy"
    SELL = "Sell"

    def compare(self, a: int, b: int) -> int:
        """Order two prices: buys rank the higher price first, sells the lower."""
        if self is Side.BUY:
            a, b = b, a
        return (a > b) - (a < b)


class OrderType(Enum):
    LIMIT = "Limit"
    MARKET = "Market"


class OrderStatus(Enum):
    NEW = "New"
    PARTIALLY_FILLED = "PartiallyFilled"
    FILLED = "Filled"
    CANCELLED = "Cancelled"


@dataclass
class Order:
    order_id: str
    symbol: str
    price: int
    quantity: int
    side: Side
    order_type: OrderType = OrderType.LIMIT
    status: OrderStatus = OrderStatus.NEW
    filled_quantity: int = 0
    remain_quantity: int | None = None
    entry_time: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.remain_quantity is None:
            self.remain_quantity = self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "symbol": self.symbol,
            "price": self.price,
            "quantity": self.quantity,
            "side": self.side.value,
            "order_type": self.order_type.value,
            "status": self.status.value,
            "filled_quantity": self.filled_quantity,
            "remain_quantity": self.remain_quantity,
            "entry_time": _format_time(self.entry_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Order:
        return cls(
            order_id=str(data["order_id"]),
            symbol=str(data["symbol"]),
            price=int(data["price"]),
            quantity=int(data["quantity"]),
            side=Side(data["side"]),
            order_type=OrderType(data["order_type"]),
            status=OrderStatus(data["status"]),
            filled_quantity=int(data["filled_quantity"]),
            remain_quantity=int(data["remain_quantity"]),
            entry_time=_parse_time(data["entry_time"]),
        )


@dataclass
class Execution:
    exec_id: str
    order_id: str
    symbol: str
    side: Side
    price: int
    quantity: int
    fee: float = 0.0
    transaction_time: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exec_id": self.exec_id,
            "order_id": self.order_id,
            "symbol": self.symbol,
            "side": self.side.value,
            "price": self.price,
            "quantity": self.quantity,
            "fee": self.fee,
            "transaction_time": _format_time(self.transaction_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Execution:
        return cls(
            exec_id=str(data["exec_id"]),
            order_id=str(data["order_id"]),
            symbol=str(data["symbol"]),
            side=Side(data["side"]),
            price=int(data["price"]),
            quantity=int(data["quantity"]),
            fee=float(data["fee"]),
            transaction_time=_parse_time(data["transaction_time"]),
        )


@dataclass(frozen=True)
class OrderReference:
    price: int
    position: int


@dataclass
class PriceLevel:
    """All resting orders at one price, in time priority."""

    price: int
    total_volume: int = 0
    orders: deque[Order] = field(default_factory=deque)

    def add_order(self, order: Order) -> int:
        """Queue an order and return its position in the level."""
        self.total_volume += order.remain_quantity
        position = len(self.orders)
        self.orders.append(order)
        return position

    def match_order(self, qty: int) -> tuple[Order, int] | None:
        """Fill up to ``qty`` against the oldest order.

        Returns a snapshot of the matched order and the quantity filled, or
        None when the level is empty.  A fully filled order leaves the level.
        """
        if not self.orders:
            return None
        front = self.orders[0]
        matched = min(front.remain_quantity, qty)
        front.remain_quantity -= matched
        front.filled_quantity += matched
        self.total_volume -= matched
        if front.remain_quantity == 0:
            front.status = OrderStatus.FILLED
            return self.orders.popleft(), matched
        front.status = OrderStatus.PARTIALLY_FILLED
        return replace(front), matched

    def cancel_order_at_position(self, position: int) -> Order | None:
        """Remove the order at ``position``; None if there is none."""
        if not 0 <= position < len(self.orders):
            return None
        order = self.orders[position]
        del self.orders[position]
        self.total_volume -= order.remain_quantity
        return order

    def is_empty(self) -> bool:
        return not self.orders


@dataclass
class Book:
    """One side of an order book: price levels keyed by price."""

    side: Side
    limits: dict[int, PriceLevel] = field(default_factory=dict)
    best_level: int | None = None

    def add_order(self, order: Order) -> OrderReference:
        price = order.price
        level = self.limits.get(price)
        if level is None:
            level = self.limits[price] = PriceLevel(price)
        position = level.add_order(order)
        if self.best_level is None or self.side.compare(price, self.best_level) < 0:
            self.best_level = price
        return OrderReference(price, position)

    def best_price_level(self) -> PriceLevel | None:
        if self.best_level is None:
            return None
        return self.limits.get(self.best_level)

    def update_best_level(self) -> None:
        if not self.limits:
            self.best_level = None
        elif self.side is Side.BUY:
            self.best_level = max(self.limits)
        else:
            self.best_level = min(self.limits)

    def levels_for_matching(self, price_point: int) -> list[int]:
        """Prices that an incoming order at ``price_point`` may trade against, best first."""
        if self.side is Side.BUY:
            prices = sorted(self.limits, reverse=True)
            return [p for p in prices if p >= price_point]
        prices = sorted(self.limits)
        return [p for p in prices if p <= price_point]


@dataclass
class OrderBook:
    buy_book: Book = field(default_factory=lambda: Book(Side.BUY))
    sell_book: Book = field(default_factory=lambda: Book(Side.SELL))
    order_map: dict[str, OrderReference] = field(default_factory=dict)

    def insert_order(self, order: Order) -> None:
        book = self.buy_book if order.side is Side.BUY else self.sell_book
        self.order_map[order.order_id] = book.add_order(replace(order))

    def cancel_order(self, order_id: str) -> Order | None:
        """Remove a resting order by id; None if it is unknown."""
        reference = self.order_map.pop(order_id, None)
        if reference is None:
            return None
        book = self._book_for_price(reference.price)
        if book is None:
            return None
        level = book.limits.get(reference.price)
        if level is None:
            return None
        cancelled = level.cancel_order_at_position(reference.position)
        if level.is_empty():
            del book.limits[reference.price]
            book.update_best_level()
        return cancelled

    def _book_for_price(self, price: int) -> Book | None:
        if price in self.buy_book.limits:
            return self.buy_book
        if price in self.sell_book.limits:
            return self.sell_book
        return None