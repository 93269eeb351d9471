"""Wire representations of orders, executions and order books, plus JSON helpers."""

from __future__ import annotations

import dataclasses
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..models import Execution, Order, OrderBook


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class PriceLevelDto:
    price: int
    volume: int
    order_count: int


@dataclass
class OrderBookDto:
    symbol: str
    timestamp: int
    bids: list[PriceLevelDto] = field(default_factory=list)
    asks: list[PriceLevelDto] = field(default_factory=list)


@dataclass
class OrderDto:
    order_id: str
    symbol: str
    price: int
    quantity: int
    side: str
    order_type: str
    status: str
    filled_quantity: int
    remain_quantity: int
    entry_time: str


@dataclass
class ExecutionDto:
    exec_id: str
    order_id: str
    symbol: str
    side: str
    price: int
    quantity: int
    fee: float
    transaction_time: str


def orderbook_to_dto(orderbook: OrderBook, symbol: str) -> OrderBookDto:
    """Aggregate an order book into price levels, best prices first."""
    bids = [
        PriceLevelDto(price, level.total_volume, len(level.orders))
        for price, level in orderbook.buy_book.limits.items()
    ]
    asks = [
        PriceLevelDto(price, level.total_volume, len(level.orders))
        for price, level in orderbook.sell_book.limits.items()
    ]
    bids.sort(key=lambda level: level.price, reverse=True)
    asks.sort(key=lambda level: level.price)
    return OrderBookDto(symbol=symbol, timestamp=_now_millis(), bids=bids, asks=asks)


def order_to_dto(order: Order) -> OrderDto:
    return OrderDto(
        order_id=order.order_id,
        symbol=order.symbol,
        price=order.price,
        quantity=order.quantity,
        side=order.side.value,
        order_type=order.order_type.value,
        status=order.status.value,
        filled_quantity=order.filled_quantity,
        remain_quantity=order.remain_quantity,
        entry_time=_rfc3339(order.entry_time),
    )


def execution_to_dto(execution: Execution) -> ExecutionDto:
    return ExecutionDto(
        exec_id=execution.exec_id,
        order_id=execution.order_id,
        symbol=execution.symbol,
        side=execution.side.value,
        price=execution.price,
        quantity=execution.quantity,
        fee=execution.fee,
        transaction_time=_rfc3339(execution.transaction_time),
    )


def _to_json_value(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _rfc3339(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> str:
    """Encode a value, including dataclasses, enums and datetimes, as compact JSON."""
    return json.dumps(value, default=_to_json_value, separators=(",", ":"), ensure_ascii=False)


def deserialize(text: str | bytes) -> Any:
    """Decode JSON text; raises ValueError when it is malformed."""
    return json.loads(text)


def _side_delta(old: list[PriceLevelDto], new: list[PriceLevelDto]) -> dict[str, Any]:
    remaining = {level.price: level for level in old}
    added: list[dict[str, Any]] = []
    updated: list[dict[str, Any]] = []
    for level in new:
        previous = remaining.pop(level.price, None)
        if previous is None:
            added.append(dataclasses.asdict(level))
        elif previous.volume != level.volume:
            updated.append(dataclasses.asdict(level))
    return {"added": added, "updated": updated, "removed": list(remaining)}


def calculate_orderbook_delta(old_book: OrderBookDto, new_book: OrderBookDto) -> dict[str, Any]:
    """Describe the levels added, changed in volume and removed between two snapshots."""
    return {
        "type": "orderbook_delta",
        "symbol": new_book.symbol,
        "timestamp": new_book.timestamp,
        "bids": _side_delta(old_book.bids, new_book.bids),
        "asks": _side_delta(old_book.asks, new_book.asks),
    }


def create_websocket_message(message_type: str, data: Any) -> str:
    """Wrap an object payload in a typed, timestamped envelope.

    Raises ValueError if ``data`` does not encode as a JSON object.
    """
    payload = deserialize(serialize(data))
    if not isinstance(payload, dict):
        raise ValueError("Expected object value")
    return serialize({"type": message_type, "timestamp": _now_millis(), "data": payload})