import dataclasses
import time
from datetime import datetime, timezone

import pytest

from xtraderz.models import Execution, Order, OrderBook, OrderStatus, OrderType, Side
from xtraderz.util.serializer import (
    ExecutionDto,
    OrderBookDto,
    PriceLevelDto,
    calculate_orderbook_delta,
    create_websocket_message,
    deserialize,
    execution_to_dto,
    order_to_dto,
    orderbook_to_dto,
    serialize,
)

MOMENT = datetime(2025, 4, 30, 8, 15, 30, 250000, tzinfo=timezone.utc)


def _order(order_id, price, quantity, side):
    return Order(
        order_id=order_id,
        symbol="SYM",
        price=price,
        quantity=quantity,
        side=side,
        entry_time=MOMENT,
    )


def _execution():
    return Execution(
        exec_id="test_exec_1",
        order_id="test_order_1",
        symbol="BTC-KRW",
        side=Side.BUY,
        price=50000000,
        quantity=1,
        fee=0.05,
        transaction_time=MOMENT,
    )


def test_orderbook_to_dto_orders_levels():
    book = OrderBook()
    book.insert_order(_order("b1", 100, 5, Side.BUY))
    book.insert_order(_order("b2", 105, 3, Side.BUY))
    book.insert_order(_order("b3", 100, 2, Side.BUY))
    book.insert_order(_order("s1", 120, 4, Side.SELL))
    book.insert_order(_order("s2", 110, 1, Side.SELL))

    before = time.time_ns() // 1_000_000
    dto = orderbook_to_dto(book, "SYM")
    after = time.time_ns() // 1_000_000

    assert dto.symbol == "SYM"
    assert before <= dto.timestamp <= after
    assert [level.price for level in dto.bids] == [105, 100]
    assert [level.price for level in dto.asks] == [110, 120]
    hundred = dto.bids[1]
    assert hundred.volume == 5 + 2
    assert hundred.order_count == 2


def test_orderbook_to_dto_empty():
    dto = orderbook_to_dto(OrderBook(), "ETH-KRW")
    assert dto.bids == []
    assert dto.asks == []


def test_order_to_dto():
    order = _order("o1", 100, 10, Side.SELL)
    order.status = OrderStatus.PARTIALLY_FILLED
    order.order_type = OrderType.MARKET
    dto = order_to_dto(order)
    assert dto.side == "Sell"
    assert dto.status == "PartiallyFilled"
    assert dto.order_type == "Market"
    assert dto.remain_quantity == order.remain_quantity
    assert datetime.fromisoformat(dto.entry_time) == MOMENT


def test_execution_to_dto():
    execution = _execution()
    dto = execution_to_dto(execution)
    assert dto.order_id == "test_order_1"
    assert dto.symbol == "BTC-KRW"
    assert dto.side == "Buy"
    assert dto.fee == execution.fee
    assert datetime.fromisoformat(dto.transaction_time) == MOMENT


def test_serialize_round_trip_dataclass():
    dto = execution_to_dto(_execution())
    decoded = deserialize(serialize(dto))
    assert decoded == dataclasses.asdict(dto)
    assert ExecutionDto(**decoded) == dto


def test_serialize_model_uses_to_dict():
    order = _order("o7", 100, 3, Side.BUY)
    assert deserialize(serialize(order)) == order.to_dict()
    assert Order.from_dict(deserialize(serialize(order))) == order


def test_serialize_rejects_unknown_objects():
    with pytest.raises(TypeError):
        serialize(object())


def test_deserialize_invalid_json():
    with pytest.raises(ValueError):
        deserialize("{not json")


def test_orderbook_delta():
    old = OrderBookDto(
        symbol="SYM",
        timestamp=1,
        bids=[PriceLevelDto(100, 5, 1), PriceLevelDto(101, 3, 1)],
        asks=[PriceLevelDto(110, 2, 1)],
    )
    new = OrderBookDto(
        symbol="SYM",
        timestamp=2,
        bids=[PriceLevelDto(101, 4, 2), PriceLevelDto(102, 1, 1)],
        asks=[PriceLevelDto(110, 2, 1)],
    )
    delta = calculate_orderbook_delta(old, new)
    assert delta["type"] == "orderbook_delta"
    assert delta["timestamp"] == new.timestamp
    assert delta["bids"]["added"] == [dataclasses.asdict(new.bids[1])]
    assert delta["bids"]["updated"] == [dataclasses.asdict(new.bids[0])]
    assert delta["bids"]["removed"] == [old.bids[0].price]
    assert delta["asks"] == {"added": [], "updated": [], "removed": []}


def test_orderbook_delta_from_empty():
    empty = OrderBookDto("SYM", 1)
    full = OrderBookDto("SYM", 2, [PriceLevelDto(100, 5, 1)], [PriceLevelDto(120, 1, 1)])
    forward = calculate_orderbook_delta(empty, full)
    backward = calculate_orderbook_delta(full, empty)
    assert len(forward["bids"]["added"]) == len(full.bids)
    assert backward["asks"]["removed"] == [full.asks[0].price]
    assert backward["bids"]["added"] == []


def test_create_websocket_message():
    dto = execution_to_dto(_execution())
    before = time.time_ns() // 1_000_000
    message = deserialize(create_websocket_message("execution", dto))
    after = time.time_ns() // 1_000_000
    assert message["type"] == "execution"
    assert message["data"] == dataclasses.asdict(dto)
    assert before <= message["timestamp"] <= after


@pytest.mark.parametrize("payload", [[1, 2], "text", 5, None])
def test_create_websocket_message_requires_object(payload):
    with pytest.raises(ValueError):
        create_websocket_message("execution", payload)