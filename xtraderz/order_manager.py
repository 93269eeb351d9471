"""HTTP routes for submitting and cancelling orders and querying executions."""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Iterable

from aiohttp import web

from .models import Execution, Order, OrderStatus, OrderType, Side


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(text=message)


async def _json_object(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise _bad_request(f"Request body deserialize error: {exc}") from exc
    if not isinstance(body, dict):
        raise _bad_request("Request body deserialize error: expected an object")
    return body


def _string_field(body: dict[str, Any], name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str):
        raise _bad_request(f"Request body deserialize error: invalid field `{name}`")
    return value


def _unsigned_field(body: dict[str, Any], name: str) -> int:
    value = body.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _bad_request(f"Request body deserialize error: invalid field `{name}`")
    return value


def _enum_field(body: dict[str, Any], name: str, enum_type: type) -> Any:
    try:
        return enum_type(body.get(name))
    except ValueError as exc:
        raise _bad_request(
            f"Request body deserialize error: invalid field `{name}`"
        ) from exc


def routes(order_queue: asyncio.Queue, exec_store: Iterable[Execution]) -> list[web.RouteDef]:
    """Routes that feed ``order_queue`` and read executions from ``exec_store``."""

    async def post_order(request: web.Request) -> web.Response:
        body = await _json_object(request)
        quantity = _unsigned_field(body, "quantity")
        order = Order(
            order_id=str(uuid.uuid4()),
            symbol=_string_field(body, "symbol"),
            price=_unsigned_field(body, "price"),
            quantity=quantity,
            side=_enum_field(body, "side", Side),
            order_type=_enum_field(body, "order_type", OrderType),
            status=OrderStatus.NEW,
            filled_quantity=0,
            remain_quantity=quantity,
        )
        await order_queue.put(order)
        return web.json_response(order.to_dict(), status=201)

    async def cancel_order(request: web.Request) -> web.Response:
        body = await _json_object(request)
        order = Order(
            order_id=_string_field(body, "order_id"),
            symbol="",
            price=0,
            quantity=0,
            side=Side.BUY,
            order_type=OrderType.LIMIT,
            status=OrderStatus.CANCELLED,
            filled_quantity=0,
            remain_quantity=0,
        )
        await order_queue.put(order)
        return web.json_response(order.to_dict(), status=200)

    async def get_executions(request: web.Request) -> web.Response:
        symbol = request.query.get("symbol")
        order_id = request.query.get("order_id")
        matching = [
            execution.to_dict()
            for execution in list(exec_store)
            if (symbol is None or execution.symbol == symbol)
            and (order_id is None or execution.order_id == order_id)
        ]
        return web.json_response(matching)

    return [
        web.post("/v1/order", post_order),
        web.post("/v1/order/cancel", cancel_order),
        web.get("/v1/execution", get_executions),
    ]