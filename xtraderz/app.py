"""HTTP and WebSocket server wiring the order pipeline to market data."""

from __future__ import annotations

import argparse
import asyncio
import copy
from typing import AsyncIterator

from aiohttp import web

from . import order_manager, sequencer
from .market_data.publisher import MarketDataPublisher
from .models import OrderBook
from .websocket.execution_push import ExecutionPushManager, ws_execution_route

_CHANNEL_SIZE = 100
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3030

PUSH_MANAGER = web.AppKey("push_manager", ExecutionPushManager)
PUBLISHER = web.AppKey("publisher", MarketDataPublisher)
ORDER_QUEUE = web.AppKey("order_queue", asyncio.Queue)


async def distribute_executions(
    exec_queue: asyncio.Queue,
    push_manager: ExecutionPushManager,
    publisher: MarketDataPublisher,
    orderbook_store: OrderBook,
) -> None:
    """Hand each execution to WebSocket clients and the market data publisher.

    Stops when a None item arrives.
    """
    while (execution := await exec_queue.get()) is not None:
        print(
            f"Execution: symbol = {execution.symbol}, "
            f"price = {execution.price}, quantity = {execution.quantity}"
        )
        await push_manager.broadcast_execution(execution)
        publisher.update_orderbook(execution.symbol, copy.deepcopy(orderbook_store))
        publisher.process_execution(execution)


@web.middleware
async def _cors(request: web.Request, handler) -> web.StreamResponse:
    """Allow any origin."""
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        if "Origin" in request.headers:
            exc.headers["Access-Control-Allow-Origin"] = "*"
        raise
    if "Origin" in request.headers and not response.prepared:
        response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def create_app() -> web.Application:
    """Build the application with its order pipeline running in the background."""
    order_queue: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)
    exec_queue: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)
    push_manager = ExecutionPushManager()
    publisher = MarketDataPublisher()
    orderbook_store = OrderBook()

    app = web.Application(middlewares=[_cors])
    app[PUSH_MANAGER] = push_manager
    app[PUBLISHER] = publisher
    app[ORDER_QUEUE] = order_queue

    async def pipeline(_: web.Application) -> AsyncIterator[None]:
        tasks = [
            asyncio.create_task(sequencer.run(order_queue, exec_queue)),
            asyncio.create_task(
                distribute_executions(exec_queue, push_manager, publisher, orderbook_store)
            ),
        ]
        yield
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    app.cleanup_ctx.append(pipeline)
    app.add_routes(order_manager.routes(order_queue, []))
    app.add_routes([ws_execution_route(push_manager)])
    app.add_routes(publisher.routes())
    return app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Order matching engine server.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    print(f"Order matching engine starting on http://{args.host}:{args.port}")
    print("API endpoints:")
    print("  - Create/cancel orders: POST /v1/order, POST /v1/order/cancel")
    print(f"  - Executions WebSocket: ws://{args.host}:{args.port}/ws/executions")
    print("  - Market data API:")
    print("      GET /api/v1/orderbook/{symbol}")
    print("      GET /api/v1/executions/{symbol}")
    print("      GET /api/v1/statistics/{symbol}")
    print("      GET /api/v1/klines/{symbol}/{interval}")

    web.run_app(create_app(), host=args.host, port=args.port)
    return 0