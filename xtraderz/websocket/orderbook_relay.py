"""Relay order-book snapshots to WebSocket subscribers of each symbol."""

from __future__ import annotations

import asyncio
import dataclasses
import threading
from typing import Any

from aiohttp import WSMsgType, web

from ..models import OrderBook
from ..util.serializer import orderbook_to_dto, serialize
from .execution_push import _forward_to_socket

_CHANNEL_SIZE = 100
DEFAULT_BROADCAST_INTERVAL = 0.1


class OrderBookRelayManager:
    """Stores order books per symbol and the clients subscribed to each."""

    def __init__(self) -> None:
        self._connections: dict[str, list[asyncio.Queue]] = {}
        self._orderbooks: dict[str, OrderBook] = {}
        self._connections_lock = threading.Lock()
        self._orderbooks_lock = threading.Lock()

    def update_orderbook(self, symbol: str, orderbook: OrderBook) -> None:
        with self._orderbooks_lock:
            self._orderbooks[symbol] = orderbook

    def create_snapshot(self, symbol: str) -> dict[str, Any] | None:
        """The aggregated book for ``symbol`` as a JSON-ready dict; None if unknown."""
        with self._orderbooks_lock:
            orderbook = self._orderbooks.get(symbol)
            if orderbook is None:
                return None
            return dataclasses.asdict(orderbook_to_dto(orderbook, symbol))

    def add_connection(self, symbol: str, queue: asyncio.Queue) -> None:
        with self._connections_lock:
            self._connections.setdefault(symbol, []).append(queue)

    def remove_connection(self, symbol: str, queue: asyncio.Queue) -> None:
        """Unsubscribe a client's queue; unknown queues are ignored."""
        with self._connections_lock:
            subscribers = self._connections.get(symbol, [])
            for index, existing in enumerate(subscribers):
                if existing is queue:
                    del subscribers[index]
                    break

    def _subscribers(self, symbol: str) -> list[asyncio.Queue]:
        with self._connections_lock:
            return list(self._connections.get(symbol, []))

    def _subscribed_symbols(self) -> list[str]:
        with self._connections_lock:
            return list(self._connections)

    async def broadcast_orderbook(self, symbol: str) -> None:
        """Send the current snapshot of ``symbol`` to its subscribers."""
        snapshot = self.create_snapshot(symbol)
        if snapshot is None:
            return
        text = serialize({"type": "orderbook", "data": snapshot})
        for queue in self._subscribers(symbol):
            await queue.put(text)


def ws_orderbook_route(manager: OrderBookRelayManager) -> web.RouteDef:
    """The ``/ws/orderbook/{symbol}`` route serving ``manager``'s snapshots."""

    async def handler(request: web.Request) -> web.WebSocketResponse:
        return await handle_orderbook_connection(request, manager)

    return web.get("/ws/orderbook/{symbol}", handler)


async def handle_orderbook_connection(
    request: web.Request, manager: OrderBookRelayManager
) -> web.WebSocketResponse:
    """Upgrade, send an initial snapshot, then relay updates until the client leaves."""
    symbol = request.match_info["symbol"]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    queue: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)
    sender = asyncio.create_task(_forward_to_socket(queue, ws))
    manager.add_connection(symbol, queue)
    try:
        snapshot = manager.create_snapshot(symbol)
        if snapshot is not None:
            await queue.put(serialize({"type": "orderbook_snapshot", "data": snapshot}))
        async for message in ws:
            if message.type in (WSMsgType.ERROR, WSMsgType.CLOSE):
                break
    finally:
        manager.remove_connection(symbol, queue)
        sender.cancel()
    return ws


async def run_orderbook_broadcaster(
    manager: OrderBookRelayManager, interval: float = DEFAULT_BROADCAST_INTERVAL
) -> None:
    """Every ``interval`` seconds, broadcast each subscribed symbol's book. Runs until cancelled."""
    while True:
        for symbol in manager._subscribed_symbols():
            await manager.broadcast_orderbook(symbol)
        await asyncio.sleep(interval)