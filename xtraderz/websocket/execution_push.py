"""Push executions to WebSocket subscribers as they happen."""

from __future__ import annotations

import asyncio
import sys
import threading

from aiohttp import WSMsgType, web

from ..models import Execution
from ..util import serializer

_CHANNEL_SIZE = 100


async def _forward_to_socket(queue: asyncio.Queue, ws: web.WebSocketResponse) -> None:
    """Send every text message put on ``queue`` down the socket."""
    try:
        while True:
            text = await queue.get()
            await ws.send_str(text)
    except (ConnectionResetError, RuntimeError) as exc:
        print(f"WebSocket send error: {exc}", file=sys.stderr)


class ExecutionPushManager:
    """Keeps the outgoing queues of connected clients and fans executions out to them."""

    def __init__(self) -> None:
        self._connections: list[asyncio.Queue] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def add_connection(self, queue: asyncio.Queue) -> None:
        with self._lock:
            self._connections.append(queue)

    def remove_connection(self, queue: asyncio.Queue) -> None:
        """Forget a client's queue; unknown queues are ignored."""
        with self._lock:
            for index, existing in enumerate(self._connections):
                if existing is queue:
                    del self._connections[index]
                    break

    async def broadcast_execution(self, execution: Execution) -> None:
        """Send an execution, as JSON, to every connected client."""
        with self._lock:
            connections = list(self._connections)
        text = serializer.serialize(serializer.execution_to_dto(execution))
        for queue in connections:
            await queue.put(text)


def ws_execution_route(manager: ExecutionPushManager) -> web.RouteDef:
    """The ``/ws/executions`` route serving ``manager``'s stream."""

    async def handler(request: web.Request) -> web.WebSocketResponse:
        return await handle_execution_connection(request, manager)

    return web.get("/ws/executions", handler)


async def handle_execution_connection(
    request: web.Request, manager: ExecutionPushManager
) -> web.WebSocketResponse:
    """Upgrade the request and stream executions until the client goes away."""
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    queue: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)
    sender = asyncio.create_task(_forward_to_socket(queue, ws))
    manager.add_connection(queue)
    try:
        async for message in ws:
            if message.type == WSMsgType.ERROR:
                break
    finally:
        manager.remove_connection(queue)
        sender.cancel()
    return ws


async def run_execution_broadcaster(
    exec_queue: asyncio.Queue, manager: ExecutionPushManager
) -> None:
    """Broadcast executions from ``exec_queue`` until a None item arrives."""
    while (execution := await exec_queue.get()) is not None:
        await manager.broadcast_execution(execution)