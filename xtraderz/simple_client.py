"""Example client: places a crossing buy and sell, then reads back the market data."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass, field
from typing import Any

import aiohttp

DEFAULT_SERVER = "http://127.0.0.1:3030"
DEFAULT_WS = "ws://127.0.0.1:3030"
SYMBOL = "BTC-KRW"
ORDER_PRICE = 50_000_000

_PAUSE_AFTER_BUY = 1.0
_PAUSE_FOR_MATCHING = 3.0
_PAUSE_BEFORE_EXIT = 3.0


def format_number(num: int) -> str:
    """Render a non-negative integer with a comma between each group of three digits."""
    if num < 0:
        raise ValueError(f"expected a non-negative number, got {num}")
    return f"{num:,}"


def _u64(value: Any) -> int:
    """The value as an unsigned integer, or 0 when it is not one."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def _is_success(response: aiohttp.ClientResponse) -> bool:
    return 200 <= response.status < 300


@dataclass
class ClientReport:
    """What one client session saw."""

    orderbook: dict[str, Any] | None = None
    buy_order_id: str = ""
    sell_order_id: str = ""
    executions: list[dict[str, Any]] = field(default_factory=list)
    statistics: dict[str, Any] | None = None
    candles: list[dict[str, Any]] = field(default_factory=list)
    pushed: list[dict[str, Any]] = field(default_factory=list)


async def _read_executions(ws: aiohttp.ClientWebSocketResponse, pushed: list) -> None:
    async for message in ws:
        if message.type == aiohttp.WSMsgType.TEXT:
            try:
                payload = json.loads(message.data)
            except ValueError as exc:
                print(f"Execution JSON parse error: {exc}", file=sys.stderr)
                continue
            pushed.append(payload)
            print(
                f"Execution: {payload.get('symbol')} - price: "
                f"{format_number(_u64(payload.get('price')))}, "
                f"quantity: {payload.get('quantity')}"
            )
        elif message.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
            break
        elif message.type == aiohttp.WSMsgType.ERROR:
            print(f"Execution stream error: {ws.exception()}", file=sys.stderr)
            break


def _print_levels(title: str, levels: Any, key: str) -> None:
    print(title)
    if not isinstance(levels, list):
        return
    for rank, level in enumerate(levels[:5], start=1):
        print(
            f"  #{rank}: price {format_number(_u64(level.get('price')))}, "
            f"volume {level.get('volume')}"
        )


async def _submit(
    session: aiohttp.ClientSession, server_base: str, order: dict[str, Any], label: str
) -> str:
    async with session.post(f"{server_base}/v1/order", json=order) as response:
        if not _is_success(response):
            print(f"{label} order failed: {response.status}", file=sys.stderr)
            return ""
        created = await response.json()
    order_id = created.get("order_id")
    order_id = order_id if isinstance(order_id, str) else ""
    print(f"{label} order created: ID = {order_id}")
    return order_id


async def run_client(server_base: str, ws_base: str) -> ClientReport:
    """Run the example session against a server and report what came back."""
    report = ClientReport()
    print("Order matching engine client")
    print("----------------------------")

    async with aiohttp.ClientSession() as session:
        ws = await session.ws_connect(f"{ws_base}/ws/executions")
        print("Connected to the execution stream")
        reader = asyncio.create_task(_read_executions(ws, report.pushed))
        try:
            async with session.get(f"{server_base}/api/v1/orderbook/{SYMBOL}") as response:
                if _is_success(response):
                    report.orderbook = await response.json()
                    print(f"\nCurrent {SYMBOL} order book:")
                    _print_levels("Asks:", report.orderbook.get("asks"), "asks")
                    _print_levels("Bids:", report.orderbook.get("bids"), "bids")
                else:
                    print(f"Order book request failed: {response.status}")

            print("\nSubmitting buy order...")
            report.buy_order_id = await _submit(
                session,
                server_base,
                {
                    "symbol": SYMBOL,
                    "side": "Buy",
                    "price": ORDER_PRICE,
                    "order_type": "Limit",
                    "quantity": 1,
                },
                "Buy",
            )

            await asyncio.sleep(_PAUSE_AFTER_BUY)

            print("\nSubmitting sell order...")
            report.sell_order_id = await _submit(
                session,
                server_base,
                {
                    "symbol": SYMBOL,
                    "side": "Sell",
                    "price": ORDER_PRICE,
                    "order_type": "Limit",
                    "quantity": 1,
                },
                "Sell",
            )

            print("\nWaiting for executions...")
            await asyncio.sleep(_PAUSE_FOR_MATCHING)

            print("\nFetching executions...")
            async with session.get(f"{server_base}/api/v1/executions/{SYMBOL}") as response:
                if _is_success(response):
                    report.executions = await response.json()
                    print(f"Received {len(report.executions)} executions")
                    for rank, trade in enumerate(report.executions[:5], start=1):
                        print(
                            f"#{rank}: order ID: {trade.get('order_id')}, "
                            f"price: {format_number(_u64(trade.get('price')))}, "
                            f"volume: {trade.get('volume')}"
                        )
                else:
                    print(f"Execution request failed: {response.status}", file=sys.stderr)

            print("\nFetching market statistics...")
            async with session.get(f"{server_base}/api/v1/statistics/{SYMBOL}") as response:
                if _is_success(response):
                    stats = report.statistics = await response.json()
                    print(f"{SYMBOL} market statistics:")
                    print(f"Last price: {format_number(_u64(stats.get('last_price')))}")
                    print(f"24h high: {format_number(_u64(stats.get('high_price_24h')))}")
                    print(f"24h low: {format_number(_u64(stats.get('low_price_24h')))}")
                    print(f"24h volume: {stats.get('volume_24h')}")
                    print(f"24h change: {stats.get('price_change_24h')}%")
                else:
                    print(f"Statistics request failed: {response.status}", file=sys.stderr)

            print("\nFetching candlesticks...")
            async with session.get(f"{server_base}/api/v1/klines/{SYMBOL}/1m") as response:
                if _is_success(response):
                    report.candles = await response.json()
                    print(f"{SYMBOL} 1m candles: {len(report.candles)}")
                    for rank, candle in enumerate(report.candles[:3], start=1):
                        print(
                            f"#{rank}: time: {candle.get('open_time')}, "
                            f"open: {format_number(_u64(candle.get('open')))}, "
                            f"high: {format_number(_u64(candle.get('high')))}, "
                            f"low: {format_number(_u64(candle.get('low')))}, "
                            f"close: {format_number(_u64(candle.get('close')))}, "
                            f"volume: {candle.get('volume')}"
                        )
                else:
                    print(f"Candlestick request failed: {response.status}", file=sys.stderr)

            print(f"\nExiting in {_PAUSE_BEFORE_EXIT:.0f} seconds...")
            await asyncio.sleep(_PAUSE_BEFORE_EXIT)
        finally:
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
            await ws.close()
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Example order matching engine client.")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="HTTP base URL")
    parser.add_argument("--ws", default=DEFAULT_WS, help="WebSocket base URL")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run_client(args.server, args.ws))
    except (aiohttp.ClientError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0