"""Order flow simulation: streams random limit orders at a server and watches the market."""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import sys
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import aiohttp

from .simple_client import DEFAULT_SERVER, DEFAULT_WS, format_number

SYMBOL = "BTC-KRW"
BASE_PRICE = 50_000_000
PRICE_VOLATILITY = 0.02
ORDER_INTERVAL = 0.5
CANCEL_PROBABILITY = 0.25
DEFAULT_DURATION = 120.0

_ORDERBOOK_PERIOD = 5.0
_STATISTICS_PERIOD = 10.0
_CANDLE_PERIOD = 30.0
_SETTLE_TIME = 2.0


def format_price(price: int) -> str:
    """A price with thousands separators and the currency code."""
    return f"{format_number(price)} KRW"


def _round_half_away(value: float) -> int:
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


def _u64(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def _is_success(response: aiohttp.ClientResponse) -> bool:
    return 200 <= response.status < 300


def random_order(rng: random.Random, base_price: int, volatility: float) -> dict[str, Any]:
    """A limit order priced within ``volatility`` of ``base_price``, on a random side.

    The quantity is drawn from 0.01 to 0.5 and rounded to whole units.
    """
    price_factor = 1.0 + volatility * (rng.random() * 2.0 - 1.0)
    price = _round_half_away(base_price * price_factor)
    quantity = _round_half_away(rng.random() * 0.49 + 0.01)
    side = "Buy" if rng.random() < 0.5 else "Sell"
    return {
        "symbol": SYMBOL,
        "side": side,
        "price": price,
        "order_type": "Limit",
        "quantity": quantity,
    }


@dataclass
class SimulationResult:
    """Counts and final trade list of one simulation run."""

    order_count: int = 0
    cancelled: int = 0
    executions: list[dict[str, Any]] = field(default_factory=list)
    pushed: int = 0


async def _every(period: float, action: Callable[[], Awaitable[None]]) -> None:
    while True:
        try:
            await action()
        except (aiohttp.ClientError, ValueError):
            pass
        await asyncio.sleep(period)


async def _watch_executions(ws: aiohttp.ClientWebSocketResponse, result: SimulationResult) -> None:
    async for message in ws:
        if message.type != aiohttp.WSMsgType.TEXT:
            if message.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED,
                                aiohttp.WSMsgType.ERROR):
                break
            continue
        try:
            payload = json.loads(message.data)
        except ValueError:
            continue
        result.pushed += 1
        print(
            f"\nExecution #{result.pushed}: {payload.get('symbol')} - "
            f"price: {format_price(_u64(payload.get('price')))}, "
            f"quantity: {payload.get('quantity')}"
        )


def _monitors(session: aiohttp.ClientSession, server_base: str) -> list[Callable[[], Awaitable[None]]]:
    async def orderbook() -> None:
        async with session.get(f"{server_base}/api/v1/orderbook/{SYMBOL}") as response:
            if not _is_success(response):
                return
            book = await response.json()
        bids = book.get("bids") if isinstance(book.get("bids"), list) else []
        asks = book.get("asks") if isinstance(book.get("asks"), list) else []
        top_bid = _u64(bids[0].get("price")) if bids else 0
        top_ask = _u64(asks[0].get("price")) if asks else 0
        if top_bid > 0 and top_ask > 0:
            print("\nCurrent market:")
            print(f"Best bid: {format_price(top_bid)}")
            print(f"Best ask: {format_price(top_ask)}")
            print(f"Spread: {format_price(max(top_ask - top_bid, 0))}")
            print(f"Bid levels: {len(bids)}, ask levels: {len(asks)}")

    async def statistics() -> None:
        async with session.get(f"{server_base}/api/v1/statistics/{SYMBOL}") as response:
            if not _is_success(response):
                return
            stats = await response.json()
        print("\n24h market statistics:")
        print(f"Last price: {format_price(_u64(stats.get('last_price')))}")
        print(f"24h high: {format_price(_u64(stats.get('high_price_24h')))}")
        print(f"24h low: {format_price(_u64(stats.get('low_price_24h')))}")
        print(f"24h volume: {stats.get('volume_24h')}")
        print(f"24h change: {stats.get('price_change_24h')}%")

    async def candles() -> None:
        url = f"{server_base}/api/v1/klines/{SYMBOL}/1m?limit=1"
        async with session.get(url) as response:
            if not _is_success(response):
                return
            data = await response.json()
        if not isinstance(data, list) or not data:
            return
        candle = data[0]
        print("\nLatest 1m candle:")
        print(f"Time: {candle.get('open_time')}")
        print(f"Open: {format_price(_u64(candle.get('open')))}")
        print(f"High: {format_price(_u64(candle.get('high')))}")
        print(f"Low: {format_price(_u64(candle.get('low')))}")
        print(f"Close: {format_price(_u64(candle.get('close')))}")
        print(f"Volume: {candle.get('volume')}")
        print(f"Trades: {candle.get('trade_count')}")

    return [orderbook, statistics, candles]


async def run_simulation(server_base: str, ws_base: str, duration: float) -> SimulationResult:
    """Submit random orders for ``duration`` seconds, cancelling some, and report the outcome."""
    result = SimulationResult()
    rng = random.Random()
    print("Order simulation")
    print("----------------")

    async with aiohttp.ClientSession() as session:
        ws = await session.ws_connect(f"{ws_base}/ws/executions")
        print("Connected to the execution stream")
        orderbook, statistics, candles = _monitors(session, server_base)
        tasks = [
            asyncio.create_task(_watch_executions(ws, result)),
            asyncio.create_task(_every(_ORDERBOOK_PERIOD, orderbook)),
            asyncio.create_task(_every(_STATISTICS_PERIOD, statistics)),
            asyncio.create_task(_every(_CANDLE_PERIOD, candles)),
        ]
        try:
            print(f"\nGenerating orders for about {duration:.0f} seconds...")
            loop = asyncio.get_running_loop()
            start = next_tick = loop.time()
            last_order_id = ""
            while loop.time() - start < duration:
                delay = next_tick - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
                next_tick += ORDER_INTERVAL

                order = random_order(rng, BASE_PRICE, PRICE_VOLATILITY)
                async with session.post(f"{server_base}/v1/order", json=order) as response:
                    if _is_success(response):
                        created = await response.json()
                        result.order_count += 1
                        order_id = created.get("order_id")
                        last_order_id = order_id if isinstance(order_id, str) else ""
                        side = "buy" if order["side"] == "Buy" else "sell"
                        print(
                            f"Order #{result.order_count}: {side} {order['quantity']} BTC "
                            f"@ {format_price(order['price'])}"
                        )
                    else:
                        print(f"Order creation failed: {response.status}", file=sys.stderr)

                if rng.random() < CANCEL_PROBABILITY and result.order_count > 0:
                    async with session.post(
                        f"{server_base}/v1/order/cancel", json={"order_id": last_order_id}
                    ) as response:
                        if _is_success(response):
                            result.cancelled += 1
                            print(f"Order cancelled: ID {last_order_id}")

            print(f"\nSimulation finished: {result.order_count} orders created")
            await asyncio.sleep(_SETTLE_TIME)

            url = f"{server_base}/api/v1/executions/{SYMBOL}?limit=10"
            async with session.get(url) as response:
                if _is_success(response):
                    result.executions = await response.json()
                    print(f"\nExecutions: {len(result.executions)}")
                    print("\nRecent executions:")
                    for rank, trade in enumerate(result.executions, start=1):
                        print(
                            f"#{rank}: time: {trade.get('timestamp')}, "
                            f"price: {format_price(_u64(trade.get('price')))}, "
                            f"volume: {trade.get('volume')}, side: {trade.get('side')}"
                        )
            print("\nShutting down...")
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await ws.close()
    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Simulate order flow against a matching engine.")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="HTTP base URL")
    parser.add_argument("--ws", default=DEFAULT_WS, help="WebSocket base URL")
    parser.add_argument("--duration", type=float, default=DEFAULT_DURATION,
                        help="seconds to keep submitting orders")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run_simulation(args.server, args.ws, args.duration))
    except (aiohttp.ClientError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0