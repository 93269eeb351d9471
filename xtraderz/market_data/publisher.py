"""Market data publisher: order books, recent trades, statistics and candles over HTTP."""

from __future__ import annotations

import re
import threading
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone

from aiohttp import web

from ..models import Execution, OrderBook
from .candlestick import CandlestickManager
from .models import (
    Candle,
    CandleInterval,
    ExecutionData,
    MarketStatistics,
    OrderBookData,
    PriceLevel,
)

DEFAULT_LIMIT = 100
MAX_EXECUTIONS = 1000
_STATISTICS_WINDOW_SECONDS = 86400
_LIMIT_PATTERN = re.compile(r"\+?[0-9]+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_limit(raw: str | None) -> int:
    """A non-negative integer limit, or the default when absent or malformed."""
    if raw is None or not _LIMIT_PATTERN.fullmatch(raw):
        return DEFAULT_LIMIT
    return int(raw)


def convert_to_orderbook_data(symbol: str, orderbook: OrderBook) -> OrderBookData:
    """Aggregate an order book into price levels: bids highest first, asks lowest first."""
    bids = [
        PriceLevel(price, level.total_volume, len(level.orders))
        for price, level in orderbook.buy_book.limits.items()
    ]
    asks = [
        PriceLevel(price, level.total_volume, len(level.orders))
        for price, level in orderbook.sell_book.limits.items()
    ]
    bids.sort(key=lambda level: level.price, reverse=True)
    asks.sort(key=lambda level: level.price)
    return OrderBookData(symbol=symbol, timestamp=_utcnow(), bids=bids, asks=asks)


class MarketDataPublisher:
    """Keeps per-symbol market data and serves it through HTTP routes."""

    def __init__(self, max_executions: int = MAX_EXECUTIONS) -> None:
        self._max_executions = max_executions
        self._orderbooks: dict[str, OrderBook] = {}
        self._executions: dict[str, deque[ExecutionData]] = {}
        self._statistics: dict[str, MarketStatistics] = {}
        self._candlesticks = CandlestickManager()
        self._orderbooks_lock = threading.Lock()
        self._executions_lock = threading.Lock()
        self._statistics_lock = threading.Lock()

    def update_orderbook(self, symbol: str, orderbook: OrderBook) -> None:
        """Replace the stored order book for a symbol."""
        with self._orderbooks_lock:
            self._orderbooks[symbol] = orderbook

    def process_execution(self, execution: Execution) -> None:
        """Record a trade, fold it into candles and update the symbol's statistics."""
        self._add_execution(execution)
        self._candlesticks.process_execution(execution)
        self._update_statistics(execution)

    def _add_execution(self, execution: Execution) -> None:
        data = ExecutionData(
            symbol=execution.symbol,
            timestamp=execution.transaction_time,
            price=execution.price,
            volume=execution.quantity,
            side=execution.side.value,
            is_market_maker=False,
        )
        with self._executions_lock:
            trades = self._executions.get(execution.symbol)
            if trades is None:
                trades = self._executions[execution.symbol] = deque(
                    maxlen=self._max_executions
                )
            trades.appendleft(data)

    def _update_statistics(self, execution: Execution) -> None:
        symbol = execution.symbol
        price = execution.price
        with self._statistics_lock:
            stats = self._statistics.get(symbol)
            if stats is None:
                stats = self._statistics[symbol] = MarketStatistics(
                    symbol=symbol,
                    timestamp=_utcnow(),
                    open_price_24h=price,
                    high_price_24h=price,
                    low_price_24h=price,
                    last_price=price,
                )

            now = _utcnow()
            if int((now - stats.timestamp).total_seconds()) > _STATISTICS_WINDOW_SECONDS:
                stats.timestamp = now
                stats.open_price_24h = price
                stats.high_price_24h = price
                stats.low_price_24h = price
                stats.volume_24h = 0

            stats.high_price_24h = max(stats.high_price_24h, price)
            stats.low_price_24h = min(stats.low_price_24h, price)
            stats.last_price = price
            stats.volume_24h += execution.quantity

            if stats.open_price_24h > 0:
                diff = price - stats.open_price_24h
                stats.price_change_24h = diff / stats.open_price_24h * 100.0

            with self._orderbooks_lock:
                orderbook = self._orderbooks.get(symbol)
                if orderbook is not None:
                    best_bid = orderbook.buy_book.best_price_level()
                    if best_bid is not None:
                        stats.bid_price = best_bid.price
                    best_ask = orderbook.sell_book.best_price_level()
                    if best_ask is not None:
                        stats.ask_price = best_ask.price

    def orderbook_data(self, symbol: str) -> OrderBookData:
        """The aggregated book for a symbol; empty when the symbol is unknown."""
        with self._orderbooks_lock:
            orderbook = self._orderbooks.get(symbol)
            if orderbook is None:
                return OrderBookData(symbol=symbol, timestamp=_utcnow())
            return convert_to_orderbook_data(symbol, orderbook)

    def recent_executions(self, symbol: str, limit: int = DEFAULT_LIMIT) -> list[ExecutionData]:
        """Up to ``limit`` trades for a symbol, newest first."""
        with self._executions_lock:
            trades = self._executions.get(symbol, ())
            return [replace(trade) for trade, _ in zip(trades, range(limit))]

    def statistics(self, symbol: str) -> MarketStatistics:
        """A copy of the symbol's statistics; all zeros when it has not traded."""
        with self._statistics_lock:
            stats = self._statistics.get(symbol)
            if stats is None:
                return MarketStatistics(symbol=symbol, timestamp=_utcnow())
            return replace(stats)

    def candles(
        self, symbol: str, interval: CandleInterval, limit: int = DEFAULT_LIMIT
    ) -> list[Candle]:
        """The candle in progress, if any, followed by the newest ``limit`` completed ones."""
        result = self._candlesticks.get_candles(symbol, interval, limit)
        current = self._candlesticks.get_current_candle(symbol, interval)
        if current is not None:
            result.insert(0, current)
        return result

    def routes(self) -> list[web.RouteDef]:
        """HTTP routes serving this publisher's data."""

        async def get_orderbook(request: web.Request) -> web.Response:
            symbol = request.match_info["symbol"]
            return web.json_response(self.orderbook_data(symbol).to_dict())

        async def get_executions(request: web.Request) -> web.Response:
            symbol = request.match_info["symbol"]
            limit = _parse_limit(request.query.get("limit"))
            trades = self.recent_executions(symbol, limit)
            return web.json_response([trade.to_dict() for trade in trades])

        async def get_statistics(request: web.Request) -> web.Response:
            symbol = request.match_info["symbol"]
            return web.json_response(self.statistics(symbol).to_dict())

        async def get_candlesticks(request: web.Request) -> web.Response:
            symbol = request.match_info["symbol"]
            label = request.match_info["interval"]
            interval = CandleInterval.from_string(label)
            if interval is None:
                return web.json_response(
                    {"error": f"Invalid interval: {label}"}, status=400
                )
            limit = _parse_limit(request.query.get("limit"))
            return web.json_response(
                [candle.to_dict() for candle in self.candles(symbol, interval, limit)]
            )

        return [
            web.get("/api/v1/orderbook/{symbol}", get_orderbook),
            web.get("/api/v1/executions/{symbol}", get_executions),
            web.get("/api/v1/statistics/{symbol}", get_statistics),
            web.get("/api/v1/klines/{symbol}/{interval}", get_candlesticks),
        ]