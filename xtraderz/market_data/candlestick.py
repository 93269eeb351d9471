"""Candlestick aggregation of executions over fixed intervals."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from ..models import Execution
from .models import Candle, CandleInterval, CircularBuffer

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_BUFFER_CAPACITY = {
    CandleInterval.MINUTE_1: 1440,
    CandleInterval.MINUTE_5: 1152,
    CandleInterval.MINUTE_15: 960,
    CandleInterval.MINUTE_30: 1008,
    CandleInterval.HOUR_1: 720,
    CandleInterval.HOUR_4: 720,
    CandleInterval.DAY_1: 365,
    CandleInterval.WEEK_1: 156,
}


def buffer_capacity(interval: CandleInterval) -> int:
    """How many completed candles are kept for an interval."""
    return _BUFFER_CAPACITY[interval]


def _candle_start(timestamp: datetime, interval_seconds: int) -> datetime:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    elapsed = (timestamp - _EPOCH) // timedelta(seconds=1)
    return _EPOCH + timedelta(seconds=elapsed // interval_seconds * interval_seconds)


class CandlestickManager:
    """Builds candles for every interval from a stream of executions."""

    def __init__(self) -> None:
        self._candles: dict[str, dict[CandleInterval, CircularBuffer[Candle]]] = {}
        self._current: dict[str, dict[CandleInterval, Candle]] = {}
        self._candles_lock = threading.Lock()
        self._current_lock = threading.Lock()

    def process_execution(self, execution: Execution) -> None:
        """Fold one execution into the current candle of every interval."""
        for interval in CandleInterval:
            self._update_candle(
                execution.symbol,
                execution.transaction_time,
                execution.price,
                execution.quantity,
                interval,
            )

    def _update_candle(
        self,
        symbol: str,
        timestamp: datetime,
        price: int,
        volume: int,
        interval: CandleInterval,
    ) -> None:
        seconds = interval.to_seconds()
        start = _candle_start(timestamp, seconds)
        end = start + timedelta(seconds=seconds)

        with self._current_lock:
            symbol_candles = self._current.setdefault(symbol, {})
            candle = symbol_candles.get(interval)
            if candle is not None and candle.open_time == start:
                candle.high = max(candle.high, price)
                candle.low = min(candle.low, price)
                candle.close = price
                candle.volume += volume
                candle.trade_count += 1
                return
            if candle is not None:
                self._store_completed(candle)
            symbol_candles[interval] = Candle(
                symbol=symbol,
                open_time=start,
                close_time=end,
                interval=interval,
                open=price,
                high=price,
                low=price,
                close=price,
                volume=volume,
                trade_count=1,
            )

    def _store_completed(self, candle: Candle) -> None:
        with self._candles_lock:
            by_interval = self._candles.setdefault(candle.symbol, {})
            buffer = by_interval.get(candle.interval)
            if buffer is None:
                buffer = by_interval[candle.interval] = CircularBuffer(
                    buffer_capacity(candle.interval)
                )
            buffer.push(candle)

    def get_candles(
        self, symbol: str, interval: CandleInterval, limit: int | None = None
    ) -> list[Candle]:
        """Completed candles, oldest first; the newest ``limit`` if given."""
        with self._candles_lock:
            buffer = self._candles.get(symbol, {}).get(interval)
            if buffer is None:
                return []
            items = buffer.get_all() if limit is None else buffer.get_recent(limit)
            return [replace(candle) for candle in items]

    def get_current_candle(self, symbol: str, interval: CandleInterval) -> Candle | None:
        """A copy of the candle still being built, or None."""
        with self._current_lock:
            candle = self._current.get(symbol, {}).get(interval)
            return None if candle is None else replace(candle)