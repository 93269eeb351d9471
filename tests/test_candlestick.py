from datetime import datetime, timedelta, timezone

import pytest

from xtraderz.market_data.candlestick import CandlestickManager, buffer_capacity
from xtraderz.market_data.models import CandleInterval
from xtraderz.models import Execution, Side

BASE = datetime(2025, 5, 1, 12, 0, 10, tzinfo=timezone.utc)


def _execution(price, quantity, moment, symbol="BTC-KRW"):
    return Execution(
        exec_id=f"exec-{price}-{quantity}",
        order_id="order",
        symbol=symbol,
        side=Side.BUY,
        price=price,
        quantity=quantity,
        fee=0.05,
        transaction_time=moment,
    )


def test_same_minute_aggregates():
    manager = CandlestickManager()
    manager.process_execution(_execution(50000000, 1, BASE))
    manager.process_execution(_execution(50100000, 2, BASE + timedelta(seconds=1)))
    candle = manager.get_current_candle("BTC-KRW", CandleInterval.MINUTE_1)
    assert candle.open == 50000000
    assert candle.high == 50100000
    assert candle.low == 50000000
    assert candle.close == 50100000
    assert candle.volume == 3
    assert candle.trade_count == 2
    assert manager.get_candles("BTC-KRW", CandleInterval.MINUTE_1) == []


@pytest.mark.parametrize("interval", list(CandleInterval))
def test_candle_window_contains_trade(interval):
    manager = CandlestickManager()
    manager.process_execution(_execution(100, 1, BASE))
    candle = manager.get_current_candle("BTC-KRW", interval)
    seconds = interval.to_seconds()
    assert candle.open_time <= BASE < candle.close_time
    assert candle.close_time - candle.open_time == timedelta(seconds=seconds)
    assert int(candle.open_time.timestamp()) % seconds == 0
    assert candle.interval is interval


def test_new_minute_completes_previous_candle():
    manager = CandlestickManager()
    trades = [
        _execution(100, 1, BASE),
        _execution(90, 4, BASE + timedelta(seconds=20)),
        _execution(120, 2, BASE + timedelta(seconds=70)),
    ]
    for trade in trades:
        manager.process_execution(trade)

    completed = manager.get_candles("BTC-KRW", CandleInterval.MINUTE_1)
    assert len(completed) == 1
    first = completed[0]
    assert (first.open, first.high, first.low, first.close) == (100, 100, 90, 90)
    assert first.volume == 1 + 4

    current = manager.get_current_candle("BTC-KRW", CandleInterval.MINUTE_1)
    assert current.open_time == first.close_time
    assert current.open == current.close == 120

    hourly = manager.get_current_candle("BTC-KRW", CandleInterval.HOUR_1)
    assert hourly.trade_count == len(trades)
    assert hourly.volume == sum(t.quantity for t in trades)
    assert manager.get_candles("BTC-KRW", CandleInterval.HOUR_1) == []


def test_limit_returns_newest():
    manager = CandlestickManager()
    for minute in range(5):
        manager.process_execution(_execution(100 + minute, 1, BASE + timedelta(minutes=minute)))
    everything = manager.get_candles("BTC-KRW", CandleInterval.MINUTE_1)
    recent = manager.get_candles("BTC-KRW", CandleInterval.MINUTE_1, 2)
    assert len(everything) == 4
    assert recent == everything[-2:]
    assert [c.open for c in everything] == sorted(c.open for c in everything)


def test_unknown_symbol():
    manager = CandlestickManager()
    assert manager.get_candles("NONE", CandleInterval.DAY_1, 10) == []
    assert manager.get_current_candle("NONE", CandleInterval.DAY_1) is None


def test_current_candle_is_a_copy():
    manager = CandlestickManager()
    manager.process_execution(_execution(100, 1, BASE))
    copy = manager.get_current_candle("BTC-KRW", CandleInterval.MINUTE_1)
    copy.volume = 999
    assert manager.get_current_candle("BTC-KRW", CandleInterval.MINUTE_1).volume == 1


def test_symbols_are_separate():
    manager = CandlestickManager()
    manager.process_execution(_execution(100, 1, BASE, symbol="AAA"))
    manager.process_execution(_execution(200, 3, BASE, symbol="BBB"))
    assert manager.get_current_candle("AAA", CandleInterval.MINUTE_1).close == 100
    assert manager.get_current_candle("BBB", CandleInterval.MINUTE_1).volume == 3


@pytest.mark.parametrize(
    "interval, capacity",
    [
        (CandleInterval.MINUTE_1, 1440),
        (CandleInterval.MINUTE_5, 1152),
        (CandleInterval.MINUTE_15, 960),
        (CandleInterval.MINUTE_30, 1008),
        (CandleInterval.HOUR_1, 720),
        (CandleInterval.HOUR_4, 720),
        (CandleInterval.DAY_1, 365),
        (CandleInterval.WEEK_1, 156),
    ],
)
def test_buffer_capacity(interval, capacity):
    assert buffer_capacity(interval) == capacity