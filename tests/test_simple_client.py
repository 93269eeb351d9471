import uuid

import pytest
from aiohttp.test_utils import TestServer

from xtraderz.app import create_app
from xtraderz.simple_client import ORDER_PRICE, SYMBOL, format_number, main, run_client


@pytest.mark.parametrize("num", [0, 7, 999, 1000, 12345, 50_000_000, 123_456_789_012])
def test_format_number_round_trips(num):
    text = format_number(num)
    assert int(text.replace(",", "")) == num


@pytest.mark.parametrize("num", [1, 1000, 987_654_321, 10**15])
def test_format_number_groups_of_three(num):
    groups = format_number(num).split(",")
    assert 1 <= len(groups[0]) <= 3
    assert all(len(group) == 3 for group in groups[1:])


def test_format_number_pins_source_price():
    assert format_number(50_000_000) == "50,000,000"


def test_format_number_small_has_no_separator():
    assert format_number(999) == "999"


def test_format_number_rejects_negative():
    with pytest.raises(ValueError):
        format_number(-1)


def test_main_reports_unreachable_server():
    assert main(["--server", "http://127.0.0.1:1", "--ws", "ws://127.0.0.1:1"]) == 1


@pytest.mark.asyncio
async def test_run_client_trades_against_server(capsys):
    async with TestServer(create_app()) as server:
        base = f"http://{server.host}:{server.port}"
        ws_base = f"ws://{server.host}:{server.port}"
        report = await run_client(base, ws_base)

    assert str(uuid.UUID(report.buy_order_id)) == report.buy_order_id
    assert str(uuid.UUID(report.sell_order_id)) == report.sell_order_id
    assert report.buy_order_id != report.sell_order_id

    assert report.orderbook["symbol"] == SYMBOL
    assert report.orderbook["bids"] == []
    assert report.orderbook["asks"] == []

    assert len(report.executions) == 2
    assert all(trade["price"] == ORDER_PRICE for trade in report.executions)
    assert sorted(trade["side"] for trade in report.executions) == ["Buy", "Sell"]

    assert report.statistics["last_price"] == ORDER_PRICE
    assert report.statistics["volume_24h"] == 2

    assert report.candles[0]["interval"] == "1m"
    assert report.candles[0]["trade_count"] == 2
    assert report.candles[0]["open"] == ORDER_PRICE

    assert len(report.pushed) == 2
    pushed_ids = {message["order_id"] for message in report.pushed}
    assert pushed_ids == {report.buy_order_id, report.sell_order_id}

    out = capsys.readouterr().out
    assert format_number(ORDER_PRICE) in out