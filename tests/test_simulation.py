import random

import pytest
from aiohttp.test_utils import TestServer

from xtraderz.app import create_app
from xtraderz.simple_client import format_number
from xtraderz.simulation import (
    BASE_PRICE,
    PRICE_VOLATILITY,
    SYMBOL,
    format_price,
    main,
    random_order,
    run_simulation,
)


def test_format_price_pins_source_price():
    assert format_price(50_000_000) == "50,000,000 KRW"


@pytest.mark.parametrize("price", [0, 5, 1234, 51_000_000])
def test_format_price_wraps_number(price):
    text = format_price(price)
    assert text.endswith(" KRW")
    assert text[: -len(" KRW")] == format_number(price)


def test_random_order_stays_within_volatility():
    rng = random.Random(7)
    low = BASE_PRICE * (1 - PRICE_VOLATILITY)
    high = BASE_PRICE * (1 + PRICE_VOLATILITY)
    for _ in range(200):
        order = random_order(rng, BASE_PRICE, PRICE_VOLATILITY)
        assert low - 1 <= order["price"] <= high + 1
        assert order["symbol"] == SYMBOL
        assert order["order_type"] == "Limit"
        assert order["side"] in ("Buy", "Sell")
        assert order["quantity"] in (0, 1)


def test_random_order_without_volatility_uses_base_price():
    order = random_order(random.Random(1), BASE_PRICE, 0.0)
    assert order["price"] == BASE_PRICE


def test_random_order_is_deterministic_for_seed():
    first = [random_order(random.Random(42), BASE_PRICE, PRICE_VOLATILITY) for _ in range(3)]
    second = [random_order(random.Random(42), BASE_PRICE, PRICE_VOLATILITY) for _ in range(3)]
    assert first == second


def test_random_order_draws_both_sides():
    rng = random.Random(3)
    sides = {random_order(rng, BASE_PRICE, PRICE_VOLATILITY)["side"] for _ in range(100)}
    assert sides == {"Buy", "Sell"}


def test_main_reports_unreachable_server():
    argv = ["--server", "http://127.0.0.1:1", "--ws", "ws://127.0.0.1:1", "--duration", "0.1"]
    assert main(argv) == 1


@pytest.mark.asyncio
async def test_run_simulation_submits_orders():
    async with TestServer(create_app()) as server:
        base = f"http://{server.host}:{server.port}"
        ws_base = f"ws://{server.host}:{server.port}"
        result = await run_simulation(base, ws_base, 0.6)

    assert result.order_count >= 1
    assert 0 <= result.cancelled <= result.order_count
    assert len(result.executions) <= 10
    assert all(trade["symbol"] == SYMBOL for trade in result.executions)
    assert result.pushed >= len(result.executions)