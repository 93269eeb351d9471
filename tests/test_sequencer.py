import asyncio

import pytest

from xtraderz.models import Order, Side
from xtraderz.sequencer import run, run_input_sequencer, run_output_sequencer


def drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


@pytest.mark.asyncio
async def test_input_sequencer_preserves_order_and_ends():
    source: asyncio.Queue = asyncio.Queue()
    target: asyncio.Queue = asyncio.Queue()
    for item in ("a", "b", "c", None):
        source.put_nowait(item)
    await asyncio.wait_for(run_input_sequencer(source, target), timeout=2)
    assert drain(target) == ["a", "b", "c", None]


@pytest.mark.asyncio
async def test_output_sequencer_stops_at_end_marker():
    source: asyncio.Queue = asyncio.Queue()
    target: asyncio.Queue = asyncio.Queue()
    for item in (1, None, 2):
        source.put_nowait(item)
    await asyncio.wait_for(run_output_sequencer(source, target), timeout=2)
    assert drain(target) == [1, None]
    assert source.get_nowait() == 2


@pytest.mark.asyncio
async def test_pipeline_matches_orders():
    orders: asyncio.Queue = asyncio.Queue()
    executions: asyncio.Queue = asyncio.Queue()
    orders.put_nowait(Order("sell1", "TST", 100, 10, Side.SELL))
    orders.put_nowait(Order("buy1", "TST", 100, 5, Side.BUY))
    orders.put_nowait(None)

    await asyncio.wait_for(run(orders, executions), timeout=2)

    items = drain(executions)
    assert items[-1] is None
    trades = items[:-1]
    assert len(trades) == 2
    assert trades[0].quantity == 5
    assert {t.order_id for t in trades} == {"sell1", "buy1"}


@pytest.mark.asyncio
async def test_pipeline_without_crossing_emits_only_end():
    orders: asyncio.Queue = asyncio.Queue()
    executions: asyncio.Queue = asyncio.Queue()
    orders.put_nowait(Order("b", "TST", 90, 1, Side.BUY))
    orders.put_nowait(Order("s", "TST", 110, 1, Side.SELL))
    orders.put_nowait(None)

    await asyncio.wait_for(run(orders, executions), timeout=2)
    assert drain(executions) == [None]