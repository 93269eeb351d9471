"""Pipeline that feeds orders to the matching engine and relays its executions."""

from __future__ import annotations

import asyncio

from . import matching_engine

_CHANNEL_SIZE = 100


async def _forward(source: asyncio.Queue, target: asyncio.Queue) -> None:
    while (item := await source.get()) is not None:
        await target.put(item)
    await target.put(None)


async def run_input_sequencer(order_queue: asyncio.Queue, engine_queue: asyncio.Queue) -> None:
    """Pass orders on to the engine until a None item ends the stream."""
    await _forward(order_queue, engine_queue)


async def run_output_sequencer(exec_queue: asyncio.Queue, out_queue: asyncio.Queue) -> None:
    """Pass executions on until a None item ends the stream."""
    await _forward(exec_queue, out_queue)


async def run(order_queue: asyncio.Queue, exec_queue: asyncio.Queue) -> None:
    """Run input sequencer, matching engine and output sequencer together.

    Returns once a None item on ``order_queue`` has drained through the
    pipeline and been passed on to ``exec_queue``.
    """
    engine_orders: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)
    engine_execs: asyncio.Queue = asyncio.Queue(_CHANNEL_SIZE)

    tasks = [
        asyncio.create_task(run_input_sequencer(order_queue, engine_orders)),
        asyncio.create_task(matching_engine.run(engine_orders, engine_execs)),
    ]
    try:
        await run_output_sequencer(engine_execs, exec_queue)
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()