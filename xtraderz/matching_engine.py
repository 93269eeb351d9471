"""Price-time priority matching of limit orders."""

from __future__ import annotations

import asyncio
import uuid

from .models import Execution, Order, OrderBook, OrderStatus, OrderType, Side


class MatchingEngine:
    """Holds one order book and matches incoming orders against it."""

    def __init__(self) -> None:
        self.book = OrderBook()

    def process(self, order: Order) -> list[Execution]:
        """Match an order and return the executions it produced.

        Each fill yields two executions: one for the incoming order and one
        for the resting order it traded with.  Any unfilled remainder of a
        limit order rests on the book.  Market orders are not matched.
        """
        if order.order_type is not OrderType.LIMIT:
            return []

        if order.side is Side.BUY:
            opposite, counter_side = self.book.sell_book, Side.SELL
        else:
            opposite, counter_side = self.book.buy_book, Side.BUY

        executions: list[Execution] = []
        remaining = order.remain_quantity

        for price in opposite.levels_for_matching(order.price):
            if remaining == 0:
                break
            level = opposite.limits.get(price)
            if level is None:
                continue
            while remaining > 0 and not level.is_empty():
                matched_order, matched_qty = level.match_order(remaining)
                executions.append(
                    Execution(
                        exec_id=str(uuid.uuid4()),
                        order_id=order.order_id,
                        symbol=order.symbol,
                        side=order.side,
                        price=price,
                        quantity=matched_qty,
                    )
                )
                remaining -= matched_qty
                order.filled_quantity += matched_qty
                executions.append(
                    Execution(
                        exec_id=str(uuid.uuid4()),
                        order_id=matched_order.order_id,
                        symbol=matched_order.symbol,
                        side=counter_side,
                        price=price,
                        quantity=matched_qty,
                    )
                )
            if level.is_empty():
                del opposite.limits[price]

        opposite.update_best_level()

        order.remain_quantity = remaining
        if remaining == 0:
            order.status = OrderStatus.FILLED
        elif order.filled_quantity > 0:
            order.status = OrderStatus.PARTIALLY_FILLED

        if remaining > 0:
            self.book.insert_order(order)
        return executions


async def run(order_queue: asyncio.Queue, exec_queue: asyncio.Queue) -> None:
    """Match orders from ``order_queue`` and put executions on ``exec_queue``.

    A None item ends the stream; it is passed on to ``exec_queue``.
    """
    engine = MatchingEngine()
    while (order := await order_queue.get()) is not None:
        for execution in engine.process(order):
            await exec_queue.put(execution)
    await exec_queue.put(None)