# xtraderz

An in-memory matching engine for limit orders. It is served over HTTP with
aiohttp and has a WebSocket feed of executions. It also has a market data
API that gives order book depth, recent trades, 24-hour statistics and
candlesticks.

Orders are matched with price-time priority. A buy order takes the lowest
asks at or below its price. A sell order takes the highest bids at or above
its price. Each fill produces two executions, one for the incoming order and
one for the resting order. Any quantity of a limit order that is left over
rests in the book.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
xtraderz-server [--host HOST] [--port PORT]
```

By default the server listens on `127.0.0.1:3030` and exposes these routes:

| Method | Path                                         | Purpose                                             |
|--------|----------------------------------------------|-----------------------------------------------------|
| POST   | `/v1/order`                                  | Submit a new order (`201 Created`)                   |
| POST   | `/v1/order/cancel`                           | Submit a cancel request for an `order_id`            |
| GET    | `/v1/execution`                              | Stored executions, filtered by `symbol` / `order_id` |
| GET    | `/api/v1/orderbook/{symbol}`                 | Aggregated bids (high to low) and asks (low to high) |
| GET    | `/api/v1/executions/{symbol}?limit=N`        | Recent trades, newest first; default limit 100       |
| GET    | `/api/v1/statistics/{symbol}`                | 24-hour open, high, low, last price, volume, change  |
| GET    | `/api/v1/klines/{symbol}/{interval}?limit=N` | The candle in progress, then completed candles      |
| WS     | `/ws/executions`                             | Every execution pushed as JSON                       |

Every response carries `Access-Control-Allow-Origin: *` when the request has
an `Origin` header.

The candle intervals are `1m`, `5m`, `15m`, `30m`, `1h`, `4h`, `1d` and
`1w`. Any other interval gets `400 Bad Request`. A new order is a JSON body
such as this one:

```json
{"symbol": "BTC-KRW", "side": "Buy", "price": 50000000, "order_type": "Limit", "quantity": 1}
```

`side` is `Buy` or `Sell`, and `order_type` is `Limit` or `Market`. `price`
and `quantity` are non-negative integers. A malformed body gets
`400 Bad Request`. The response echoes the order with its generated
`order_id`.

## What the server does not do

- Market orders are accepted but never matched.
- A cancel request is acknowledged, but it does not remove the resting order
  from the book.
- `/v1/execution` reads from a store that the server never fills, so it
  always returns an empty list. Use `/api/v1/executions/{symbol}` or the
  WebSocket feed to see trades.
- The order book served at `/api/v1/orderbook/{symbol}` is not kept in step
  with the matching engine's book, so it shows no levels. The `bid_price` and
  `ask_price` statistics stay at 0 for the same reason.
- All state is held in memory and is lost when the server stops. Nothing is
  persisted, and there are no accounts or balances.
- The server has no order book WebSocket feed. `xtraderz.websocket.orderbook_relay`
  provides one for your own application (see below).

## Example clients

With the server running, this command runs a short scripted session. It
places a crossing buy and sell of the same price, then reads back trades,
statistics and 1-minute candles:

```
xtraderz-client [--server http://127.0.0.1:3030] [--ws ws://127.0.0.1:3030]
```

This command runs a randomised simulation. Every half second it submits a
limit order priced within ±2% of 50,000,000, and it sends a cancel request
for the last order with a 25% chance. While it runs it polls the order book,
statistics and candles:

```
xtraderz-simulation [--server URL] [--ws URL] [--duration SECONDS]
```

The default duration is 120 seconds. The simulation draws quantities from
0.01 to 0.5 and rounds them to whole units, so nearly all simulated orders
have quantity 0.

## Using the library

```python
from xtraderz.matching_engine import MatchingEngine
from xtraderz.market_data.models import CandleInterval
from xtraderz.market_data.publisher import MarketDataPublisher
from xtraderz.models import Order, Side

engine = MatchingEngine()
publisher = MarketDataPublisher()

engine.process(Order(order_id="s1", symbol="BTC-KRW", price=100, quantity=10, side=Side.SELL))
for execution in engine.process(
    Order(order_id="b1", symbol="BTC-KRW", price=100, quantity=4, side=Side.BUY)
):
    publisher.process_execution(execution)

print(publisher.statistics("BTC-KRW").last_price)        # 100
print(publisher.recent_executions("BTC-KRW", 10))
print(publisher.candles("BTC-KRW", CandleInterval.MINUTE_1, 10))
```

The library is organised as follows:

- `xtraderz.models` holds `Order`, `Execution`, `PriceLevel`, `Book` and
  `OrderBook`. `OrderBook` supports `insert_order` and `cancel_order`.
- `xtraderz.matching_engine.run` and `xtraderz.sequencer.run` run the
  pipeline over `asyncio.Queue`s. Putting `None` on the order queue ends the
  pipeline, and the `None` is passed on to the execution queue.
- `xtraderz.market_data.candlestick.CandlestickManager` builds candles for
  every interval. It keeps a bounded history per interval: for example 1,440
  one-minute candles and 156 weekly candles.
- `xtraderz.util.serializer` has the JSON views of orders, executions and
  order books. It also has `calculate_orderbook_delta`, which reports the
  added, updated and removed price levels between two snapshots, and
  `create_websocket_message`.
- `xtraderz.websocket.execution_push` and `xtraderz.websocket.orderbook_relay`
  provide aiohttp routes (`ws_execution_route`, `ws_orderbook_route`) and
  broadcasters for executions and per-symbol order book snapshots.
- `xtraderz.app.create_app()` returns the full `aiohttp.web.Application`.
- `xtraderz.build_info.build_info()` reports the git revision, the current
  UTC time and the Python version.