# arbwatch

`arbwatch` keeps the best bid and ask of each token of a prediction market
up to date from a stream of order book messages. It also records arbitrage
opportunities, either as a report on the console or as rows in a PostgreSQL
table.

## Install

```
pip install .
```

It needs Python 3.10 or later and has no runtime dependencies. To run the
tests:

```
pip install ".[test]"
pytest
```

## Order books

`arbwatch.orderbook.OrderbookManager` applies `OrderbookMessage` objects from
`arbwatch.models`. Only the first price level of each side is used.

- A `"book"` message replaces the token's snapshot. Both sides must have a
  level that parses as a number. Otherwise `OrderbookError` is raised, and
  its `empty` attribute is true when a side had no levels at all.
- A `"price_change"` message updates the prices of an existing snapshot.
  A size of zero keeps the stored size. A side that is missing or cannot be
  parsed is left unchanged. If the token has no snapshot yet, the message is
  handled as a `"book"` message.
- All other event types are counted and ignored.

```python
from arbwatch.models import OrderbookMessage, PriceLevel
from arbwatch.orderbook import OrderbookManager

manager = OrderbookManager()
manager.handle_message(OrderbookMessage(
    event_type="book",
    market="market-1",
    asset_id="token-yes",
    bids=[PriceLevel("0.52", "100")],
    asks=[PriceLevel("0.54", "150")],
))
snapshot = manager.get_snapshot("token-yes")
print(snapshot.best_bid_price, snapshot.best_ask_price)  # 0.52 0.54
```

`get_snapshot` returns a copy, or `None` for an unknown token.
`get_all_snapshots` returns copies keyed by token id. `extract_best_level`
returns the price and size of the first level of a list.

Each applied update puts a copy of the snapshot on the `updates` queue. When
the queue already holds `buffer_size` items (100,000 by default), the update
is dropped and logged.

To process messages in the background, pass a `queue.Queue` as `messages` and
call `start(stop_event)` with a `threading.Event`. The worker runs until the
event is set or it receives `None` from the queue. Processing errors are
logged rather than raised. `close()` waits for the worker, then puts `None` on
`updates`. The manager can also be used as a context manager, which calls
`close()` on exit.

`arbwatch.metrics` holds in-process `Counter`, `LabeledCounter`, `Gauge` and
`Histogram` types. The manager feeds the module-level instances:
`UPDATES_TOTAL` (by event type), `UPDATES_DROPPED_TOTAL` (by reason),
`SNAPSHOTS_TRACKED`, `UPDATE_PROCESSING_DURATION` and
`LOCK_CONTENTION_DURATION`. `Histogram.bucket_counts()` returns cumulative
counts keyed by upper bound, with a final `inf` bucket.

## Storing opportunities

`arbwatch.storage.Storage` is a protocol with `store_opportunity(opp)` and
`close()`.

- `ConsoleStorage(logger=None, stream=None)` prints a formatted report of
  each `Opportunity` to `stream`, or to standard output.
- `PostgresStorage.connect(config, connector)` calls `connector(config.dsn())`
  to get a DB-API connection and checks it with `SELECT 1`. Each opportunity
  becomes one row of `arbitrage_opportunities`. The insert uses `%s`
  placeholders and is committed. Only the first two outcomes are stored, in
  the binary-market price and size columns; with fewer than two, those
  columns are zero. Failures to connect, insert or close raise
  `StorageError`.

```python
from arbwatch.fixtures import create_test_opportunity
from arbwatch.storage import ConsoleStorage, PostgresConfig

ConsoleStorage().store_opportunity(create_test_opportunity("m-1", "some-market"))

password = "password"
config = PostgresConfig(host="localhost", port="5432", user="user",
                        password=password, database="arbwatch")
print(config.dsn())
```

## Test helpers

`arbwatch.fixtures` builds sample order book messages, arbitrage snapshot
pairs and opportunities. `arbwatch.mocks` provides:

- `MockStorage`, which keeps copies of stored opportunities in memory.
- `MockWebSocket`, a simulated feed with a bounded `messages` queue. Messages
  beyond the buffer are dropped, and `close()` queues a final `None`.
- `new_usdc_amount(dollars)`, which converts dollars to USDC base units
  (six decimals), truncating.

## What it does not do

`arbwatch` does not connect to a market data feed or to a market listing
service. It does not detect arbitrage opportunities, place orders or track
wallets, and it has no command-line program. You supply the messages and the
opportunities. The package does not include a PostgreSQL driver or create the
table.