import queue
import threading

import pytest

from arbwatch.metrics import UPDATES_DROPPED_TOTAL, UPDATES_TOTAL
from arbwatch.models import OrderbookMessage, PriceLevel
from arbwatch.orderbook import OrderbookError, OrderbookManager, extract_best_level


def _book(asset_id="test-token-1", bids=None, asks=None, event_type="book"):
    return OrderbookMessage(
        event_type=event_type,
        asset_id=asset_id,
        market="test-market",
        bids=bids if bids is not None else [PriceLevel("0.50", "100.0")],
        asks=asks if asks is not None else [PriceLevel("0.52", "100.0")],
        timestamp=1234567890000,
    )


def test_handle_book_message():
    manager = OrderbookManager()
    msg = _book(
        bids=[PriceLevel("0.52", "100.5"), PriceLevel("0.51", "200.0")],
        asks=[PriceLevel("0.54", "150.0"), PriceLevel("0.55", "250.0")],
    )
    manager.handle_book_message(msg)

    snapshot = manager.get_snapshot("test-token-1")
    assert snapshot is not None
    assert snapshot.best_bid_price == 0.52
    assert snapshot.best_bid_size == 100.5
    assert snapshot.best_ask_price == 0.54
    assert snapshot.best_ask_size == 150.0
    assert snapshot.market_id == "test-market"


def test_handle_price_change_message():
    manager = OrderbookManager()
    manager.handle_book_message(_book())

    change = OrderbookMessage(
        event_type="price_change",
        asset_id="test-token-1",
        market="test-market",
        bids=[PriceLevel("0.51", "120.0")],
        timestamp=1234567891000,
    )
    manager.handle_price_change_message(change)

    snapshot = manager.get_snapshot("test-token-1")
    assert snapshot.best_bid_price == 0.51
    assert snapshot.best_bid_size == 120.0
    assert snapshot.best_ask_price == 0.52


@pytest.mark.parametrize(
    "levels, price, size",
    [([PriceLevel("0.52", "100.5")], 0.52, 100.5)],
)
def test_extract_best_level_valid(levels, price, size):
    assert extract_best_level(levels) == (price, size)


@pytest.mark.parametrize(
    "levels",
    [
        [],
        [PriceLevel("invalid", "100.0")],
        [PriceLevel("0.52", "invalid")],
    ],
    ids=["empty-levels", "invalid-price", "invalid-size"],
)
def test_extract_best_level_errors(levels):
    with pytest.raises(OrderbookError):
        extract_best_level(levels)


def test_extract_best_level_empty_flag():
    with pytest.raises(OrderbookError) as info:
        extract_best_level([])
    assert info.value.empty is True
    assert str(info.value) == "no price levels"


def test_book_message_without_bids_reports_empty_side():
    manager = OrderbookManager()
    with pytest.raises(OrderbookError) as info:
        manager.handle_book_message(_book(bids=[]))
    assert str(info.value) == "extract best bid: no price levels"
    assert info.value.empty is True
    assert manager.get_snapshot("test-token-1") is None


def test_book_message_without_asks_reports_empty_side():
    manager = OrderbookManager()
    with pytest.raises(OrderbookError, match="extract best ask: no price levels"):
        manager.handle_book_message(_book(asks=[]))


def test_price_change_zero_size_keeps_existing_size():
    manager = OrderbookManager()
    manager.handle_book_message(_book())
    change = _book(
        event_type="price_change",
        bids=[PriceLevel("0.49", "0")],
        asks=[PriceLevel("0.53", "0")],
    )
    manager.handle_price_change_message(change)
    snapshot = manager.get_snapshot("test-token-1")
    assert snapshot.best_bid_price == 0.49
    assert snapshot.best_bid_size == 100.0
    assert snapshot.best_ask_price == 0.53
    assert snapshot.best_ask_size == 100.0


def test_price_change_for_unknown_token_creates_snapshot():
    manager = OrderbookManager()
    manager.handle_price_change_message(_book(asset_id="new-token", event_type="price_change"))
    snapshot = manager.get_snapshot("new-token")
    assert snapshot.best_bid_price == 0.50
    assert snapshot.best_ask_price == 0.52


def test_price_change_ignores_unparsable_side():
    manager = OrderbookManager()
    manager.handle_book_message(_book())
    change = _book(
        event_type="price_change",
        bids=[PriceLevel("bad", "1")],
        asks=[PriceLevel("0.60", "7")],
    )
    manager.handle_price_change_message(change)
    snapshot = manager.get_snapshot("test-token-1")
    assert snapshot.best_bid_price == 0.50
    assert snapshot.best_ask_price == 0.60
    assert snapshot.best_ask_size == 7.0


def test_handle_message_ignores_other_event_types():
    manager = OrderbookManager()
    before = UPDATES_TOTAL.labels("last_trade_price").value
    manager.handle_message(_book(event_type="last_trade_price"))
    assert manager.get_all_snapshots() == {}
    assert UPDATES_TOTAL.labels("last_trade_price").value == before + 1


def test_handle_message_dispatches_book():
    manager = OrderbookManager()
    manager.handle_message(_book())
    assert manager.get_snapshot("test-token-1").best_ask_price == 0.52


def test_get_snapshot_returns_copy():
    manager = OrderbookManager()
    manager.handle_book_message(_book())
    copy = manager.get_snapshot("test-token-1")
    copy.best_bid_price = 99.0
    assert manager.get_snapshot("test-token-1").best_bid_price == 0.50


def test_get_snapshot_unknown_is_none():
    assert OrderbookManager().get_snapshot("missing") is None


def test_get_all_snapshots():
    manager = OrderbookManager()
    manager.handle_book_message(_book(asset_id="a"))
    manager.handle_book_message(_book(asset_id="b"))
    snapshots = manager.get_all_snapshots()
    assert sorted(snapshots) == ["a", "b"]
    snapshots["a"].best_ask_price = 5.0
    assert manager.get_snapshot("a").best_ask_price == 0.52


def test_updates_are_published():
    manager = OrderbookManager()
    manager.handle_book_message(_book())
    manager.handle_price_change_message(
        _book(event_type="price_change", bids=[PriceLevel("0.51", "10")], asks=[])
    )
    first = manager.updates.get_nowait()
    second = manager.updates.get_nowait()
    assert first.best_bid_price == 0.50
    assert second.best_bid_price == 0.51
    assert second.best_bid_size == 10.0


def test_full_update_buffer_drops():
    manager = OrderbookManager(buffer_size=1)
    before = UPDATES_DROPPED_TOTAL.labels("channel_full").value
    manager.handle_book_message(_book(asset_id="a"))
    manager.handle_book_message(_book(asset_id="b"))
    assert manager.updates.qsize() == 1
    assert UPDATES_DROPPED_TOTAL.labels("channel_full").value == before + 1
    assert manager.get_snapshot("b") is not None


def test_background_processing_until_feed_ends():
    messages = queue.Queue()
    manager = OrderbookManager(messages, poll_interval=0.01)
    stop = threading.Event()
    manager.start(stop)
    messages.put(_book(asset_id="x"))
    messages.put(_book(asset_id="y", bids=[]))
    messages.put(_book(asset_id="z", bids=[PriceLevel("oops", "1")]))
    messages.put(None)
    manager.close()
    assert sorted(manager.get_all_snapshots()) == ["x"]
    assert manager.updates.get_nowait().token_id == "x"
    assert manager.updates.get_nowait() is None


def test_background_processing_stops_on_event():
    messages = queue.Queue()
    manager = OrderbookManager(messages, poll_interval=0.01)
    stop = threading.Event()
    manager.start(stop)
    stop.set()
    manager.close()
    assert manager.updates.get_nowait() is None