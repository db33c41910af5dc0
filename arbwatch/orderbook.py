"""Top-of-book state for every subscribed token, fed by orderbook messages."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Sequence
from datetime import datetime

from .metrics import (
    LOCK_CONTENTION_DURATION,
    SNAPSHOTS_TRACKED,
    UPDATE_PROCESSING_DURATION,
    UPDATES_DROPPED_TOTAL,
    UPDATES_TOTAL,
)
from .models import OrderbookMessage, OrderbookSnapshot, PriceLevel

DEFAULT_UPDATE_BUFFER = 100_000


class OrderbookError(ValueError):
    """Raised when an orderbook message cannot be applied."""

    def __init__(self, message: str, *, empty: bool = False) -> None:
        super().__init__(message)
        self.empty = empty


def _parse_float(text: str, what: str) -> float:
    if text != text.strip():
        raise OrderbookError(f"parse {what}: invalid syntax {text!r}")
    try:
        return float(text)
    except ValueError as exc:
        raise OrderbookError(f"parse {what}: {exc}") from exc


def extract_best_level(levels: Sequence[PriceLevel]) -> tuple[float, float]:
    """Return the price and size of the first (best) level."""
    if not levels:
        raise OrderbookError("no price levels", empty=True)
    best = levels[0]
    price = _parse_float(best.price, "price")
    size = _parse_float(best.size, "size")
    return price, size


def _extract_side(levels: Sequence[PriceLevel], side: str) -> tuple[float, float]:
    try:
        return extract_best_level(levels)
    except OrderbookError as exc:
        raise OrderbookError(f"extract best {side}: {exc}", empty=exc.empty) from exc


class OrderbookManager:
    """Keeps the best bid and ask of each token and publishes every change.

    Incoming messages are read from ``messages``; a ``None`` item marks the
    end of the feed. Updated snapshots are put on ``updates``; once the
    manager is closed a final ``None`` is put there.
    """

    def __init__(
        self,
        messages: queue.Queue[OrderbookMessage | None] | None = None,
        *,
        logger: logging.Logger | None = None,
        buffer_size: int = DEFAULT_UPDATE_BUFFER,
        poll_interval: float = 0.05,
    ) -> None:
        self._books: dict[str, OrderbookSnapshot] = {}
        self._lock = threading.RLock()
        self._logger = logger or logging.getLogger(__name__)
        self._messages = messages if messages is not None else queue.Queue()
        self._updates: queue.Queue[OrderbookSnapshot | None] = queue.Queue()
        self._buffer_size = buffer_size
        self._poll_interval = poll_interval
        self._thread: threading.Thread | None = None

    @property
    def updates(self) -> queue.Queue[OrderbookSnapshot | None]:
        """Queue receiving a copy of every updated snapshot."""
        return self._updates

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def start(self, stop_event: threading.Event) -> None:
        """Begin processing messages in a background thread until stopped."""
        self._logger.info("orderbook-manager-starting")
        self._thread = threading.Thread(
            target=self._process_messages,
            args=(stop_event,),
            name="orderbook-manager",
            daemon=True,
        )
        self._thread.start()

    def _process_messages(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                msg = self._messages.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if msg is None:
                self._logger.info("message-channel-closed")
                return
            try:
                self.handle_message(msg)
            except OrderbookError as err:
                if err.empty:
                    self._logger.debug(
                        "orderbook-empty event-type=%s asset-id=%s",
                        msg.event_type,
                        msg.asset_id,
                    )
                else:
                    self._logger.warning(
                        "handle-message-error error=%s event-type=%s asset-id=%s",
                        err,
                        msg.event_type,
                        msg.asset_id,
                    )
        self._logger.info("orderbook-manager-stopping")

    def handle_message(self, msg: OrderbookMessage) -> None:
        """Apply one message; event types other than book updates are ignored."""
        with UPDATE_PROCESSING_DURATION.time():
            UPDATES_TOTAL.labels(msg.event_type).inc()
            if msg.event_type == "book":
                self.handle_book_message(msg)
            elif msg.event_type == "price_change":
                self.handle_price_change_message(msg)

    def _acquire(self) -> None:
        start = time.perf_counter()
        self._lock.acquire()
        LOCK_CONTENTION_DURATION.observe(time.perf_counter() - start)

    def handle_book_message(self, msg: OrderbookMessage) -> None:
        """Replace the token's snapshot with the message's best levels."""
        bid_price, bid_size = _extract_side(msg.bids, "bid")
        ask_price, ask_size = _extract_side(msg.asks, "ask")

        snapshot = OrderbookSnapshot(
            market_id=msg.market,
            token_id=msg.asset_id,
            best_bid_price=bid_price,
            best_bid_size=bid_size,
            best_ask_price=ask_price,
            best_ask_size=ask_size,
            last_updated=datetime.now(),
        )

        self._acquire()
        try:
            self._books[msg.asset_id] = snapshot
            SNAPSHOTS_TRACKED.set(len(self._books))
            published = snapshot.copy()
        finally:
            self._lock.release()

        self._logger.debug(
            "orderbook-snapshot-updated token-id=%s best-bid=%s best-ask=%s",
            msg.asset_id,
            bid_price,
            ask_price,
        )
        self._publish(published)

    def handle_price_change_message(self, msg: OrderbookMessage) -> None:
        """Update the best prices of an existing snapshot.

        Sizes of zero leave the stored size unchanged. A token with no
        snapshot yet is treated as a full book.
        """
        bid: tuple[float, float] | None = None
        ask: tuple[float, float] | None = None
        if msg.bids:
            try:
                bid = extract_best_level(msg.bids)
            except OrderbookError:
                bid = None
        if msg.asks:
            try:
                ask = extract_best_level(msg.asks)
            except OrderbookError:
                ask = None

        self._acquire()
        try:
            snapshot = self._books.get(msg.asset_id)
            if snapshot is not None:
                if bid is not None:
                    snapshot.best_bid_price = bid[0]
                    if bid[1] > 0:
                        snapshot.best_bid_size = bid[1]
                if ask is not None:
                    snapshot.best_ask_price = ask[0]
                    if ask[1] > 0:
                        snapshot.best_ask_size = ask[1]
                snapshot.last_updated = datetime.now()
                published = snapshot.copy()
        finally:
            self._lock.release()

        if snapshot is None:
            self.handle_book_message(msg)
            return

        self._logger.debug(
            "orderbook-price-updated token-id=%s best-bid=%s best-ask=%s",
            msg.asset_id,
            published.best_bid_price,
            published.best_ask_price,
        )
        self._publish(published)

    def _publish(self, snapshot: OrderbookSnapshot) -> None:
        if self._updates.qsize() >= self._buffer_size:
            self._logger.error(
                "CRITICAL-orderbook-update-channel-full-DROPPING-DATA "
                "token-id=%s buffer-size=%d action=%s",
                snapshot.token_id,
                self._buffer_size,
                "processing too slow or increase buffer",
            )
            UPDATES_DROPPED_TOTAL.labels("channel_full").inc()
            return
        self._updates.put(snapshot)

    def get_snapshot(self, token_id: str) -> OrderbookSnapshot | None:
        """Return a copy of the token's snapshot, or None if unknown."""
        with self._lock:
            snapshot = self._books.get(token_id)
            return snapshot.copy() if snapshot is not None else None

    def get_all_snapshots(self) -> dict[str, OrderbookSnapshot]:
        """Return copies of all snapshots keyed by token id."""
        with self._lock:
            return {token_id: snap.copy() for token_id, snap in self._books.items()}

    def close(self) -> None:
        """Wait for processing to finish and signal the end of updates."""
        self._logger.info("closing-orderbook-manager")
        if self._thread is not None:
            self._thread.join()
        self._updates.put(None)
        self._logger.info("orderbook-manager-closed")

    def __enter__(self) -> OrderbookManager:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()