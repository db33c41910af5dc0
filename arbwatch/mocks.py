"""In-memory stand-ins for the opportunity store and the market data feed."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterable

from .models import Opportunity, OrderbookMessage


class MockStorage:
    """Keeps stored opportunities in a list."""

    def __init__(self) -> None:
        self.opportunities: list[Opportunity] = []
        self.closed = False
        self._lock = threading.Lock()

    def store_opportunity(self, opp: Opportunity) -> None:
        """Store a copy of the opportunity."""
        with self._lock:
            self.opportunities.append(opp.copy())

    def close(self) -> None:
        """Mark the store as closed; stored opportunities are kept."""
        with self._lock:
            self.closed = True

    def get_opportunities(self) -> list[Opportunity]:
        """Return a new list of the stored opportunities."""
        with self._lock:
            return list(self.opportunities)

    def clear(self) -> None:
        with self._lock:
            self.opportunities = []


class MockWebSocket:
    """Simulated feed connection with a bounded message buffer.

    Messages go to ``messages``; after ``close`` a final ``None`` is queued.
    """

    def __init__(self, buffer_size: int) -> None:
        self.buffer_size = buffer_size
        # One extra slot is reserved for the end-of-feed marker.
        self.messages: queue.Queue[OrderbookMessage | None] = queue.Queue(maxsize=buffer_size + 1)
        self.subscriptions: list[str] = []
        self.connected = False
        self._closed = False
        self._lock = threading.Lock()

    def connect(self) -> None:
        with self._lock:
            self.connected = True

    def disconnect(self) -> None:
        with self._lock:
            self.connected = False

    def subscribe(self, token_ids: Iterable[str]) -> None:
        """Add token ids to the subscription list."""
        with self._lock:
            self.subscriptions.extend(token_ids)

    def send_message(self, msg: OrderbookMessage) -> None:
        """Queue a message as if received; dropped when the buffer is full."""
        with self._lock:
            if self._closed:
                raise RuntimeError("send on closed websocket")
            if self.messages.qsize() >= self.buffer_size:
                return
            self.messages.put_nowait(msg)

    def is_connected(self) -> bool:
        with self._lock:
            return self.connected

    def get_subscriptions(self) -> list[str]:
        """Return a copy of all subscribed token ids."""
        with self._lock:
            return list(self.subscriptions)

    def close(self) -> None:
        """Mark the end of the feed."""
        with self._lock:
            if self._closed:
                raise RuntimeError("websocket already closed")
            self._closed = True
            self.messages.put_nowait(None)


def new_usdc_amount(dollars: float) -> int:
    """Convert dollars to USDC base units (6 decimals), truncating."""
    return int(dollars * 1e6)