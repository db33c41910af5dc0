"""Small in-process metrics: counters, gauges and histograms."""

from __future__ import annotations

import bisect
import math
import threading
import time as _time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager


class Counter:
    """A monotonically increasing value."""

    def __init__(self, name: str, help: str = "") -> None:
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self, amount: float = 1.0) -> None:
        """Increase the counter; a negative amount is rejected."""
        if amount < 0:
            raise ValueError("counter cannot decrease")
        with self._lock:
            self._value += amount


class LabeledCounter:
    """A family of counters keyed by the value of one label."""

    def __init__(self, name: str, help: str, label_name: str) -> None:
        self.name = name
        self.help = help
        self.label_name = label_name
        self._children: dict[str, Counter] = {}
        self._lock = threading.Lock()

    def labels(self, value: str) -> Counter:
        """Return the counter for a label value, creating it on first use."""
        with self._lock:
            child = self._children.get(value)
            if child is None:
                child = Counter(self.name, self.help)
                self._children[value] = child
            return child


class Gauge:
    """A value that can be set arbitrarily."""

    def __init__(self, name: str, help: str = "") -> None:
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)


class Histogram:
    """Observations counted into fixed upper-bound buckets."""

    def __init__(self, name: str, help: str, buckets: Iterable[float]) -> None:
        bounds = [float(b) for b in buckets]
        if any(b >= c for b, c in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be strictly increasing")
        if not bounds or bounds[-1] != math.inf:
            bounds.append(math.inf)
        self.name = name
        self.help = help
        self._bounds = bounds
        self._counts = [0] * len(bounds)
        self._sum = 0.0
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    def observe(self, value: float) -> None:
        index = bisect.bisect_left(self._bounds, value)
        with self._lock:
            self._counts[index] += 1
            self._sum += value
            self._count += 1

    @contextmanager
    def time(self) -> Iterator[None]:
        """Observe the wall-clock duration of the enclosed block in seconds."""
        start = _time.perf_counter()
        try:
            yield
        finally:
            self.observe(_time.perf_counter() - start)

    def bucket_counts(self) -> dict[float, int]:
        """Cumulative observation counts keyed by bucket upper bound."""
        with self._lock:
            result: dict[float, int] = {}
            running = 0
            for bound, count in zip(self._bounds, self._counts):
                running += count
                result[bound] = running
            return result


_LATENCY_BUCKETS = (0.0001, 0.0002, 0.0005, 0.001, 0.002, 0.005, 0.01, 0.025, 0.05, 0.1)

UPDATES_TOTAL = LabeledCounter(
    "polymarket_orderbook_updates_total",
    "Total number of orderbook updates",
    "event_type",
)

SNAPSHOTS_TRACKED = Gauge(
    "polymarket_orderbook_snapshots_tracked",
    "Number of orderbook snapshots tracked in memory",
)

UPDATES_DROPPED_TOTAL = LabeledCounter(
    "polymarket_orderbook_updates_dropped_total",
    "Total number of orderbook updates dropped due to channel full",
    "reason",
)

UPDATE_PROCESSING_DURATION = Histogram(
    "polymarket_orderbook_update_processing_duration_seconds",
    "Time to process orderbook update (parse + update + notify)",
    _LATENCY_BUCKETS,
)

LOCK_CONTENTION_DURATION = Histogram(
    "polymarket_orderbook_lock_contention_seconds",
    "Time waiting to acquire orderbook mutex lock",
    _LATENCY_BUCKETS,
)