"""Per-operation counters and timing totals for image handles.

The handle times every operation under ``image.<op>`` (``image.resize``,
``image.save``...) and counts backend resources with
``image.resource_loads`` / ``image.resource_releases``.

Usage:
    from rasterkit.metrics import metrics
    with metrics.timed("image.resize"):
        ...
    metrics.stats("image.resize").count
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any


@dataclass(slots=True)
class TimingStats:
    count: int = 0
    total: float = 0.0
    longest: float = 0.0

    def add(self, seconds: float) -> None:
        self.count += 1
        self.total += seconds
        self.longest = max(self.longest, seconds)

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class Metrics:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Counter[str] = Counter()
        self._timings: dict[str, TimingStats] = {}

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += amount

    def counter(self, key: str) -> int:
        return self._counters[key]

    def stats(self, key: str) -> TimingStats:
        """Copy of the timing totals for ``key`` (empty when never timed)."""
        with self._lock:
            found = self._timings.get(key)
            return TimingStats(**asdict(found)) if found else TimingStats()

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        """Time the block; failed operations are timed too."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._timings.setdefault(key, TimingStats()).add(elapsed)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {key: asdict(stats) for key, stats in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters = Counter()
            self._timings = {}


metrics = Metrics()
