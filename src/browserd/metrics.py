"""
Lightweight JSON metrics for browserd.

Counters (monotonic totals), gauges (latest value) and histograms (rolling
window with basic stats). Timings are in milliseconds by convention
(``*_ms``). ``snapshot()`` returns a JSON-ready dict that the launchers log
when a session ends.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from browserd.utils.env import env_int


@dataclass
class _Hist:
    window: int
    values: Deque[float] = field(default_factory=deque)
    last: float = 0.0
    count: int = 0

    def observe(self, v: float) -> None:
        self.last = float(v)
        if len(self.values) == self.window:
            self.values.popleft()
        self.values.append(self.last)
        self.count += 1

    def stats(self) -> Dict[str, float]:
        n = len(self.values)
        if n == 0:
            return {"last_ms": 0.0, "mean_ms": 0.0, "p50_ms": 0.0, "p90_ms": 0.0, "max_ms": 0.0}
        arr: List[float] = sorted(self.values)

        def q(p: float) -> float:
            idx = min(max(int(round(p * (n - 1))), 0), n - 1)
            return arr[idx]

        return {
            "last_ms": self.last,
            "mean_ms": sum(arr) / n,
            "p50_ms": q(0.50),
            "p90_ms": q(0.90),
            "max_ms": arr[-1],
        }


class Metrics:
    """Small metrics aggregator with JSON snapshot."""

    def __init__(self, window: Optional[int] = None) -> None:
        self._window = max(16, window if window is not None else env_int("BROWSERD_METRICS_WINDOW", 256))
        self._counters: Dict[str, float] = {}
        self._gauges: Dict[str, float] = {}
        self._hists: Dict[str, _Hist] = {}

    def inc(self, name: str, value: float = 1.0) -> None:
        self._counters[name] = self._counters.get(name, 0.0) + float(value)

    def set(self, name: str, value: float) -> None:
        self._gauges[name] = float(value)

    def observe_ms(self, name: str, value_ms: float) -> None:
        h = self._hists.get(name)
        if h is None:
            h = _Hist(window=self._window, values=deque(maxlen=self._window))
            self._hists[name] = h
        h.observe(float(value_ms))

    def counter(self, name: str) -> float:
        return self._counters.get(name, 0.0)

    def gauge(self, name: str) -> Optional[float]:
        return self._gauges.get(name)

    def snapshot(self) -> Dict[str, object]:
        counters = {k: int(v) if float(v).is_integer() else float(v) for k, v in self._counters.items()}
        return {
            "version": "v1",
            "ts": time.time(),
            "gauges": dict(self._gauges),
            "counters": counters,
            "histograms": {k: v.stats() for k, v in self._hists.items()},
        }


__all__ = ["Metrics"]
