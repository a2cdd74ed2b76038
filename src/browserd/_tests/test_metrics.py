from __future__ import annotations

import json

from browserd.metrics import Metrics


def test_counters_gauges_and_histograms_snapshot() -> None:
    metrics = Metrics(window=16)
    metrics.inc("input.applied")
    metrics.inc("input.applied")
    metrics.inc("latency", 0.5)
    metrics.set("session.retry_generation", 3)
    for value in (10.0, 20.0, 30.0):
        metrics.observe_ms("session.negotiation_ms", value)

    snap = metrics.snapshot()

    assert snap["counters"] == {"input.applied": 2, "latency": 0.5}
    assert snap["gauges"] == {"session.retry_generation": 3.0}
    stats = snap["histograms"]["session.negotiation_ms"]
    assert stats["last_ms"] == 30.0
    assert stats["mean_ms"] == 20.0
    assert stats["p50_ms"] == 20.0
    assert stats["max_ms"] == 30.0
    json.dumps(snap)


def test_histogram_window_is_bounded() -> None:
    metrics = Metrics(window=16)
    for value in range(100):
        metrics.observe_ms("h", float(value))

    stats = metrics.snapshot()["histograms"]["h"]

    assert stats["max_ms"] == 99.0
    assert stats["mean_ms"] == sum(range(84, 100)) / 16


def test_unknown_names_read_as_empty() -> None:
    metrics = Metrics(window=16)

    assert metrics.counter("nope") == 0.0
    assert metrics.gauge("nope") is None
