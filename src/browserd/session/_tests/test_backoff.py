from __future__ import annotations

import random

import pytest

from browserd.config import RetryConfig
from browserd.session import RetryPolicy


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_no_delay_before_any_failure() -> None:
    policy = RetryPolicy(RetryConfig(jitter=0.0), clock=_Clock())

    assert policy.next_delay() == 0.0


def test_backoff_grows_geometrically_and_caps() -> None:
    policy = RetryPolicy(
        RetryConfig(base_delay_s=1.0, factor=2.0, max_delay_s=5.0, jitter=0.0, max_attempts=100),
        clock=_Clock(),
    )

    delays = []
    for _ in range(5):
        policy.record_failure()
        delays.append(policy.backoff_delay())

    assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_success_resets_the_failure_streak() -> None:
    policy = RetryPolicy(RetryConfig(jitter=0.0), clock=_Clock())
    policy.record_failure()
    policy.record_failure()

    policy.record_success()

    assert policy.consecutive_failures == 0
    assert policy.backoff_delay() == 0.0


def test_jitter_stays_within_bounds() -> None:
    policy = RetryPolicy(
        RetryConfig(base_delay_s=2.0, factor=1.0, max_delay_s=10.0, jitter=0.25),
        clock=_Clock(),
        rng=random.Random(1234),
    )
    policy.record_failure()

    samples = [policy.backoff_delay() for _ in range(200)]

    assert all(1.5 <= s <= 2.5 for s in samples)
    assert len(set(samples)) > 1


def test_attempt_rate_is_capped_within_window() -> None:
    clock = _Clock()
    policy = RetryPolicy(RetryConfig(jitter=0.0, max_attempts=3, window_s=60.0), clock=clock)

    for t in (0.0, 10.0, 20.0):
        clock.now = t
        policy.record_attempt()

    clock.now = 30.0
    assert policy.rate_delay() == pytest.approx(30.0)
    assert policy.next_delay() == pytest.approx(30.0)

    clock.now = 60.0
    assert policy.rate_delay() == 0.0


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(RetryConfig(base_delay_s=10.0, max_delay_s=1.0))
    with pytest.raises(ValueError):
        RetryPolicy(RetryConfig(max_attempts=0))
