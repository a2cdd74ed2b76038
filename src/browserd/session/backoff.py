"""Reconnect pacing for the session loop.

Reconnects never give up, but they are spaced out: each consecutive failed
attempt grows the delay geometrically (with jitter) up to a ceiling, and no
more than ``max_attempts`` sign-ins may start within any ``window_s``
seconds.
"""

from __future__ import annotations

import random
import time
from collections import deque
from typing import Callable, Deque, Optional

from browserd.config.models import RetryConfig


class RetryPolicy:
    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or RetryConfig()
        if self.config.base_delay_s < 0 or self.config.max_delay_s < self.config.base_delay_s:
            raise ValueError("retry delays must satisfy 0 <= base <= max")
        if self.config.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._clock = clock
        self._rng = rng or random.Random()
        self._failures = 0
        self._starts: Deque[float] = deque()

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def record_attempt(self) -> None:
        """Note that a sign-in attempt is starting now."""

        now = self._clock()
        self._starts.append(now)
        self._trim(now)

    def record_failure(self) -> None:
        self._failures += 1

    def record_success(self) -> None:
        self._failures = 0

    def _trim(self, now: float) -> None:
        window = self.config.window_s
        while self._starts and now - self._starts[0] >= window:
            self._starts.popleft()

    def backoff_delay(self) -> float:
        """Jittered exponential delay for the current failure streak."""

        cfg = self.config
        if self._failures <= 0:
            return 0.0
        raw = min(cfg.max_delay_s, cfg.base_delay_s * (cfg.factor ** (self._failures - 1)))
        if cfg.jitter > 0:
            raw *= 1.0 + self._rng.uniform(-cfg.jitter, cfg.jitter)
        return max(0.0, min(cfg.max_delay_s, raw))

    def rate_delay(self) -> float:
        """Time until another attempt fits under the attempt-rate cap."""

        now = self._clock()
        self._trim(now)
        if len(self._starts) < self.config.max_attempts:
            return 0.0
        return max(0.0, self._starts[0] + self.config.window_s - now)

    def next_delay(self) -> float:
        return max(self.backoff_delay(), self.rate_delay())


__all__ = ["RetryPolicy"]
