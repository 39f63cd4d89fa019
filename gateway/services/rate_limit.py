"""In-memory per-identity rate limiter.

Each identity gets its own window that opens on its first request and
expires once ``window_seconds`` have elapsed. Expired windows are dropped by
a sweep that runs at most once per window length, from inside ``hit``.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass


@dataclass
class _Window:
    started_at: float
    hits: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    @property
    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class RateLimiter:
    """Fixed-size quota per identity over a rolling, per-identity window."""

    def __init__(self, max_requests: int = 100, window_seconds: int = 600, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    @property
    def message(self) -> str:
        minutes = max(1, self.window_seconds // 60)
        return f"Too many requests, please try again after {minutes} minutes."

    def _sweep(self, now: float) -> None:
        self._windows = {
            identity: window
            for identity, window in self._windows.items()
            if now - window.started_at < self.window_seconds
        }
        self._last_sweep = now

    def __len__(self) -> int:
        return len(self._windows)

    def hit(self, identity: str) -> RateLimitDecision:
        """Count one request for *identity* and decide whether to admit it."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            window = self._windows.get(identity)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now, hits=0)
                self._windows[identity] = window

            window.hits += 1
            reset_after = max(1, math.ceil(window.started_at + self.window_seconds - now))
            allowed = window.hits <= self.max_requests
            remaining = max(0, self.max_requests - window.hits)

        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=remaining,
            reset_after=reset_after,
        )

