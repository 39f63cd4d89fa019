"""Request telemetry for the ``/api`` namespace.

Counters are updated once per completed response and only ever grow.
Statistics (uptime, success rate, latency, throughput) are derived when
``snapshot()`` is called.

Only responses with a status in ``[200, 400)`` count as successful, so
redirects are folded into success while 4xx/5xx responses are excluded
from both the success count and the latency sum.

Throughput comes from a ring of per-second buckets covering the last
``window_seconds``. Reading it has no side effects, so several pollers see
the same rate.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from gateway.models.metrics import EndpointDetail, MetricsSnapshot, Uptime

API_PREFIX = "/api/"


@dataclass
class Counters:
    total_requests: int = 0
    successful_requests: int = 0
    total_response_time_ms: float = 0.0

    @property
    def success_rate(self) -> str:
        if self.total_requests == 0:
            return "0.0"
        return f"{self.successful_requests / self.total_requests * 100:.1f}"

    @property
    def avg_response_time(self) -> str:
        if self.successful_requests == 0:
            return "0.00"
        return f"{self.total_response_time_ms / self.successful_requests:.2f}"


class ThroughputWindow:
    """Ring of per-second hit counts."""

    def __init__(self, window_seconds: int):
        self.window_seconds = window_seconds
        self._seconds = [-1] * window_seconds
        self._counts = [0] * window_seconds

    def add(self, now: float) -> None:
        second = int(now)
        slot = second % self.window_seconds
        if self._seconds[slot] != second:
            self._seconds[slot] = second
            self._counts[slot] = 0
        self._counts[slot] += 1

    def total(self, now: float) -> int:
        current = int(now)
        return sum(
            count
            for second, count in zip(self._seconds, self._counts)
            if 0 <= current - second < self.window_seconds
        )


def endpoint_name(path: str) -> str | None:
    """Return the first path segment after ``/api/``, or None outside the namespace."""
    if not path.startswith(API_PREFIX):
        return None
    return path[len(API_PREFIX):].split("/", 1)[0]


def split_uptime(total_seconds: float) -> Uptime:
    seconds = int(total_seconds)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return Uptime(days=days, hours=hours, minutes=minutes, seconds=seconds)


class MetricsCollector:
    def __init__(
        self,
        throughput_window_seconds: int = 60,
        clock=time.monotonic,
        max_endpoints: int = 1000,
    ):
        self._clock = clock
        self.max_endpoints = max_endpoints
        self._lock = threading.Lock()
        self.started_at = clock()
        self.totals = Counters()
        self.endpoints: dict[str, Counters] = {}
        self._throughput = ThroughputWindow(throughput_window_seconds)

    def record(self, path: str, status_code: int, duration_ms: float) -> None:
        """Fold one completed response into the counters.

        Paths outside ``/api/`` are ignored. A bare ``/api/`` request counts
        toward the global total only. Once ``max_endpoints`` names are tracked,
        requests for new names count toward the global figures only.
        """
        name = endpoint_name(path)
        if name is None:
            return

        with self._lock:
            self.totals.total_requests += 1
            if not name:
                return

            counters = self.endpoints.get(name)
            if counters is None and len(self.endpoints) < self.max_endpoints:
                counters = self.endpoints[name] = Counters()
            if counters is not None:
                counters.total_requests += 1

            if 200 <= status_code < 400:
                self.totals.successful_requests += 1
                self.totals.total_response_time_ms += duration_ms
                self._throughput.add(self._clock())
                if counters is not None:
                    counters.successful_requests += 1
                    counters.total_response_time_ms += duration_ms

    def requests_per_second(self) -> float:
        now = self._clock()
        # Never divide by less than one bucket.
        elapsed = max(1.0, min(self._throughput.window_seconds, now - self.started_at))
        return self._throughput.total(now) / elapsed

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            uptime = split_uptime(self._clock() - self.started_at)
            per_second = f"{self.requests_per_second():.2f}"
            per_minute = f"{float(per_second) * 60:.2f}"
            details = [
                EndpointDetail(
                    name=name,
                    total_requests=counters.total_requests,
                    avg_response_time=f"{counters.avg_response_time}ms",
                    success_rate=f"{counters.success_rate}%",
                )
                for name, counters in self.endpoints.items()
            ]
            return MetricsSnapshot(
                total_requests=self.totals.total_requests,
                uptime=uptime,
                success_rate=f"{self.totals.success_rate}%",
                avg_response_time=f"{self.totals.avg_response_time}ms",
                requests_per_second=per_second,
                requests_per_minute=per_minute,
                endpoint_details=details,
            )
