"""
Response timing middleware.

Measures every request and hands the final status code and duration to the
app's MetricsCollector once the response is produced. Requests outside the
``/api/`` namespace are ignored by the collector.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Feeds completed responses into ``app.state.metrics``."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        metrics = request.app.state.metrics

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            metrics.record(request.url.path, 500, duration_ms)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record(request.url.path, response.status_code, duration_ms)
        return response
