"""Status-monitor targets, kept as one JSON array file keyed by name."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from gateway.db import files
from gateway.errors import ConflictError, NotFoundError, ValidationError
from gateway.models.monitor import POST_JSON, MonitoredEndpoint

logger = logging.getLogger(__name__)


def _check_request_body(monitor_type: str, request_body: str | None) -> None:
    if monitor_type == POST_JSON and request_body:
        try:
            files.parse_json(request_body)
        except ValueError as exc:
            raise ValidationError("requestBody must be valid JSON for POST_JSON type.") from exc


class MonitorRegistry:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._monitors: list[MonitoredEndpoint] = []
        # Rows that do not validate are written back unchanged.
        self._unparsed: list = []

    def load(self) -> None:
        monitors, unparsed = [], []
        for row in files.load_json_array(self.path, "monitored endpoints"):
            try:
                monitors.append(MonitoredEndpoint.model_validate(row))
            except PydanticValidationError:
                logger.warning("Keeping malformed monitored endpoint in %s as-is", self.path)
                unparsed.append(row)
        with self._lock:
            self._monitors = monitors
            self._unparsed = unparsed

    def _flush(self) -> None:
        rows = [m.model_dump(mode="json", by_alias=True) for m in self._monitors]
        files.save_json_array(self.path, rows + self._unparsed, "monitored endpoints")

    def _find(self, name: str) -> MonitoredEndpoint:
        for monitor in self._monitors:
            if monitor.name == name:
                return monitor
        raise NotFoundError("Status endpoint not found.")

    def __len__(self) -> int:
        return len(self._monitors)

    def list(self) -> list[MonitoredEndpoint]:
        """Monitors visible on the public status page."""
        return [m for m in self._monitors if not m.hidden]

    def list_all(self) -> list[MonitoredEndpoint]:
        return list(self._monitors)

    def add(
        self,
        name: str,
        test_url: str,
        type: str,
        request_body: str | None = None,
    ) -> MonitoredEndpoint:
        _check_request_body(type, request_body)
        with self._lock:
            if any(m.name == name for m in self._monitors):
                raise ConflictError("Endpoint with this name already exists.")
            monitor = MonitoredEndpoint(
                name=name,
                test_url=test_url,
                type=type,
                request_body=request_body or "",
                hidden=False,
            )
            self._monitors.append(monitor)
            self._flush()
        logger.info("Added status monitor %s", name)
        return monitor

    def edit(
        self,
        name: str,
        test_url: str | None = None,
        type: str | None = None,
        request_body: str | None = None,
    ) -> MonitoredEndpoint:
        """Merge the supplied fields over an existing monitor.

        ``request_body`` is always overwritten and falls back to ``""``.
        """
        with self._lock:
            monitor = self._find(name)
            _check_request_body(type or monitor.type, request_body)
            if test_url:
                monitor.test_url = test_url
            if type:
                monitor.type = type
            monitor.request_body = request_body or ""
            self._flush()
        return monitor

    def toggle_visibility(self, name: str) -> bool:
        with self._lock:
            monitor = self._find(name)
            monitor.hidden = not monitor.hidden
            self._flush()
        return monitor.hidden

    def delete(self, name: str) -> None:
        with self._lock:
            monitor = self._find(name)
            self._monitors.remove(monitor)
            self._flush()
        logger.info("Deleted status monitor %s", name)
