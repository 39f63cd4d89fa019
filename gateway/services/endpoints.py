"""File-backed registry of served endpoints.

Each endpoint is a pair of files in the routes directory: ``<slug>.json``
holds the definition and ``<slug>.py`` holds the handler source. Handlers are
only loaded when the process starts (see ``gateway.services.handlers``), so
every mutation here takes effect after a restart.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from gateway.db import files
from gateway.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from gateway.models.endpoint import EndpointDefinition, EndpointSummary

logger = logging.getLogger(__name__)

DEFINITION_SUFFIX = ".json"
HANDLER_SUFFIX = ".py"

_SLUG_SPACES = re.compile(r"\s+")
_SLUG_STRIP = re.compile(r"[^a-z0-9-]")
_SLUG_DASHES = re.compile(r"-{2,}")

HANDLER_STUB = '''\
from fastapi.responses import JSONResponse


async def handle(request):
    return JSONResponse(
        status_code=501,
        content={"success": False, "message": "Endpoint not implemented yet."},
    )
'''


def normalize_slug(name: str) -> str:
    """Lowercase *name*, turn whitespace into hyphens and drop everything
    outside ``[a-z0-9-]``. Repeated hyphens collapse; edge hyphens go.

    Raises:
        ValidationError: If nothing is left.
    """
    slug = _SLUG_SPACES.sub("-", (name or "").strip().lower())
    slug = _SLUG_DASHES.sub("-", _SLUG_STRIP.sub("", slug)).strip("-")
    if not slug:
        raise ValidationError("Invalid endpoint name.")
    return slug


class EndpointRegistry:
    def __init__(self, routes_dir: Path, reserved_names=()):
        self.routes_dir = Path(routes_dir)
        self.reserved_names = frozenset(reserved_names)
        self._lock = threading.Lock()

    def definition_path(self, slug: str) -> Path:
        return self.routes_dir / f"{slug}{DEFINITION_SUFFIX}"

    def handler_path(self, slug: str) -> Path:
        return self.routes_dir / f"{slug}{HANDLER_SUFFIX}"

    def _read_definition(self, slug: str) -> dict:
        path = self.definition_path(slug)
        if not path.exists():
            raise NotFoundError("JSON config file not found.")
        try:
            config = files.read_json(path)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read or parse JSON file: {exc}") from exc
        if not isinstance(config, dict):
            raise PersistenceError("Endpoint definition is not a JSON object.")
        return config

    def _write(self, path: Path, writer, content) -> None:
        try:
            writer(path, content)
        except OSError as exc:
            logger.exception("Failed to write %s", path)
            raise PersistenceError(f"Failed to write {path.name}.") from exc

    def list(self) -> list[EndpointSummary]:
        """Report every definition and its hidden flag.

        A definition that cannot be parsed is reported with an error instead
        of failing the listing.
        """
        if not self.routes_dir.is_dir():
            return []
        try:
            paths = sorted(self.routes_dir.glob(f"*{DEFINITION_SUFFIX}"))
        except OSError as exc:
            raise PersistenceError("Failed to read endpoints directory.") from exc

        summaries = []
        for path in paths:
            try:
                config = files.read_json(path)
                if not isinstance(config, dict):
                    raise ValueError("not an object")
            except (OSError, ValueError):
                summaries.append(EndpointSummary(name=path.stem, hidden=False, error="Invalid JSON"))
                continue
            summaries.append(EndpointSummary(name=path.stem, hidden=config.get("hidden") is True))
        return summaries

    def toggle_visibility(self, name: str) -> bool:
        """Flip the hidden flag and return the new state."""
        slug = normalize_slug(name)
        with self._lock:
            config = self._read_definition(slug)
            config["hidden"] = not config.get("hidden", False)
            self._write(self.definition_path(slug), files.write_json, config)
        logger.info("Endpoint %s hidden=%s", slug, config["hidden"])
        return config["hidden"]

    def create(
        self,
        name: str,
        title: str,
        method: str,
        path: str,
        description: str = "",
        parameters: list | None = None,
        curl: str = "",
        response=None,
    ) -> str:
        """Write a definition and a stub handler for a new slug. Returns the slug.

        Raises:
            ValidationError: If *name* normalizes to nothing.
            ConflictError: If the slug is taken by files or a built-in route.
        """
        slug = normalize_slug(name)
        definition = EndpointDefinition(
            title=title,
            description=description or "",
            method=method.upper(),
            path=path,
            parameters=parameters or [],
            curl=curl or "",
            response=response if response is not None else {"success": True},
            hidden=False,
        )

        with self._lock:
            if slug in self.reserved_names:
                raise ConflictError(f"'{slug}' is reserved by a built-in route.")
            if self.definition_path(slug).exists() or self.handler_path(slug).exists():
                raise ConflictError("Endpoint with this name already exists.")

            self._write(self.definition_path(slug), files.write_json, definition.model_dump())
            try:
                self._write(self.handler_path(slug), files.write_text, HANDLER_STUB)
            except PersistenceError:
                # Leave no half-created endpoint behind.
                self.definition_path(slug).unlink(missing_ok=True)
                raise

        logger.info("Created endpoint %s", slug)
        return slug

    def delete(self, name: str) -> str:
        slug = normalize_slug(name)
        with self._lock:
            targets = [p for p in (self.definition_path(slug), self.handler_path(slug)) if p.exists()]
            if not targets:
                raise NotFoundError("Endpoint not found.")
            try:
                for target in targets:
                    target.unlink()
            except OSError as exc:
                logger.exception("Failed to delete files for endpoint %s", slug)
                raise PersistenceError("Failed to delete endpoint files.") from exc
        logger.info("Deleted endpoint %s", slug)
        return slug

    def get_script(self, name: str) -> str:
        path = self.handler_path(normalize_slug(name))
        if not path.exists():
            raise NotFoundError("Script file not found.")
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError("Failed to read script file.") from exc

    def save_script(self, name: str, code: str) -> str:
        slug = normalize_slug(name)
        path = self.handler_path(slug)
        with self._lock:
            if not path.exists():
                raise NotFoundError("Script file not found.")
            self._write(path, files.write_text, code)
        return slug

    def get_config(self, name: str) -> dict:
        return self._read_definition(normalize_slug(name))

    def save_config(self, name: str, content: str) -> str:
        """Replace a definition with *content* after checking it parses.

        The existing file is left untouched when *content* is not a JSON object.
        """
        slug = normalize_slug(name)
        try:
            parsed = files.parse_json(content)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid JSON format.") from exc
        if not isinstance(parsed, dict):
            raise ValidationError("Endpoint config must be a JSON object.")

        path = self.definition_path(slug)
        with self._lock:
            if not path.exists():
                raise NotFoundError("JSON file not found.")
            self._write(path, files.write_json, parsed)
        return slug
