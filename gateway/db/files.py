"""JSON file persistence helpers.

Every store in the gateway keeps its whole table in one file and rewrites it
in full on each mutation. Writes go through a temp file in the same directory
followed by ``os.replace`` so a crash mid-write never leaves a truncated file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json(text: str) -> Any:
    """Parse *text* as strict JSON; ``NaN`` and ``Infinity`` raise ``ValueError``."""
    return json.loads(text, parse_constant=_reject_constant)


def read_json(path: Path) -> Any:
    """Parse *path* as JSON. Raises ``OSError`` or ``ValueError`` on failure."""
    with open(path, encoding="utf-8") as fh:
        return json.load(fh, parse_constant=_reject_constant)


def write_json(path: Path, data: Any) -> None:
    """Atomically replace *path* with *data* serialized as indented JSON."""
    write_text(path, json.dumps(data, indent=2, ensure_ascii=False))


def write_text(path: Path, text: str) -> None:
    """Atomically replace *path* with *text*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        _unlink_quietly(tmp_name)
        raise


def _unlink_quietly(name: str) -> None:
    try:
        os.unlink(name)
    except FileNotFoundError:
        pass


def load_json_array(path: Path, label: str) -> list:
    """Load a JSON array table, degrading to an empty list on any failure.

    A missing file is created empty. An unreadable or corrupt file is logged
    and treated as empty so the server keeps serving.
    """
    if not path.exists():
        try:
            write_json(path, [])
            logger.info("Created empty %s file at %s", label, path)
        except OSError:
            logger.exception("Could not create %s file at %s", label, path)
        return []

    try:
        data = read_json(path)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load %s from %s (%s); starting empty", label, path, exc)
        return []

    if not isinstance(data, list):
        logger.warning("%s file %s does not hold a JSON array; starting empty", label, path)
        return []

    logger.info("Loaded %d %s from %s", len(data), label, path)
    return data


def save_json_array(path: Path, rows: list, label: str) -> bool:
    """Rewrite a JSON array table. Failures are logged, never raised.

    Returns True when the write succeeded.
    """
    try:
        write_json(path, rows)
    except OSError:
        logger.exception("Failed to save %s to %s", label, path)
        return False
    return True
