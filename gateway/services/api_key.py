"""API key store.

Keys are issued one per client identity (the caller's IP address) and kept in
a single JSON array file that is rewritten in full on every mutation. Keys
carry a fixed prefix (``matic-`` by default) followed by 18 alphanumeric
characters.

The master and status-page keys come from configuration. They are accepted
everywhere an issued key is, skip rate limiting, and are never written to
the key file.
"""

from __future__ import annotations

import logging
import secrets
import string
import threading
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from gateway.db import files
from gateway.models.api_key import ApiKeyRecord

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
KEY_RANDOM_LENGTH = 18


def generate_key(prefix: str) -> str:
    """Return ``prefix`` followed by 18 characters from the 62-symbol alphabet."""
    return prefix + "".join(secrets.choice(KEY_ALPHABET) for _ in range(KEY_RANDOM_LENGTH))


class KeyStore:
    """In-memory key table mirrored to a JSON file.

    The in-memory table is authoritative: a failed write is logged and the
    next successful write brings the file back in sync.
    """

    def __init__(self, path: Path, privileged_keys=(), prefix: str = "matic-"):
        self.path = Path(path)
        self.prefix = prefix
        self._privileged = frozenset(privileged_keys)
        self._lock = threading.Lock()
        self._records: dict[str, ApiKeyRecord] = {}
        self._by_identity: dict[str, str] = {}
        # Rows that do not validate are written back unchanged.
        self._unparsed: list = []

    def load(self) -> None:
        """(Re)load the table from disk, degrading to empty on corruption."""
        records: dict[str, ApiKeyRecord] = {}
        unparsed = []
        for row in files.load_json_array(self.path, "API keys"):
            try:
                record = ApiKeyRecord.model_validate(row)
            except PydanticValidationError:
                logger.warning("Keeping malformed API key record in %s as-is", self.path)
                unparsed.append(row)
                continue
            records[record.api_key] = record

        with self._lock:
            self._records = records
            self._unparsed = unparsed
            self._by_identity = {}
            for record in records.values():
                self._by_identity.setdefault(record.ip_address, record.api_key)

    def _flush(self) -> None:
        rows = [r.model_dump(mode="json", by_alias=True) for r in self._records.values()]
        files.save_json_array(self.path, rows + self._unparsed, "API keys")

    def __len__(self) -> int:
        return len(self._records)

    def is_privileged(self, key: str | None) -> bool:
        return bool(key) and key in self._privileged

    def lookup_or_create(self, identity: str) -> tuple[ApiKeyRecord, bool]:
        """Return ``(record, created)`` for *identity*.

        Repeated calls for the same identity always return the same record.
        """
        with self._lock:
            existing = self._by_identity.get(identity)
            if existing is not None:
                return self._records[existing], False

            key = generate_key(self.prefix)
            while key in self._records or key in self._privileged:
                key = generate_key(self.prefix)

            now = datetime.now(timezone.utc)
            record = ApiKeyRecord(
                api_key=key,
                created_at=now,
                ip_address=identity,
                last_used=now,
                usage_count=0,
            )
            self._records[key] = record
            self._by_identity[identity] = key
            self._flush()

        logger.info("Issued new API key for %s", identity)
        return record, True

    def record_usage(self, key: str) -> ApiKeyRecord | None:
        """Bump usage stats for *key*. Returns None for keys not in the table."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            record.usage_count += 1
            record.last_used = datetime.now(timezone.utc)
            self._flush()
        return record
