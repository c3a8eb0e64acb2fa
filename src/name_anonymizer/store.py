"""Durable storage for the alias table — one serialized blob per store.

    store = JsonFileStore("~/.name-anonymizer/anonymized-names.json")
    registry.replace_all(store.load())     # {} on first run
    store.save(registry.export())          # False (and a warning) on I/O failure

Loading is strict: a blob that exists but cannot be parsed raises
:class:`StoreCorruptedError`.  Saving is best-effort: failures are logged
and reported through the return value, the in-memory registry stays
authoritative.  ``load`` and ``save`` exclude each other.
"""

from __future__ import annotations
import json
import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Any, Mapping

from .errors import StoreCorruptedError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS blobs (
    name TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    updated_at REAL NOT NULL DEFAULT (julianday('now'))
);
"""


def encode_table(table: Mapping[str, Any]) -> str:
    """Serialize an exported registry table."""
    return json.dumps(
        {
            "version": FORMAT_VERSION,
            "aliases": dict(table.get("aliases", {})),
            "display": dict(table.get("display", {})),
        },
        ensure_ascii=False,
        sort_keys=True,
    )


def decode_table(blob: str) -> dict[str, dict[str, str]]:
    """Parse a blob written by :func:`encode_table`.  Raises ValueError."""
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError("alias table must be a JSON object")
    version = data.get("version")
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported alias table version {version!r}")
    out: dict[str, dict[str, str]] = {}
    for section in ("aliases", "display"):
        entries = data.get(section, {})
        if not isinstance(entries, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in entries.items()
        ):
            raise ValueError(f"{section!r} must map strings to strings")
        out[section] = entries
    return out


class AliasStore:
    """Base class: locking plus strict-load / best-effort-save semantics.

    Subclasses implement ``_read() -> str | None`` and ``_write(blob)``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def location(self) -> str:
        return type(self).__name__

    def load(self) -> dict[str, dict[str, str]]:
        """Return the stored table, or ``{}`` if nothing was ever saved."""
        with self._lock:
            try:
                blob = self._read()
                if blob is None:
                    return {}
                table = decode_table(blob)
            except (OSError, ValueError, sqlite3.Error) as exc:
                raise StoreCorruptedError(
                    f"Could not load anonymized names from {self.location}"
                ) from exc
        logger.info("Loaded %d anonymized names from %s", len(table["display"]), self.location)
        return table

    def save(self, table: Mapping[str, Any]) -> bool:
        """Persist *table*.  Returns False (after logging) on failure."""
        with self._lock:
            try:
                self._write(encode_table(table))
            except (OSError, TypeError, ValueError, sqlite3.Error):
                logger.warning("Problem saving anonymized names to %s", self.location, exc_info=True)
                return False
        return True

    def _read(self) -> str | None:
        raise NotImplementedError

    def _write(self, blob: str) -> None:
        raise NotImplementedError


class MemoryStore(AliasStore):
    """Keeps the serialized blob in memory (tests, throwaway sessions)."""

    def __init__(self, blob: str | None = None) -> None:
        super().__init__()
        self._blob = blob

    def _read(self) -> str | None:
        return self._blob

    def _write(self, blob: str) -> None:
        self._blob = blob


class JsonFileStore(AliasStore):
    """JSON file, written atomically (temp file + rename, mode 0600)."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path).expanduser()

    @property
    def location(self) -> str:
        return str(self.path)

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(blob, encoding="utf-8")
            if os.name != "nt":
                os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        finally:
            if tmp.exists():
                tmp.unlink()


class SqliteStore(AliasStore):
    """SQLite database holding the blob in a single row — survives restarts."""

    def __init__(self, path: str | Path, *, name: str = "anonymized-names") -> None:
        super().__init__()
        self.path = Path(path).expanduser()
        self.name = name
        self._db: sqlite3.Connection | None = None

    @property
    def location(self) -> str:
        return f"{self.path}#{self.name}"

    def _connection(self) -> sqlite3.Connection:
        # Opened lazily so a broken database surfaces through load()/save()
        if self._db is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            db = sqlite3.connect(str(self.path), check_same_thread=False)
            try:
                db.executescript(_SCHEMA)
            except sqlite3.Error:
                db.close()
                raise
            self._db = db
        return self._db

    def _read(self) -> str | None:
        if self._db is None and not self.path.exists():
            return None
        row = self._connection().execute(
            "SELECT body FROM blobs WHERE name = ?", (self.name,)
        ).fetchone()
        return row[0] if row else None

    def _write(self, blob: str) -> None:
        db = self._connection()
        with db:
            db.execute(
                "INSERT OR REPLACE INTO blobs (name, body, updated_at) "
                "VALUES (?, ?, julianday('now'))",
                (self.name, blob),
            )

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
