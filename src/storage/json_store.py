"""
Durable JSON record collections.

Each collection is one JSON file holding an ordered list of records,
keyed by their ``id`` field. The file is re-read on every operation so
separate processes (the webhook server and the voice agent worker) see
each other's writes. Every read-modify-write holds a file lock
(``<path>.lock``) so concurrent writers in different processes never
overwrite each other, and writes go through a temp file plus atomic
rename so a crash never leaves a half-written collection behind.

Nothing is cached in memory: if a write fails, the caller gets a
PersistenceError and the previous file contents remain authoritative.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class PersistenceError(Exception):
    """Raised when a collection file cannot be read or written."""


class JsonCollection:
    """A keyed record collection stored as a JSON array on disk."""

    def __init__(self, path: str, key_field: str = "id", lock_timeout: float = 10.0) -> None:
        self.path = path
        self.key_field = key_field
        self._lock = threading.RLock()
        self._file_lock = FileLock(f"{path}.lock", timeout=lock_timeout)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the in-process lock and the cross-process file lock."""
        with self._lock:
            try:
                os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
                self._file_lock.acquire()
            except (OSError, Timeout) as exc:
                raise PersistenceError(f"Cannot lock {self.path}: {exc}") from exc
            try:
                yield
            finally:
                self._file_lock.release()

    # ------------------------------------------------------------------ #
    # Low-level file access
    # ------------------------------------------------------------------ #

    def _read(self) -> list[Record]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise PersistenceError(f"Cannot read {self.path}: expected a JSON array")
        return data

    def _write(self, records: list[Record]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(records, fh, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error writing %s: %s", self.path, exc)
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Record operations
    # ------------------------------------------------------------------ #

    def all(self) -> list[Record]:
        """All records in insertion order."""
        with self._lock:
            return self._read()

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            for record in self._read():
                if record.get(self.key_field) == key:
                    return record
            return None

    def insert(self, record: Record) -> Record:
        """Append a new record. Raises KeyError if the key already exists."""
        key = record[self.key_field]
        with self._locked():
            records = self._read()
            if any(r.get(self.key_field) == key for r in records):
                raise KeyError(f"Record '{key}' already exists in {self.path}")
            records.append(record)
            self._write(records)
            return record

    def upsert(self, record: Record) -> Record:
        """Replace the record with the same key in place, or append it."""
        key = record[self.key_field]
        with self._locked():
            records = self._read()
            for index, existing in enumerate(records):
                if existing.get(self.key_field) == key:
                    records[index] = record
                    break
            else:
                records.append(record)
            self._write(records)
            return record

    def modify(self, key: str, mutate: Callable[[Record], Record]) -> Optional[Record]:
        """Read-modify-write one record under the collection lock.

        Returns the stored result, or None if no record has ``key``.
        """
        with self._locked():
            records = self._read()
            for index, existing in enumerate(records):
                if existing.get(self.key_field) == key:
                    records[index] = mutate(dict(existing))
                    self._write(records)
                    return records[index]
            return None

    def delete_where(self, predicate: Callable[[Record], bool]) -> int:
        """Delete every record matching ``predicate`` and return how many went."""
        with self._locked():
            records = self._read()
            kept = [r for r in records if not predicate(r)]
            removed = len(records) - len(kept)
            if removed:
                self._write(kept)
            return removed

    def seed(self, records: list[Record]) -> bool:
        """Write ``records`` only if the collection is empty. Returns True if seeded."""
        with self._locked():
            if self._read():
                return False
            self._write(list(records))
            return True
