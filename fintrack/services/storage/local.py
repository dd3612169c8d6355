"""
Local Storage Implementations

DESIGN DECISION: One JSON file per key in a data directory, the desktop
equivalent of the browser's local storage:
1. Users can inspect or back up their data with a file manager
2. No database setup required
3. Each write replaces one small file atomically

TRADEOFFS:
- No transactions (two app windows can overwrite each other)
- Listing keys scans the directory (fine for a handful of profiles)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote
from uuid import UUID

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fintrack.models.audit import AuditEvent
from fintrack.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
    StorageError,
)


logger = structlog.get_logger(__name__)

_SUFFIX = ".json"


class FileKeyValueStore(KeyValueStore):
    """
    File-backed key/value store.

    Keys are percent-encoded into file names, so profile names with
    spaces, slashes or umlauts are safe.
    """

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._dir}: {e}") from e

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / (quote(key, safe="") + _SUFFIX)

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, value: str) -> None:
        # Write next to the target, then swap it in
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        try:
            return self._read(self._path(key))
        except OSError as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._write(self._path(key), value)
        except OSError as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e
        logger.debug("storage_write", key=key, size=len(value))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete '{key}': {e}") from e
        logger.debug("storage_delete", key=key)
        return True

    def keys(self) -> list[str]:
        return sorted(
            unquote(path.name[: -len(_SUFFIX)])
            for path in self._dir.glob("*" + _SUFFIX)
            if not path.name.startswith(".tmp-")
        )


class MemoryKeyValueStore(KeyValueStore):
    """In-memory store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)


class KeyValueAuditStorage(AuditStorageInterface):
    """
    Audit events kept as a capped JSON list under one key.

    Only the newest `limit` events are retained; the structured log
    keeps the complete history.
    """

    AUDIT_KEY = "fintrack_audit"

    def __init__(self, store: KeyValueStore, limit: int = 500):
        self._store = store
        self._limit = limit

    def _load(self) -> list[AuditEvent]:
        raw = self._store.get(self.AUDIT_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("audit_log_corrupt", key=self.AUDIT_KEY)
            return []
        if not isinstance(items, list):
            return []

        events = []
        for item in items:
            try:
                events.append(AuditEvent.model_validate(item))
            except ValueError:
                logger.warning("audit_event_unreadable", item=str(item)[:200])
        return events

    def append_event(self, event: AuditEvent) -> bool:
        events = self._load()
        events.append(event)
        events = events[-self._limit:]
        self._store.set(
            self.AUDIT_KEY,
            json.dumps([e.model_dump(mode="json") for e in events]),
        )
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._load() if e.correlation_id == correlation_id]

    def get_recent_events(
        self,
        limit: int = 100,
        profile: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = self._load()
        if profile is not None:
            events = [e for e in events if e.profile == profile]
        return list(reversed(events))[:limit]
