"""JSON file adapter for the local fallback cache.

The whole entry collection lives under one fixed key of a single JSON
document, rewritten on every save. Writes go through a temporary file and
an atomic rename so a crash never leaves a half-written cache behind.
"""

import json
import os
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path

from debuglog.core.exceptions import PersistenceReadFailure, PersistenceWriteFailure
from debuglog.core.ports import Record

CACHE_KEY = "debug-logs"


class JsonFileCache:
    """File-backed implementation of LocalCachePort.

    Args:
        path: Location of the JSON document. Parent directories are created
            on first save.
        key: Key under which the collection is stored.
    """

    def __init__(self, path: str | Path, key: str = CACHE_KEY) -> None:
        self._path = Path(path)
        self._key = key
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Record]:
        """Return the cached collection, or an empty list if there is no file.

        Raises:
            PersistenceReadFailure: If the file exists but cannot be parsed.
        """
        with self._lock:
            try:
                text = self._path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return []
            except OSError as exc:
                raise PersistenceReadFailure(f"cannot read {self._path}") from exc
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PersistenceReadFailure(f"corrupt cache file {self._path}") from exc
        records = document.get(self._key, []) if isinstance(document, dict) else None
        if not isinstance(records, list):
            raise PersistenceReadFailure(f"unexpected cache layout in {self._path}")
        return [record for record in records if isinstance(record, dict)]

    def save(self, records: Sequence[Record]) -> None:
        """Atomically replace the cached collection.

        Raises:
            PersistenceWriteFailure: If the file cannot be written.
        """
        payload = json.dumps({self._key: list(records)})
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self._path)
            except OSError as exc:
                raise PersistenceWriteFailure(f"cannot write {self._path}") from exc
