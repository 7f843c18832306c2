"""Two-tier persistence of log entries.

Every entry is upserted into the local cache, which is the durability floor,
and written to the primary store (best-effort, bounded by a timeout).
Failures are logged and reported through ``Persisted``; nothing here raises
to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, TypeVar

from debuglog.core.encoding import entry_from_dict, entry_to_dict, entry_to_record
from debuglog.core.exceptions import (
    PersistenceReadFailure,
    ValidationError,
)
from debuglog.core.models import LogEntry, Persisted
from debuglog.core.ports import DEBUG_LOGS, LocalCachePort, Record, RecordStorePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT = 3.0


def _decode_all(records: Iterable[Record], source: str) -> list[LogEntry]:
    entries = []
    for record in records:
        try:
            entries.append(entry_from_dict(record))
        except ValidationError as exc:
            logger.warning("Skipping unreadable %s record: %s", source, exc)
    return entries


def _record_id(record: Any) -> str | None:
    """Id of a cached record, or None for rows without a usable id."""
    record_id = record.get("id") if isinstance(record, Mapping) else None
    return record_id if isinstance(record_id, str) and record_id else None


def merge_entries(
    primary: Iterable[LogEntry], cached: Iterable[LogEntry]
) -> list[LogEntry]:
    """Merge two entry collections, primary winning for ids present in both.

    Returns:
        Entries ordered by timestamp ascending.
    """
    merged = {entry.id: entry for entry in cached}
    merged.update((entry.id, entry) for entry in primary)
    return sorted(merged.values(), key=lambda e: e.timestamp)


class PersistenceCoordinator:
    """Dual-writes entries to a primary store and a local fallback cache.

    Args:
        store: Primary store, or None to run cache-only.
        cache: Local fallback cache.
        user_id: Scope stamped on every primary-store record and used to
            filter reads.
        timeout: Seconds allowed for each primary-store call.
    """

    def __init__(
        self,
        store: RecordStorePort | None,
        cache: LocalCachePort,
        user_id: str,
        timeout: float = DEFAULT_STORE_TIMEOUT,
    ) -> None:
        self._store = store
        self._cache = cache
        self._user_id = user_id
        self._timeout = timeout

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def store(self) -> RecordStorePort | None:
        return self._store

    async def _primary(self, operation: Awaitable[T]) -> T:
        return await asyncio.wait_for(operation, timeout=self._timeout)

    # --- Writes ---

    async def _write_primary(self, table: str, record: Record) -> bool:
        if self._store is None:
            return False
        try:
            await self._primary(self._store.create(table, record))
        except Exception:
            logger.warning(
                "Could not save record to %s in primary store", table, exc_info=True
            )
            return False
        return True

    def _mutate_cache(self, mutate: Callable[[list[Record]], list[Record]]) -> bool:
        try:
            records = self._cache.load()
        except Exception:
            logger.warning("Local cache unreadable; rebuilding it", exc_info=True)
            records = []
        try:
            self._cache.save(mutate(records))
        except Exception:
            logger.warning("Could not save logs to local cache", exc_info=True)
            return False
        return True

    async def store_entry(self, entry: LogEntry) -> bool:
        """Create the entry's row in the primary store."""
        return await self._write_primary(
            DEBUG_LOGS, entry_to_record(entry, self._user_id)
        )

    def cache_entry(self, entry: LogEntry) -> bool:
        """Upsert the entry into the local cache by id."""

        def upsert(records: list[Record]) -> list[Record]:
            kept = [r for r in records if _record_id(r) != entry.id]
            return [*kept, entry_to_dict(entry)]

        return self._mutate_cache(upsert)

    async def save(self, entry: LogEntry) -> Persisted:
        """Write a new entry to both tiers, local cache first."""
        fallback = self.cache_entry(entry)
        primary = await self.store_entry(entry)
        return Persisted(primary=primary, fallback=fallback)

    async def update(self, entry_id: str, fields: Mapping[str, Any]) -> Persisted:
        """Apply a partial update to an entry in both tiers.

        The cache is patched only if it holds the entry.
        """
        primary = False
        if self._store is not None:
            try:
                await self._primary(
                    self._store.update(DEBUG_LOGS, entry_id, dict(fields))
                )
                primary = True
            except Exception:
                logger.warning(
                    "Could not update log %s in primary store", entry_id, exc_info=True
                )

        def patched(record: Record) -> Record:
            merged = {**record, **fields}
            return {key: value for key, value in merged.items() if value is not None}

        def apply(records: list[Record]) -> list[Record]:
            return [patched(r) if _record_id(r) == entry_id else r for r in records]

        return Persisted(primary=primary, fallback=self._mutate_cache(apply))

    async def save_record(self, table: str, record: Mapping[str, Any]) -> bool:
        """Best-effort write of a typed downstream record to the primary store."""
        return await self._write_primary(table, {**record, "user_id": self._user_id})

    def write_snapshot(
        self, entries: Iterable[LogEntry], removed: Iterable[str] = ()
    ) -> bool:
        """Mirror entries into the local cache.

        Each entry replaces the cached record with the same id or is appended.
        Records whose id is in removed are dropped. Every other cached record
        is kept, including rows that could not be decoded on load.
        """
        fresh = {entry.id: entry_to_dict(entry) for entry in entries}
        dropped = set(removed)

        def mirror(records: list[Record]) -> list[Record]:
            kept = []
            for record in records:
                record_id = _record_id(record)
                if record_id in dropped:
                    continue
                kept.append(fresh.pop(record_id, record) if record_id else record)
            return [*kept, *fresh.values()]

        return self._mutate_cache(mirror)

    # --- Reads ---

    async def load_primary(self) -> list[LogEntry]:
        """Read this user's entries from the primary store.

        Raises:
            PersistenceReadFailure: If the store is missing, failing or slow.
        """
        if self._store is None:
            raise PersistenceReadFailure("no primary store configured")
        try:
            records = await self._primary(
                self._store.query(DEBUG_LOGS, {"user_id": self._user_id})
            )
        except Exception as exc:
            raise PersistenceReadFailure("primary store query failed") from exc
        return _decode_all(records, "primary store")

    def load_cache(self) -> list[LogEntry]:
        """Read every entry from the local cache.

        Raises:
            PersistenceReadFailure: If the cache cannot be read.
        """
        try:
            records = self._cache.load()
        except PersistenceReadFailure:
            raise
        except Exception as exc:
            raise PersistenceReadFailure("local cache load failed") from exc
        return _decode_all(records, "local cache")

    async def load_all(self) -> list[LogEntry]:
        """Load entries from both tiers and reconcile them.

        Returns an empty list when neither tier yields data.
        """
        primary: list[LogEntry] = []
        cached: list[LogEntry] = []
        if self._store is not None:
            try:
                primary = await self.load_primary()
            except PersistenceReadFailure:
                logger.warning("Could not load logs from primary store", exc_info=True)
        try:
            cached = self.load_cache()
        except PersistenceReadFailure:
            logger.warning("Could not load logs from local cache", exc_info=True)
        return merge_entries(primary, cached)
