"""In-memory adapters for the primary store and the local cache."""

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from debuglog.core.ports import TABLE_KEYS, Record


class InMemoryRecordStore:
    """In-memory implementation of RecordStorePort.

    Stores records per table in lists. Suitable for testing and
    low-volume applications where persistence is not required.
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[Record]] = {}

    async def create(self, table: str, record: Record) -> None:
        """Insert a copy of the record into a table."""
        self._tables.setdefault(table, []).append(copy.deepcopy(record))

    async def update(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        """Update every record in the table whose primary key equals key."""
        key_field = TABLE_KEYS.get(table, "id")
        for record in self._tables.get(table, []):
            if record.get(key_field) == key:
                record.update(copy.deepcopy(dict(fields)))

    async def query(self, table: str, filters: Mapping[str, Any]) -> list[Record]:
        """Return copies of records matching every filter, in insertion order."""
        return [
            copy.deepcopy(record)
            for record in self._tables.get(table, [])
            if all(record.get(name) == value for name, value in filters.items())
        ]

    def records(self, table: str) -> list[Record]:
        """Synchronous snapshot of a table (testing)."""
        return copy.deepcopy(self._tables.get(table, []))


class InMemoryCache:
    """In-memory implementation of LocalCachePort.

    Holds a copy of the collection; does not survive process restarts.
    """

    def __init__(self, records: Sequence[Record] | None = None) -> None:
        self._records: list[Record] = copy.deepcopy(list(records or []))

    def load(self) -> list[Record]:
        """Return a copy of the cached collection."""
        return copy.deepcopy(self._records)

    def save(self, records: Sequence[Record]) -> None:
        """Replace the cached collection."""
        self._records = copy.deepcopy(list(records))
