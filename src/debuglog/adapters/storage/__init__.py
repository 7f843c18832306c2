"""Storage adapters implementing core ports."""

from debuglog.adapters.storage.in_memory import InMemoryCache, InMemoryRecordStore
from debuglog.adapters.storage.sqlite_records import SQLiteRecordStore

__all__ = [
    "InMemoryCache",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
]
