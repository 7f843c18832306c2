"""SQLite storage adapter for the primary record store."""

import sqlite3
from collections.abc import Mapping
from typing import Any

from debuglog.adapters.storage.sqlite_base import (
    AsyncConnectionManager,
    _encode_column,
)
from debuglog.core.exceptions import PersistenceReadFailure, PersistenceWriteFailure
from debuglog.core.ports import (
    CI_CD_PIPELINES,
    DEBUG_LOGS,
    PERFORMANCE_METRICS,
    SECURITY_SCANS,
    TABLE_KEYS,
    TEST_RESULTS,
    Record,
)

_RECORDS_SCHEMA = """
CREATE TABLE IF NOT EXISTS debug_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    severity TEXT NOT NULL,
    category TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    error_message TEXT,
    stack_trace TEXT,
    solution TEXT,
    steps_taken TEXT NOT NULL DEFAULT '[]',
    environment TEXT,
    status TEXT NOT NULL DEFAULT 'open',
    resolution_date TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    related_issues TEXT NOT NULL DEFAULT '[]',
    prevention_notes TEXT,
    ci_cd_context TEXT,
    test_context TEXT
);
CREATE INDEX IF NOT EXISTS idx_debug_logs_user
    ON debug_logs(user_id, timestamp);

CREATE TABLE IF NOT EXISTS ci_cd_pipelines (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pipeline_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    branch TEXT NOT NULL,
    commit_sha TEXT NOT NULL,
    stages TEXT NOT NULL DEFAULT '[]',
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_ci_cd_pipelines_user ON ci_cd_pipelines(user_id);

CREATE TABLE IF NOT EXISTS test_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    test_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    framework TEXT NOT NULL,
    status TEXT NOT NULL,
    duration REAL NOT NULL,
    coverage REAL,
    total_tests INTEGER NOT NULL,
    passed_tests INTEGER NOT NULL,
    failed_tests INTEGER NOT NULL,
    skipped_tests INTEGER NOT NULL,
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_test_results_user ON test_results(user_id);

CREATE TABLE IF NOT EXISTS performance_metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    metric_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    score REAL NOT NULL,
    metrics TEXT NOT NULL DEFAULT '{}',
    url TEXT NOT NULL,
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_performance_metrics_user ON performance_metrics(user_id);

CREATE TABLE IF NOT EXISTS security_scans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    scan_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    vulnerabilities TEXT NOT NULL DEFAULT '[]',
    severity_counts TEXT NOT NULL DEFAULT '{}',
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_security_scans_user ON security_scans(user_id);
"""

# Writable columns per table, excluding the surrogate rowid.
_COLUMNS: dict[str, tuple[str, ...]] = {
    DEBUG_LOGS: (
        "log_id",
        "user_id",
        "timestamp",
        "severity",
        "category",
        "title",
        "description",
        "error_message",
        "stack_trace",
        "solution",
        "steps_taken",
        "environment",
        "status",
        "resolution_date",
        "tags",
        "related_issues",
        "prevention_notes",
        "ci_cd_context",
        "test_context",
    ),
    CI_CD_PIPELINES: (
        "pipeline_id",
        "user_id",
        "name",
        "type",
        "status",
        "branch",
        "commit_sha",
        "stages",
        "metadata",
    ),
    TEST_RESULTS: (
        "test_id",
        "user_id",
        "framework",
        "status",
        "duration",
        "coverage",
        "total_tests",
        "passed_tests",
        "failed_tests",
        "skipped_tests",
        "metadata",
    ),
    PERFORMANCE_METRICS: (
        "metric_id",
        "user_id",
        "type",
        "score",
        "metrics",
        "url",
        "metadata",
    ),
    SECURITY_SCANS: (
        "scan_id",
        "user_id",
        "type",
        "status",
        "vulnerabilities",
        "severity_counts",
        "metadata",
    ),
}


def _columns_for(table: str, names: Mapping[str, Any]) -> list[str]:
    """Return the known columns among names, rejecting unknown tables and columns."""
    try:
        columns = _COLUMNS[table]
    except KeyError:
        raise ValueError(f"unknown table {table!r}") from None
    unknown = set(names) - set(columns)
    if unknown:
        raise ValueError(f"unknown columns for {table}: {sorted(unknown)}")
    return [name for name in columns if name in names]


class SQLiteRecordStore:
    """SQLite implementation of RecordStorePort.

    Stores records in a SQLite database using aiosqlite for non-blocking
    async operations. Uses WAL mode for concurrent access.

    Structured values (dicts and lists) are stored as JSON text and are
    returned as JSON text by query(); decoding is the caller's concern.
    sqlite errors surface as PersistenceWriteFailure or PersistenceReadFailure.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._manager = AsyncConnectionManager(db_path, _RECORDS_SCHEMA)

    async def create(self, table: str, record: Record) -> None:
        """Insert a record. Keys with None values are left at column defaults."""
        values = {key: value for key, value in record.items() if value is not None}
        columns = _columns_for(table, values)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        try:
            await self._manager.execute(
                sql, [_encode_column(values[c]) for c in columns]
            )
        except sqlite3.Error as exc:
            raise PersistenceWriteFailure(f"insert into {table} failed: {exc}") from exc

    async def update(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        """Update fields on the rows whose primary key equals key."""
        columns = _columns_for(table, fields)
        if not columns:
            return
        assignments = ", ".join(f"{column} = ?" for column in columns)
        sql = f"UPDATE {table} SET {assignments} WHERE {TABLE_KEYS[table]} = ?"
        params = [_encode_column(fields[c]) for c in columns] + [key]
        try:
            await self._manager.execute(sql, params)
        except sqlite3.Error as exc:
            raise PersistenceWriteFailure(f"update of {table} failed: {exc}") from exc

    async def query(self, table: str, filters: Mapping[str, Any]) -> list[Record]:
        """Return rows matching every filter, ordered by insertion."""
        columns = _columns_for(table, filters)
        where = " AND ".join(f"{column} = ?" for column in columns) or "1 = 1"
        sql = (
            f"SELECT {', '.join(_COLUMNS[table])} FROM {table} "
            f"WHERE {where} ORDER BY id ASC"
        )
        try:
            return await self._manager.fetch_all(
                sql, [_encode_column(filters[c]) for c in columns]
            )
        except sqlite3.Error as exc:
            raise PersistenceReadFailure(f"query of {table} failed: {exc}") from exc

    async def count(self, table: str) -> int:
        """Return total number of rows in a table."""
        _columns_for(table, {})
        try:
            total = await self._manager.fetch_value(f"SELECT COUNT(*) FROM {table}")
        except sqlite3.Error as exc:
            raise PersistenceReadFailure(f"count of {table} failed: {exc}") from exc
        return total or 0

    async def close(self) -> None:
        """Close the shared connection of an in-memory database."""
        await self._manager.close()
