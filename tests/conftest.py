"""Shared test fixtures for all test modules."""

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from debuglog.adapters.storage.in_memory import InMemoryCache, InMemoryRecordStore
from debuglog.logger import DebugLogger
from debuglog.persistence import PersistenceCoordinator

FIXED_START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)

PACKAGE_VERSIONS = {"aiosqlite": "0.20.0", "pytest": "8.3.3"}

CI_ENVIRON = {
    "CI": "true",
    "GITHUB_RUN_ID": "9001",
    "GITHUB_REF_NAME": "main",
    "GITHUB_SHA": "abc123",
    "GITHUB_JOB": "build",
}


class FakeClock:
    """Deterministic clock advancing one millisecond per reading."""

    def __init__(self, start: datetime = FIXED_START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(milliseconds=1)
        return current

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class CountingStore(InMemoryRecordStore):
    """In-memory store counting calls per operation."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: dict[str, int] = {"create": 0, "update": 0, "query": 0}

    async def create(self, table: str, record: dict[str, Any]) -> None:
        self.calls["create"] += 1
        await super().create(table, record)

    async def update(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        self.calls["update"] += 1
        await super().update(table, key, fields)

    async def query(
        self, table: str, filters: Mapping[str, Any]
    ) -> list[dict[str, Any]]:
        self.calls["query"] += 1
        return await super().query(table, filters)


class FailingStore:
    """Primary store where every operation raises."""

    def __init__(self) -> None:
        self.attempts = 0

    async def create(self, table: str, record: dict[str, Any]) -> None:
        self.attempts += 1
        raise ConnectionError("primary store unreachable")

    async def update(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        self.attempts += 1
        raise ConnectionError("primary store unreachable")

    async def query(
        self, table: str, filters: Mapping[str, Any]
    ) -> list[dict[str, Any]]:
        self.attempts += 1
        raise ConnectionError("primary store unreachable")


class SlowStore(InMemoryRecordStore):
    """Store whose calls take longer than any test timeout."""

    async def create(self, table: str, record: dict[str, Any]) -> None:
        await asyncio.sleep(10)

    async def query(
        self, table: str, filters: Mapping[str, Any]
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(10)
        return []


class GatedStore(CountingStore):
    """In-memory store whose creates wait until the gate is opened."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def create(self, table: str, record: dict[str, Any]) -> None:
        await self.gate.wait()
        await super().create(table, record)


class FailingCache:
    """Local cache that can neither be read nor written."""

    def load(self) -> list[dict[str, Any]]:
        raise OSError("disk gone")

    def save(self, records: Any) -> None:
        raise OSError("disk gone")


class RecordingSink:
    """Monitoring sink recording every call."""

    def __init__(self) -> None:
        self.exceptions: list[tuple[BaseException, Mapping[str, Any]]] = []
        self.messages: list[tuple[str, Mapping[str, Any]]] = []
        self.breadcrumbs: list[Mapping[str, Any]] = []

    def capture_exception(
        self, error: BaseException, context: Mapping[str, Any]
    ) -> None:
        self.exceptions.append((error, context))

    def capture_message(self, text: str, context: Mapping[str, Any]) -> None:
        self.messages.append((text, context))

    def add_breadcrumb(self, crumb: Mapping[str, Any]) -> None:
        self.breadcrumbs.append(crumb)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def coordinator(store: CountingStore, cache: InMemoryCache) -> PersistenceCoordinator:
    return PersistenceCoordinator(store, cache, user_id="test-user", timeout=0.5)


@pytest.fixture
def make_logger(clock: FakeClock, sink: RecordingSink):
    """Factory fixture building a DebugLogger around a coordinator.

    Defaults to no CI environment so results do not depend on the host.
    """

    def _make(
        coordinator: PersistenceCoordinator,
        environ: Mapping[str, str] | None = None,
        with_sink: bool = True,
    ) -> DebugLogger:
        return DebugLogger(
            coordinator,
            sink=sink if with_sink else None,
            clock=clock,
            environ={} if environ is None else environ,
            package_versions=PACKAGE_VERSIONS,
        )

    return _make


@pytest.fixture
def debug_logger(make_logger, coordinator: PersistenceCoordinator) -> DebugLogger:
    """DebugLogger over an in-memory store and cache, outside CI."""
    return make_logger(coordinator)


@pytest.fixture
def ci_logger(make_logger, coordinator: PersistenceCoordinator) -> DebugLogger:
    """DebugLogger running with a GitHub Actions CI environment."""
    return make_logger(coordinator, environ=CI_ENVIRON)


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Provide a temporary path for the JSON cache file."""
    return tmp_path / "cache" / "debug-logs.json"


@pytest.fixture
def records_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for record store tests."""
    return str(tmp_path / "records.db")
