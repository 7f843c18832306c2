"""Port interfaces for storage and sink adapters.

These protocols define the contracts that adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]


@runtime_checkable
class RecordStorePort(Protocol):
    """Port for the primary durable store.

    Records are plain dicts. Every record carries a ``user_id`` field that
    scopes it to a caller.
    Examples: InMemoryRecordStore, SQLiteRecordStore.
    """

    async def create(self, table: str, record: Record) -> None:
        """Insert a record into a table."""
        ...

    async def update(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        """Update fields of the record whose primary key equals ``key``."""
        ...

    async def query(self, table: str, filters: Mapping[str, Any]) -> list[Record]:
        """Return records whose fields equal every value in ``filters``."""
        ...


@runtime_checkable
class LocalCachePort(Protocol):
    """Port for the local fallback cache.

    Holds the whole entry collection as one serializable blob. Operations are
    synchronous and expected to be fast.
    Examples: InMemoryCache, JsonFileCache.
    """

    def load(self) -> list[Record]:
        """Return every cached record. Empty list if nothing is cached."""
        ...

    def save(self, records: Sequence[Record]) -> None:
        """Replace the cached collection."""
        ...


@runtime_checkable
class SinkPort(Protocol):
    """Port for an external application-monitoring sink.

    Examples: SentrySink.
    """

    def capture_exception(
        self, error: BaseException, context: Mapping[str, Any]
    ) -> None:
        """Report an exception with tags, extras and level in ``context``."""
        ...

    def capture_message(self, text: str, context: Mapping[str, Any]) -> None:
        """Report a message with tags, extras and level in ``context``."""
        ...

    def add_breadcrumb(self, crumb: Mapping[str, Any]) -> None:
        """Record a breadcrumb for context on later events."""
        ...


DEBUG_LOGS = "debug_logs"
CI_CD_PIPELINES = "ci_cd_pipelines"
TEST_RESULTS = "test_results"
PERFORMANCE_METRICS = "performance_metrics"
SECURITY_SCANS = "security_scans"

# Primary key field of each table in the primary store.
TABLE_KEYS: dict[str, str] = {
    DEBUG_LOGS: "log_id",
    CI_CD_PIPELINES: "pipeline_id",
    TEST_RESULTS: "test_id",
    PERFORMANCE_METRICS: "metric_id",
    SECURITY_SCANS: "scan_id",
}
