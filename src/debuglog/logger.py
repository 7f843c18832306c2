"""The debug logger facade.

DebugLogger owns the in-memory entry buffer. It builds entries, correlates
them with history, persists them through the PersistenceCoordinator and
forwards them to the monitoring sink. Only ValidationError escapes its
logging operations.

A log call writes the local cache before it returns; the primary-store
write runs as a background task. flush() and shutdown() wait for those.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from functools import partial
from types import TracebackType
from typing import Any, Literal, Self

from debuglog.core.correlation import CorrelatorPort, KeywordCorrelator
from debuglog.core.encoding import encode_json, encode_ndjson
from debuglog.core.environment import Clock, detect_ci_context, utc_now
from debuglog.core.exceptions import ValidationError
from debuglog.core.logs import build_entry
from debuglog.core.models import (
    Category,
    CICDContext,
    LogEntry,
    PerformanceSample,
    PipelineRun,
    SecurityScanRecord,
    Severity,
    Status,
    TestContext,
    TestRun,
    parse_category,
    parse_severity,
)
from debuglog.core.ports import (
    CI_CD_PIPELINES,
    PERFORMANCE_METRICS,
    SECURITY_SCANS,
    TEST_RESULTS,
    SinkPort,
)
from debuglog.forwarding import SinkForwarder
from debuglog.persistence import PersistenceCoordinator, merge_entries

logger = logging.getLogger(__name__)

RETENTION_DAYS = 30

CICDStatus = Literal["started", "success", "failed", "cancelled"]
TestStatus = Literal["passed", "failed", "skipped"]
PerformanceType = Literal["lighthouse", "webpagetest", "custom"]
ScanStatus = Literal["clean", "vulnerabilities", "error"]

CICD_STATUSES = frozenset({"started", "success", "failed", "cancelled"})
TEST_STATUSES = frozenset({"passed", "failed", "skipped"})
PERFORMANCE_TYPES = frozenset({"lighthouse", "webpagetest", "custom"})
SCAN_STATUSES = frozenset({"clean", "vulnerabilities", "error"})

# Pipeline record status for each CI/CD event status.
_PIPELINE_STATUS = {"started": "running", "success": "success"}

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


def _require(value: str, allowed: frozenset[str], name: str) -> None:
    if value not in allowed:
        raise ValidationError(
            f"invalid {name} {value!r}; expected one of: {', '.join(sorted(allowed))}"
        )


def _record_id(prefix: str, now: datetime) -> str:
    return f"{prefix}-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}"


def _metadata_steps(metadata: Mapping[str, Any] | None) -> list[str]:
    return [json.dumps(metadata, default=str)] if metadata else []


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class DebugLogger:
    """Process-wide entry point for structured diagnostic events.

    Construct one instance at startup, share the reference, call
    initialize() (or use it as an async context manager) and shutdown()
    when the process exits. Logging operations initialize lazily.

    Args:
        coordinator: Two-tier persistence for entries and typed records.
        sink: Optional monitoring sink; see debuglog.adapters.sinks.
        correlator: Strategy for finding related entries.
        clock: Source of timestamps. Defaults to UTC now.
        environ: Environment mapping used for CI detection and snapshots.
            Defaults to os.environ.
        package_versions: Overrides the tracked package version table.
    """

    def __init__(
        self,
        coordinator: PersistenceCoordinator,
        sink: SinkPort | None = None,
        correlator: CorrelatorPort | None = None,
        clock: Clock | None = None,
        environ: Mapping[str, str] | None = None,
        package_versions: Mapping[str, str] | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._forwarder = SinkForwarder(sink)
        self._correlator = correlator or KeywordCorrelator()
        self._clock = clock or utc_now
        self._environ = environ
        self._package_versions = package_versions
        self._entries: list[LogEntry] = []
        self._buffer_lock = asyncio.Lock()
        self._update_lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._ci_context: CICDContext | None = None
        self._pending_saves: dict[str, asyncio.Task[bool]] = {}

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def ci_context(self) -> CICDContext | None:
        return self._ci_context

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        """Snapshot of the buffer in append order."""
        return tuple(self._entries)

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Load history and detect CI context. Only the first call does work.

        Never raises: if loading fails the logger runs on whatever the
        local cache (or nothing) provides.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            self._ci_context = detect_ci_context(self._environ)
            try:
                loaded = await self._coordinator.load_all()
                async with self._buffer_lock:
                    self._entries = merge_entries(loaded, self._entries)
                    self._coordinator.write_snapshot(self._entries)
                logger.info(
                    "Debug logger initialized with %d entries (ci=%s)",
                    len(self._entries),
                    self._ci_context is not None,
                )
            except Exception:
                logger.exception("Failed to initialize debug logger; continuing")
            finally:
                self._initialized = True

    async def flush(self) -> None:
        """Wait for every primary-store write started by a log call."""
        while self._pending_saves:
            await asyncio.gather(
                *list(self._pending_saves.values()), return_exceptions=True
            )

    async def shutdown(self) -> None:
        """Finish pending writes, mirror the buffer and close the primary store."""
        await self.flush()
        async with self._buffer_lock:
            self._coordinator.write_snapshot(self._entries)
        close = getattr(self._coordinator.store, "close", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.warning("Could not close primary store", exc_info=True)

    # --- Entry creation ---

    def _start_primary_write(self, entry: LogEntry, cached: bool) -> None:
        task = asyncio.create_task(self._coordinator.store_entry(entry))
        self._pending_saves[entry.id] = task
        task.add_done_callback(partial(self._primary_write_done, entry.id, cached))

    def _primary_write_done(
        self, entry_id: str, cached: bool, task: asyncio.Task[bool]
    ) -> None:
        self._pending_saves.pop(entry_id, None)
        if task.cancelled():
            logger.warning("Primary write of entry %s was cancelled", entry_id)
        elif not task.result():
            if cached:
                logger.debug("Entry %s persisted to local cache only", entry_id)
            else:
                logger.warning("Entry %s was not persisted to any tier", entry_id)

    async def _log(
        self,
        severity: Severity,
        category: Category | str,
        title: str,
        description: str,
        **fields: Any,
    ) -> LogEntry:
        await self.initialize()
        async with self._buffer_lock:
            entry = build_entry(
                severity,
                category,
                title,
                description,
                corpus=self._entries,
                ci_cd_context=self._ci_context,
                correlator=self._correlator,
                clock=self._clock,
                environ=self._environ,
                package_versions=self._package_versions,
                **fields,
            )
            self._entries.append(entry)
            cached = self._coordinator.cache_entry(entry)
            self._start_primary_write(entry, cached)
        logger.log(
            _LEVELS[entry.severity],
            "Debug log [%s] %s: %s",
            entry.category.value,
            entry.title,
            entry.description,
            extra={"debuglog_entry_id": entry.id},
        )
        return entry

    async def log_error(
        self,
        category: Category | str,
        title: str,
        description: str,
        error_message: str | None = None,
        solution: str | None = None,
        steps_taken: Sequence[str] | None = None,
        stack_trace: str | None = None,
    ) -> LogEntry:
        """Record an error. A present error_message is captured as an exception."""
        entry = await self._log(
            Severity.ERROR,
            category,
            title,
            description,
            error_message=error_message,
            solution=solution,
            steps_taken=steps_taken,
            stack_trace=stack_trace,
        )
        self._forwarder.forward_error(entry)
        return entry

    async def log_critical(
        self,
        category: Category | str,
        title: str,
        description: str,
        error_message: str | None = None,
        solution: str | None = None,
        steps_taken: Sequence[str] | None = None,
        stack_trace: str | None = None,
    ) -> LogEntry:
        """Record a critical failure. Forwarded like log_error."""
        entry = await self._log(
            Severity.CRITICAL,
            category,
            title,
            description,
            error_message=error_message,
            solution=solution,
            steps_taken=steps_taken,
            stack_trace=stack_trace,
        )
        self._forwarder.forward_error(entry)
        return entry

    async def log_warning(
        self,
        category: Category | str,
        title: str,
        description: str,
        solution: str | None = None,
        steps_taken: Sequence[str] | None = None,
    ) -> LogEntry:
        """Record a warning, captured by the sink as a message."""
        entry = await self._log(
            Severity.WARNING,
            category,
            title,
            description,
            solution=solution,
            steps_taken=steps_taken,
        )
        self._forwarder.forward_warning(entry)
        return entry

    async def log_info(
        self,
        category: Category | str,
        title: str,
        description: str,
        steps_taken: Sequence[str] | None = None,
        test_context: TestContext | None = None,
    ) -> LogEntry:
        """Record an informational event, sent to the sink as a breadcrumb only."""
        entry = await self._log(
            Severity.INFO,
            category,
            title,
            description,
            steps_taken=steps_taken,
            test_context=test_context,
        )
        self._forwarder.forward_breadcrumb(entry)
        return entry

    # --- Lifecycle transitions ---

    async def _transition(
        self, entry_id: str, target: Status, **fields: Any
    ) -> LogEntry | None:
        await self.initialize()
        async with self._update_lock:
            async with self._buffer_lock:
                index = next(
                    (i for i, e in enumerate(self._entries) if e.id == entry_id), None
                )
                if index is None:
                    return None
                current = self._entries[index]
                if not current.status.can_transition_to(target):
                    logger.info(
                        "Ignoring %s -> %s for %s", current.status, target, entry_id
                    )
                    return None
                updated = replace(current, status=target, **fields)
                self._entries[index] = updated
            # the row must exist before it can be patched
            pending = self._pending_saves.get(entry_id)
            if pending is not None:
                await asyncio.wait([pending])
            # serialized by _update_lock so the tiers see updates in buffer order
            await self._coordinator.update(entry_id, {"status": target.value, **fields})
        return updated

    async def resolve_issue(
        self, entry_id: str, solution: str, prevention_notes: str | None = None
    ) -> LogEntry | None:
        """Mark an entry resolved with its solution.

        Returns:
            The updated entry, or None when the id is unknown or the entry is
            closed.
        """
        return await self._transition(
            entry_id,
            Status.RESOLVED,
            solution=solution,
            prevention_notes=prevention_notes,
            resolution_date=self._clock().isoformat(),
        )

    async def mark_investigating(self, entry_id: str) -> LogEntry | None:
        """Move an open entry to investigating."""
        return await self._transition(entry_id, Status.INVESTIGATING)

    async def close_issue(self, entry_id: str) -> LogEntry | None:
        """Close a resolved entry."""
        return await self._transition(entry_id, Status.CLOSED)

    # --- Queries ---

    async def find_similar_issues(self, title: str, description: str) -> list[LogEntry]:
        """Return buffered entries sharing vocabulary with the given text."""
        await self.initialize()
        return self._correlator.find_similar(title, description, self.entries)

    async def get_issue(self, entry_id: str) -> LogEntry | None:
        await self.initialize()
        return next((e for e in self._entries if e.id == entry_id), None)

    async def get_unresolved_issues(self) -> list[LogEntry]:
        await self.initialize()
        return [e for e in self._entries if e.is_unresolved]

    async def get_issues_by_category(self, category: Category | str) -> list[LogEntry]:
        await self.initialize()
        category = parse_category(category)
        return [e for e in self._entries if e.category is category]

    async def get_issues_by_severity(self, severity: Severity | str) -> list[LogEntry]:
        await self.initialize()
        severity = parse_severity(severity)
        return [e for e in self._entries if e.severity is severity]

    def export_logs(self, fmt: Literal["json", "ndjson"] = "json") -> str:
        """Serialize the buffer as a JSON array or as NDJSON."""
        if fmt == "ndjson":
            return encode_ndjson(self.entries)
        return encode_json(self.entries)

    # --- Maintenance ---

    async def cleanup_old_logs(self) -> int:
        """Drop entries older than RETENTION_DAYS from the buffer and local cache.

        The primary store keeps its own retention policy and is not touched.

        Returns:
            Number of entries removed.
        """
        await self.initialize()
        cutoff = self._clock() - timedelta(days=RETENTION_DAYS)
        async with self._buffer_lock:
            kept: list[LogEntry] = []
            expired: list[str] = []
            for entry in self._entries:
                created = _parse_timestamp(entry.timestamp)
                if created is None or created > cutoff:
                    kept.append(entry)
                else:
                    expired.append(entry.id)
            self._entries = kept
            self._coordinator.write_snapshot(kept, removed=expired)
        removed = len(expired)
        if removed:
            logger.info(
                "Removed %d log entries older than %d days", removed, RETENTION_DAYS
            )
        return removed

    # --- Specialized emitters ---

    async def log_cicd_event(
        self,
        stage: str,
        status: CICDStatus,
        description: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        """Record a pipeline stage event.

        A pipeline record is written only when a CI context with a pipeline id
        was detected.
        """
        _require(status, CICD_STATUSES, "CI/CD status")
        entry = await self.log_info(
            Category.CI_CD,
            f"CI/CD {stage} {status}",
            description,
            [f"Stage: {stage}", f"Status: {status}", *_metadata_steps(metadata)],
        )
        ci = self._ci_context
        if ci is not None and ci.pipeline_id:
            run = PipelineRun(
                pipeline_id=ci.pipeline_id,
                name=f"{stage} - {status}",
                type="github-actions" if ci.workflow_run_id else "gitlab-ci",
                status=_PIPELINE_STATUS.get(status, "failed"),
                branch=ci.branch or "unknown",
                commit_sha=ci.commit_sha or "unknown",
                stages=(stage,),
                metadata=dict(metadata) if metadata else None,
            )
            await self._coordinator.save_record(
                CI_CD_PIPELINES, run.to_record(self._coordinator.user_id)
            )
        return entry

    async def log_test_result(
        self,
        framework: str,
        status: TestStatus,
        total_tests: int,
        passed_tests: int,
        failed_tests: int,
        skipped_tests: int,
        duration: float,
        coverage: float | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        """Record a test run and write it to the test results table."""
        _require(status, TEST_STATUSES, "test status")
        test_id = _record_id("test", self._clock())
        steps = [
            f"Framework: {framework}",
            f"Total: {total_tests}",
            f"Passed: {passed_tests}",
            f"Failed: {failed_tests}",
            f"Skipped: {skipped_tests}",
            f"Duration: {duration}ms",
        ]
        if coverage is not None:
            steps.append(f"Coverage: {coverage}%")
        entry = await self.log_info(
            Category.TESTING,
            f"{framework} tests {status}",
            f"{passed_tests}/{total_tests} tests passed in {duration}ms",
            [*steps, *_metadata_steps(metadata)],
            test_context=TestContext(
                framework=framework,
                test_id=test_id,
                coverage=coverage,
                duration=duration,
            ),
        )
        run = TestRun(
            test_id=test_id,
            framework=framework,
            status=status,
            duration=duration,
            total_tests=total_tests,
            passed_tests=passed_tests,
            failed_tests=failed_tests,
            skipped_tests=skipped_tests,
            coverage=coverage,
            metadata=dict(metadata) if metadata else None,
        )
        await self._coordinator.save_record(
            TEST_RESULTS, run.to_record(self._coordinator.user_id)
        )
        return entry

    async def log_performance_metric(
        self,
        metric_type: PerformanceType,
        score: float,
        metrics: Mapping[str, float],
        url: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        """Record a performance measurement for a URL."""
        _require(metric_type, PERFORMANCE_TYPES, "performance metric type")
        entry = await self.log_info(
            Category.PERFORMANCE,
            f"{metric_type} performance score: {score}",
            f"Performance metrics for {url}",
            [
                f"Type: {metric_type}",
                f"Score: {score}",
                f"URL: {url}",
                *(f"{key}: {value}" for key, value in metrics.items()),
                *_metadata_steps(metadata),
            ],
        )
        sample = PerformanceSample(
            metric_id=_record_id("perf", self._clock()),
            type=metric_type,
            score=score,
            url=url,
            metrics=dict(metrics),
            metadata=dict(metadata) if metadata else None,
        )
        await self._coordinator.save_record(
            PERFORMANCE_METRICS, sample.to_record(self._coordinator.user_id)
        )
        return entry

    async def log_security_scan(
        self,
        scan_type: str,
        status: ScanStatus,
        vulnerabilities: Sequence[Any],
        severity_counts: Mapping[str, int],
        metadata: Mapping[str, Any] | None = None,
    ) -> LogEntry:
        """Record the outcome of a security scan."""
        _require(status, SCAN_STATUSES, "security scan status")
        entry = await self.log_info(
            Category.SECURITY,
            f"{scan_type} security scan: {status}",
            f"Security scan completed with {len(vulnerabilities)} vulnerabilities",
            [
                f"Type: {scan_type}",
                f"Status: {status}",
                f"Vulnerabilities: {len(vulnerabilities)}",
                *(f"{level}: {count}" for level, count in severity_counts.items()),
                *_metadata_steps(metadata),
            ],
        )
        scan = SecurityScanRecord(
            scan_id=_record_id("scan", self._clock()),
            type=scan_type,
            status=status,
            vulnerabilities=tuple(vulnerabilities),
            severity_counts=dict(severity_counts),
            metadata=dict(metadata) if metadata else None,
        )
        await self._coordinator.save_record(
            SECURITY_SCANS, scan.to_record(self._coordinator.user_id)
        )
        return entry
