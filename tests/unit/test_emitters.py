"""Tests for the specialized CI/CD, test, performance and security emitters."""

import json

import pytest

from debuglog.core.exceptions import ValidationError
from debuglog.core.models import Category, Severity
from debuglog.core.ports import (
    CI_CD_PIPELINES,
    PERFORMANCE_METRICS,
    SECURITY_SCANS,
    TEST_RESULTS,
)
from debuglog.logger import DebugLogger
from debuglog.persistence import PersistenceCoordinator
from tests.conftest import CountingStore, FailingStore, RecordingSink

pytestmark = pytest.mark.tier(1)


class TestCICDEvents:
    """Tests for log_cicd_event()."""

    @pytest.mark.core
    async def test_failed_stage_in_ci_writes_pipeline_record(
        self, ci_logger: DebugLogger, store: CountingStore
    ) -> None:
        entry = await ci_logger.log_cicd_event(
            "deploy", "failed", "Deploy to staging failed", {"attempt": 2}
        )

        assert entry.category is Category.CI_CD
        assert entry.severity is Severity.INFO
        assert entry.title == "CI/CD deploy failed"
        assert entry.steps_taken == (
            "Stage: deploy",
            "Status: failed",
            json.dumps({"attempt": 2}),
        )
        assert entry.ci_cd_context is not None
        assert entry.ci_cd_context.pipeline_id == "9001"
        [record] = store.records(CI_CD_PIPELINES)
        assert record["pipeline_id"] == "9001"
        assert record["name"] == "deploy - failed"
        assert record["type"] == "github-actions"
        assert record["status"] == "failed"
        assert record["branch"] == "main"
        assert record["commit_sha"] == "abc123"
        assert record["stages"] == ["deploy"]
        assert record["user_id"] == "test-user"

    @pytest.mark.core
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("started", "running"),
            ("success", "success"),
            ("failed", "failed"),
            ("cancelled", "failed"),
        ],
    )
    async def test_pipeline_status_mapping(
        self, ci_logger: DebugLogger, store: CountingStore, status: str, expected: str
    ) -> None:
        await ci_logger.log_cicd_event("build", status, "")

        assert store.records(CI_CD_PIPELINES)[0]["status"] == expected

    @pytest.mark.core
    async def test_gitlab_pipeline_type(
        self, make_logger, coordinator: PersistenceCoordinator, store: CountingStore
    ) -> None:
        debug_logger = make_logger(
            coordinator,
            environ={"CI": "true", "GITLAB_CI_PIPELINE_ID": "77"},
        )

        await debug_logger.log_cicd_event("test", "success", "")

        [record] = store.records(CI_CD_PIPELINES)
        assert record["type"] == "gitlab-ci"
        assert record["branch"] == "unknown"
        assert record["commit_sha"] == "unknown"

    @pytest.mark.core
    async def test_no_pipeline_record_outside_ci(
        self, debug_logger: DebugLogger, store: CountingStore
    ) -> None:
        entry = await debug_logger.log_cicd_event("build", "success", "Built")

        assert entry.title == "CI/CD build success"
        assert store.records(CI_CD_PIPELINES) == []

    @pytest.mark.core
    async def test_no_pipeline_record_without_pipeline_id(
        self, make_logger, coordinator: PersistenceCoordinator, store: CountingStore
    ) -> None:
        debug_logger = make_logger(coordinator, environ={"CI": "true"})

        await debug_logger.log_cicd_event("build", "success", "")

        assert store.records(CI_CD_PIPELINES) == []

    @pytest.mark.core
    async def test_invalid_status_raises(self, ci_logger: DebugLogger) -> None:
        with pytest.raises(ValidationError, match="CI/CD status"):
            await ci_logger.log_cicd_event("build", "exploded", "")

        assert ci_logger.entries == ()

    @pytest.mark.core
    async def test_event_is_sent_as_breadcrumb(
        self, ci_logger: DebugLogger, sink: RecordingSink
    ) -> None:
        await ci_logger.log_cicd_event("deploy", "failed", "")

        assert sink.breadcrumbs[0]["message"] == "CI/CD deploy failed"
        assert sink.exceptions == []

    @pytest.mark.core
    async def test_store_failure_still_records_entry(
        self, make_logger, cache
    ) -> None:
        coordinator = PersistenceCoordinator(FailingStore(), cache, "u")
        debug_logger = make_logger(
            coordinator, environ={"CI": "true", "GITHUB_RUN_ID": "1"}
        )

        entry = await debug_logger.log_cicd_event("deploy", "failed", "")

        assert debug_logger.entries == (entry,)


class TestTestResults:
    """Tests for log_test_result()."""

    @pytest.mark.core
    async def test_records_summary_and_context(
        self, debug_logger: DebugLogger, store: CountingStore
    ) -> None:
        entry = await debug_logger.log_test_result(
            "pytest",
            "failed",
            total_tests=120,
            passed_tests=117,
            failed_tests=2,
            skipped_tests=1,
            duration=5400,
            coverage=87.5,
        )

        assert entry.category is Category.TESTING
        assert entry.title == "pytest tests failed"
        assert entry.description == "117/120 tests passed in 5400ms"
        assert entry.steps_taken == (
            "Framework: pytest",
            "Total: 120",
            "Passed: 117",
            "Failed: 2",
            "Skipped: 1",
            "Duration: 5400ms",
            "Coverage: 87.5%",
        )
        assert entry.test_context is not None
        assert entry.test_context.framework == "pytest"
        assert entry.test_context.coverage == 87.5
        [record] = store.records(TEST_RESULTS)
        assert record["test_id"] == entry.test_context.test_id
        assert record["test_id"].startswith("test-")
        assert record["failed_tests"] == 2
        assert record["user_id"] == "test-user"

    @pytest.mark.core
    async def test_coverage_step_is_omitted_when_unknown(
        self, debug_logger: DebugLogger
    ) -> None:
        entry = await debug_logger.log_test_result("jest", "passed", 3, 3, 0, 0, 120)

        assert not any(step.startswith("Coverage") for step in entry.steps_taken)

    @pytest.mark.core
    async def test_invalid_status_raises(self, debug_logger: DebugLogger) -> None:
        with pytest.raises(ValidationError):
            await debug_logger.log_test_result("pytest", "broken", 1, 0, 0, 0, 1)


class TestPerformanceMetrics:
    """Tests for log_performance_metric()."""

    @pytest.mark.core
    async def test_records_sample(
        self, debug_logger: DebugLogger, store: CountingStore
    ) -> None:
        entry = await debug_logger.log_performance_metric(
            "lighthouse",
            92,
            {"fcp": 1.2, "lcp": 2.1},
            "https://example.com/",
        )

        assert entry.category is Category.PERFORMANCE
        assert entry.title == "lighthouse performance score: 92"
        assert entry.description == "Performance metrics for https://example.com/"
        assert "fcp: 1.2" in entry.steps_taken
        [record] = store.records(PERFORMANCE_METRICS)
        assert record["metric_id"].startswith("perf-")
        assert record["metrics"] == {"fcp": 1.2, "lcp": 2.1}
        assert record["url"] == "https://example.com/"

    @pytest.mark.core
    async def test_invalid_type_raises(self, debug_logger: DebugLogger) -> None:
        with pytest.raises(ValidationError):
            await debug_logger.log_performance_metric("gtmetrix", 1, {}, "u")


class TestSecurityScans:
    """Tests for log_security_scan()."""

    @pytest.mark.core
    async def test_records_scan(
        self, debug_logger: DebugLogger, store: CountingStore
    ) -> None:
        vulnerabilities = [{"id": "CVE-2024-0001", "severity": "high"}]

        entry = await debug_logger.log_security_scan(
            "npm-audit", "vulnerabilities", vulnerabilities, {"high": 1, "low": 0}
        )

        assert entry.category is Category.SECURITY
        assert entry.title == "npm-audit security scan: vulnerabilities"
        assert entry.description == (
            "Security scan completed with 1 vulnerabilities"
        )
        assert "high: 1" in entry.steps_taken
        [record] = store.records(SECURITY_SCANS)
        assert record["scan_id"].startswith("scan-")
        assert record["status"] == "vulnerabilities"
        assert record["severity_counts"] == {"high": 1, "low": 0}

    @pytest.mark.core
    async def test_invalid_status_raises(self, debug_logger: DebugLogger) -> None:
        with pytest.raises(ValidationError):
            await debug_logger.log_security_scan("trivy", "unknown", [], {})
