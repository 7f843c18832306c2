"""Core domain models for debug log entries and downstream records."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from debuglog.core.exceptions import ValidationError

E = TypeVar("E", bound=StrEnum)


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Category(StrEnum):
    BUILD = "build"
    RUNTIME = "runtime"
    API = "api"
    DATABASE = "database"
    DEPENDENCY = "dependency"
    PERFORMANCE = "performance"
    SECURITY = "security"
    CI_CD = "ci-cd"
    TESTING = "testing"


class Status(StrEnum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"

    def can_transition_to(self, target: "Status") -> bool:
        """Return True if the lifecycle allows moving from this status to target.

        Re-resolving a resolved entry is allowed (last write wins). Nothing
        leaves CLOSED and nothing goes back to OPEN.
        """
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.OPEN: frozenset({Status.INVESTIGATING, Status.RESOLVED}),
    Status.INVESTIGATING: frozenset({Status.RESOLVED}),
    Status.RESOLVED: frozenset({Status.RESOLVED, Status.CLOSED}),
    Status.CLOSED: frozenset(),
}


def _coerce(enum_type: type[E], value: Any, name: str) -> E:
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(
            f"invalid {name} {value!r}; expected one of: {allowed}"
        ) from None


def parse_category(value: Any) -> Category:
    """Coerce a string into a Category, raising ValidationError if unknown."""
    return _coerce(Category, value, "category")


def parse_severity(value: Any) -> Severity:
    """Coerce a string into a Severity, raising ValidationError if unknown."""
    return _coerce(Severity, value, "severity")


def parse_status(value: Any) -> Status:
    """Coerce a string into a Status, raising ValidationError if unknown."""
    return _coerce(Status, value, "status")


@dataclass(frozen=True)
class CICDInfo:
    """CI/CD identifiers embedded in an environment snapshot."""

    pipeline_id: str | None = None
    branch: str | None = None
    commit_sha: str | None = None
    environment: str | None = None


@dataclass(frozen=True)
class CICDContext:
    """Pipeline run detected from the process environment.

    Attributes:
        pipeline_id: Pipeline (or workflow run) identifier.
        branch: Branch or ref name being built.
        commit_sha: Commit under test.
        environment: Deployment environment name.
        workflow_run_id: GitHub Actions run id, when running there.
        job_id: Job identifier within the pipeline.
        stage: Pipeline stage, when known.
    """

    pipeline_id: str | None = None
    branch: str | None = None
    commit_sha: str | None = None
    environment: str | None = None
    workflow_run_id: str | None = None
    job_id: str | None = None
    stage: str | None = None

    def to_info(self) -> CICDInfo:
        return CICDInfo(
            pipeline_id=self.pipeline_id,
            branch=self.branch,
            commit_sha=self.commit_sha,
            environment=self.environment,
        )


@dataclass(frozen=True)
class TestContext:
    """Test run details attached to testing entries."""

    __test__ = False

    framework: str | None = None
    test_id: str | None = None
    coverage: float | None = None
    duration: float | None = None


@dataclass(frozen=True)
class Environment:
    """Snapshot of the execution environment taken when an entry is created.

    Attributes:
        runtime_version: Python interpreter version.
        installer_version: Version of the package installer (pip).
        package_versions: Tracked dependency versions.
        os: Platform identifier (sys.platform).
        timestamp: ISO-8601 capture time.
        ci_cd_info: Present only when running under CI.
    """

    runtime_version: str
    installer_version: str
    package_versions: dict[str, str]
    os: str
    timestamp: str
    ci_cd_info: CICDInfo | None = None


@dataclass(frozen=True)
class LogEntry:
    """A structured diagnostic record.

    Enum fields accept their string values and are coerced on construction.
    Construction raises ValidationError when a required field is empty or an
    enum value is unknown.
    """

    id: str
    timestamp: str
    severity: Severity
    category: Category
    title: str
    description: str = ""
    error_message: str | None = None
    stack_trace: str | None = None
    solution: str | None = None
    steps_taken: tuple[str, ...] = ()
    environment: Environment | None = None
    status: Status = Status.OPEN
    resolution_date: str | None = None
    prevention_notes: str | None = None
    tags: tuple[str, ...] = ()
    related_issues: tuple[str, ...] = ()
    ci_cd_context: CICDContext | None = None
    test_context: TestContext | None = None

    def __post_init__(self) -> None:
        for name in ("id", "timestamp", "title"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"log entry {name} must be a non-empty string")
        # frozen: assign normalized values through object.__setattr__
        object.__setattr__(self, "severity", parse_severity(self.severity))
        object.__setattr__(self, "category", parse_category(self.category))
        object.__setattr__(self, "status", parse_status(self.status))
        object.__setattr__(self, "steps_taken", tuple(self.steps_taken))
        object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))
        object.__setattr__(
            self,
            "related_issues",
            tuple(i for i in dict.fromkeys(self.related_issues) if i != self.id),
        )

    @property
    def is_unresolved(self) -> bool:
        return self.status is Status.OPEN


@dataclass(frozen=True)
class Persisted:
    """Outcome of a two-tier write.

    Attributes:
        primary: The primary store accepted the write.
        fallback: The local cache accepted the write.
    """

    primary: bool
    fallback: bool

    @property
    def degraded(self) -> bool:
        return not self.primary

    @property
    def lost(self) -> bool:
        return not (self.primary or self.fallback)


@dataclass(frozen=True)
class PipelineRun:
    """A CI/CD pipeline record written to the ci_cd_pipelines table."""

    pipeline_id: str
    name: str
    status: str
    branch: str
    commit_sha: str
    stages: tuple[str, ...] = ()
    type: str = "github-actions"
    metadata: dict[str, Any] | None = None

    def to_record(self, user_id: str) -> dict[str, Any]:
        return {
            "pipeline_id": self.pipeline_id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "branch": self.branch,
            "commit_sha": self.commit_sha,
            "stages": list(self.stages),
            "metadata": self.metadata,
            "user_id": user_id,
        }


@dataclass(frozen=True)
class TestRun:
    """A test run record written to the test_results table."""

    __test__ = False

    test_id: str
    framework: str
    status: str
    duration: float
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    coverage: float | None = None
    metadata: dict[str, Any] | None = None

    def to_record(self, user_id: str) -> dict[str, Any]:
        return {
            "test_id": self.test_id,
            "framework": self.framework,
            "status": self.status,
            "duration": self.duration,
            "coverage": self.coverage,
            "total_tests": self.total_tests,
            "passed_tests": self.passed_tests,
            "failed_tests": self.failed_tests,
            "skipped_tests": self.skipped_tests,
            "metadata": self.metadata,
            "user_id": user_id,
        }


@dataclass(frozen=True)
class PerformanceSample:
    """A performance measurement written to the performance_metrics table."""

    metric_id: str
    type: str
    score: float
    url: str
    metrics: dict[str, float] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None

    def to_record(self, user_id: str) -> dict[str, Any]:
        return {
            "metric_id": self.metric_id,
            "type": self.type,
            "score": self.score,
            "metrics": dict(self.metrics),
            "url": self.url,
            "metadata": self.metadata,
            "user_id": user_id,
        }


@dataclass(frozen=True)
class SecurityScanRecord:
    """A security scan result written to the security_scans table."""

    scan_id: str
    type: str
    status: str
    vulnerabilities: tuple[Any, ...] = ()
    severity_counts: dict[str, int] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None

    def to_record(self, user_id: str) -> dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "type": self.type,
            "status": self.status,
            "vulnerabilities": list(self.vulnerabilities),
            "severity_counts": dict(self.severity_counts),
            "metadata": self.metadata,
            "user_id": user_id,
        }
