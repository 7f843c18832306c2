"""Helpers for creating LogEntry objects."""

import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from debuglog.core.correlation import CorrelatorPort, KeywordCorrelator
from debuglog.core.environment import Clock, capture_environment, utc_now
from debuglog.core.keywords import generate_tags
from debuglog.core.models import (
    CICDContext,
    LogEntry,
    Status,
    TestContext,
    parse_category,
    parse_severity,
)

_DEFAULT_CORRELATOR = KeywordCorrelator()


def generate_entry_id(now: datetime | None = None) -> str:
    """Return a new unique entry id of the form ``debug-<millis>-<random>``."""
    now = now or utc_now()
    return f"debug-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


def build_entry(
    severity: str,
    category: str,
    title: str,
    description: str,
    *,
    corpus: Iterable[LogEntry] = (),
    error_message: str | None = None,
    stack_trace: str | None = None,
    solution: str | None = None,
    steps_taken: Sequence[str] | None = None,
    ci_cd_context: CICDContext | None = None,
    test_context: TestContext | None = None,
    correlator: CorrelatorPort | None = None,
    clock: Clock | None = None,
    environ: Mapping[str, str] | None = None,
    package_versions: Mapping[str, str] | None = None,
) -> LogEntry:
    """Create a complete, open log entry with tags and related issues.

    Args:
        severity: Severity value (e.g., "error").
        category: Category value (e.g., "build").
        title: Short summary. Must be non-empty.
        description: Longer free text.
        corpus: Existing entries to correlate against.
        correlator: Correlation strategy. Defaults to KeywordCorrelator.
        clock: Source of the creation instant. Defaults to UTC now.
        environ: Environment mapping for the snapshot. Defaults to os.environ.

    Returns:
        LogEntry with generated id, timestamp, environment snapshot, tags and
        related_issues.

    Raises:
        ValidationError: If category or severity is unknown or title is empty.
    """
    severity = parse_severity(severity)
    category = parse_category(category)
    clock = clock or utc_now
    correlator = correlator or _DEFAULT_CORRELATOR
    now = clock()
    entry_id = generate_entry_id(now)
    return LogEntry(
        id=entry_id,
        timestamp=now.isoformat(),
        severity=severity,
        category=category,
        title=title,
        description=description,
        error_message=error_message,
        stack_trace=stack_trace,
        solution=solution,
        steps_taken=tuple(steps_taken or ()),
        environment=capture_environment(environ, clock, package_versions),
        status=Status.OPEN,
        tags=generate_tags(category, title),
        related_issues=tuple(
            correlator.find_related(title, description, corpus, exclude_id=entry_id)
        ),
        ci_cd_context=ci_cd_context,
        test_context=test_context,
    )
