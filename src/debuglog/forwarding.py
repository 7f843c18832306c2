"""Best-effort forwarding of log entries to an external monitoring sink."""

import logging
from dataclasses import asdict
from typing import Any

from debuglog.core.models import CICDContext, LogEntry
from debuglog.core.ports import SinkPort

logger = logging.getLogger(__name__)


class EntryForwardedError(Exception):
    """Exception reported to the sink for an error entry's message."""


def _ci_tags(ci_context: CICDContext | None) -> dict[str, str]:
    if ci_context is None:
        return {}
    tags = {"pipeline_id": ci_context.pipeline_id, "branch": ci_context.branch}
    return {key: value for key, value in tags.items() if value}


class SinkForwarder:
    """Translates entries into sink calls and absorbs sink failures.

    With no sink configured every method is a no-op. Each method returns
    True when the sink accepted the call.
    """

    def __init__(self, sink: SinkPort | None = None) -> None:
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    def _call(self, action: str, func: Any, *args: Any) -> bool:
        try:
            func(*args)
        except Exception:
            logger.warning(
                "Could not forward %s to monitoring sink", action, exc_info=True
            )
            return False
        return True

    def forward_error(self, entry: LogEntry) -> bool:
        """Capture an error entry's message as an exception."""
        if self._sink is None or not entry.error_message:
            return False
        context = {
            "tags": {
                "category": entry.category.value,
                "title": entry.title,
                **_ci_tags(entry.ci_cd_context),
            },
            "extras": {
                "description": entry.description,
                "environment": asdict(entry.environment) if entry.environment else None,
                "steps_taken": list(entry.steps_taken),
                "solution": entry.solution,
            },
            "level": entry.severity.value,
        }
        error = EntryForwardedError(entry.error_message)
        return self._call("exception", self._sink.capture_exception, error, context)

    def forward_warning(self, entry: LogEntry) -> bool:
        """Capture a warning entry as a message."""
        if self._sink is None:
            return False
        context = {
            "tags": {"category": entry.category.value, **_ci_tags(entry.ci_cd_context)},
            "extras": {
                "description": entry.description,
                "solution": entry.solution,
                "steps_taken": list(entry.steps_taken),
            },
            "level": "warning",
        }
        return self._call(
            "message", self._sink.capture_message, f"Warning: {entry.title}", context
        )

    def forward_breadcrumb(self, entry: LogEntry) -> bool:
        """Record an info entry as a breadcrumb."""
        if self._sink is None:
            return False
        crumb = {
            "category": entry.category.value,
            "message": entry.title,
            "level": "info",
            "data": {
                "description": entry.description,
                "steps_taken": list(entry.steps_taken),
            },
        }
        return self._call("breadcrumb", self._sink.add_breadcrumb, crumb)
