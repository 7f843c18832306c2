"""Dict conversions for log entries.

Two shapes exist:

- the cache/export shape (``entry_to_dict``): every field, nested
  structures as JSON-compatible dicts and lists;
- the primary-store row shape (``entry_to_record``): same fields, but the
  id is stored as ``log_id`` and every row carries ``user_id``.

``entry_from_dict`` accepts either shape. Primary stores may hand back
nested structures as JSON text; those are decoded back into structure.
"""

import json
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any

from debuglog.core.exceptions import ValidationError
from debuglog.core.models import (
    CICDContext,
    CICDInfo,
    Environment,
    LogEntry,
    TestContext,
)

_SEQUENCE_FIELDS = ("steps_taken", "tags", "related_issues")
_OPTIONAL_TEXT_FIELDS = (
    "error_message",
    "stack_trace",
    "solution",
    "resolution_date",
    "prevention_notes",
)


def _decode_text(value: Any) -> Any:
    """Decode a JSON-encoded string, returning other values unchanged."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"malformed encoded field: {value[:40]!r}") from exc


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def entry_to_dict(entry: LogEntry) -> dict[str, Any]:
    """Convert an entry to a JSON-compatible dict.

    Optional sub-objects that are absent are omitted, not written as null.
    """
    data = asdict(entry)
    data["severity"] = entry.severity.value
    data["category"] = entry.category.value
    data["status"] = entry.status.value
    for name in _SEQUENCE_FIELDS:
        data[name] = list(data[name])
    if entry.environment is not None and entry.environment.ci_cd_info is None:
        del data["environment"]["ci_cd_info"]
    return _drop_none(data)


def entry_to_record(entry: LogEntry, user_id: str) -> dict[str, Any]:
    """Convert an entry to the primary-store row shape."""
    record = entry_to_dict(entry)
    record["log_id"] = record.pop("id")
    record["user_id"] = user_id
    return record


def _mapping_from(value: Any, name: str) -> dict[str, Any] | None:
    """Decode an optional sub-object, rejecting anything but a mapping."""
    data = _decode_text(value)
    if not data:
        return None
    if not isinstance(data, Mapping):
        raise ValidationError(f"{name} must be an object, not {type(data).__name__}")
    return dict(data)


def _environment_from(value: Any) -> Environment | None:
    data = _mapping_from(value, "environment")
    if data is None:
        return None
    ci_info = _mapping_from(data.get("ci_cd_info"), "ci_cd_info")
    return Environment(
        runtime_version=str(data.get("runtime_version", "unknown")),
        installer_version=str(data.get("installer_version", "unknown")),
        package_versions=dict(data.get("package_versions") or {}),
        os=str(data.get("os", "unknown")),
        timestamp=str(data.get("timestamp", "")),
        ci_cd_info=CICDInfo(**ci_info) if ci_info else None,
    )


def entry_from_dict(data: Mapping[str, Any]) -> LogEntry:
    """Rebuild an entry from either the cache shape or the store row shape.

    Raises:
        ValidationError: If the data cannot form a valid entry.
    """
    if not isinstance(data, Mapping):
        raise ValidationError(f"log entry must be an object, not {type(data).__name__}")
    entry_id = data.get("id") or data.get("log_id")
    try:
        sequences = {
            name: tuple(_decode_text(data.get(name)) or ()) for name in _SEQUENCE_FIELDS
        }
        ci_cd_context = _mapping_from(data.get("ci_cd_context"), "ci_cd_context")
        test_context = _mapping_from(data.get("test_context"), "test_context")
        return LogEntry(
            id=entry_id or "",
            timestamp=data.get("timestamp") or "",
            severity=data.get("severity"),
            category=data.get("category"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            environment=_environment_from(data.get("environment")),
            status=data.get("status") or "open",
            ci_cd_context=CICDContext(**ci_cd_context) if ci_cd_context else None,
            test_context=TestContext(**test_context) if test_context else None,
            **{name: data.get(name) for name in _OPTIONAL_TEXT_FIELDS},
            **sequences,
        )
    except ValidationError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(f"malformed log entry {entry_id!r}: {exc}") from exc
