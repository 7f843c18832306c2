"""JSON and NDJSON exporters for log entries."""

import json
from collections.abc import Iterable

from debuglog.core.encoding.records import entry_to_dict
from debuglog.core.models import LogEntry


def encode_json(entries: Iterable[LogEntry], indent: int = 2) -> str:
    """Encode log entries as a pretty-printed JSON array."""
    return json.dumps([entry_to_dict(entry) for entry in entries], indent=indent)


def encode_ndjson(entries: Iterable[LogEntry]) -> str:
    """Encode log entries to newline-delimited JSON.

    Args:
        entries: An iterable of LogEntry objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no entries.
    """
    lines = [json.dumps(entry_to_dict(entry)) for entry in entries]

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
