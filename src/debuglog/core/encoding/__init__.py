"""Conversions between log entries and storable or exportable forms."""

from debuglog.core.encoding.ndjson import encode_json, encode_ndjson
from debuglog.core.encoding.records import (
    entry_from_dict,
    entry_to_dict,
    entry_to_record,
)

__all__ = [
    "encode_json",
    "encode_ndjson",
    "entry_from_dict",
    "entry_to_dict",
    "entry_to_record",
]
