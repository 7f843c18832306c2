"""External monitoring sink adapters."""

from debuglog.adapters.sinks.sentry import SentrySink, detect_sink

__all__ = ["SentrySink", "detect_sink"]
