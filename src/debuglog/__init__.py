"""Structured debug event logging with correlation and two-tier persistence."""

from debuglog.adapters.logging import DebugLogHandler
from debuglog.config import LoggerConfig, create_debug_logger, load_config
from debuglog.core.correlation import CorrelatorPort, KeywordCorrelator
from debuglog.core.exceptions import (
    DebugLogError,
    PersistenceError,
    PersistenceReadFailure,
    PersistenceWriteFailure,
    ValidationError,
)
from debuglog.core.keywords import extract_keywords
from debuglog.core.models import (
    Category,
    CICDContext,
    Environment,
    LogEntry,
    Persisted,
    Severity,
    Status,
    TestContext,
)
from debuglog.logger import RETENTION_DAYS, DebugLogger
from debuglog.persistence import PersistenceCoordinator

__all__ = [
    "RETENTION_DAYS",
    "CICDContext",
    "Category",
    "CorrelatorPort",
    "DebugLogError",
    "DebugLogHandler",
    "DebugLogger",
    "Environment",
    "KeywordCorrelator",
    "LogEntry",
    "LoggerConfig",
    "Persisted",
    "PersistenceCoordinator",
    "PersistenceError",
    "PersistenceReadFailure",
    "PersistenceWriteFailure",
    "Severity",
    "Status",
    "TestContext",
    "ValidationError",
    "create_debug_logger",
    "extract_keywords",
    "load_config",
]
