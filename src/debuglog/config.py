"""Configuration module: frozen dataclass loaded from environment variables."""

import os
from dataclasses import dataclass

from debuglog.adapters.cache.json_file import JsonFileCache
from debuglog.adapters.sinks.sentry import detect_sink
from debuglog.adapters.storage.sqlite_records import SQLiteRecordStore
from debuglog.logger import DebugLogger
from debuglog.persistence import DEFAULT_STORE_TIMEOUT, PersistenceCoordinator

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LoggerConfig:
    """Settings for wiring a DebugLogger.

    Attributes:
        user_id: Scope of every primary-store record.
        db_path: SQLite file of the primary store. Empty disables the store.
        cache_path: JSON file of the local fallback cache.
        store_timeout: Seconds allowed for each primary-store call.
        enable_sink: Probe for sentry_sdk and forward to it when available.
    """

    user_id: str = "default-user"
    db_path: str = ".debuglog/debuglog.db"
    cache_path: str = ".debuglog/debug-logs.json"
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    enable_sink: bool = True


def load_config() -> LoggerConfig:
    """Build LoggerConfig from environment variables with sensible defaults."""
    return LoggerConfig(
        user_id=os.environ.get("DEBUGLOG_USER_ID", LoggerConfig.user_id),
        db_path=os.environ.get("DEBUGLOG_DB_PATH", LoggerConfig.db_path),
        cache_path=os.environ.get("DEBUGLOG_CACHE_PATH", LoggerConfig.cache_path),
        store_timeout=float(
            os.environ.get("DEBUGLOG_STORE_TIMEOUT", LoggerConfig.store_timeout)
        ),
        enable_sink=os.environ.get(
            "DEBUGLOG_ENABLE_SINK", str(LoggerConfig.enable_sink)
        ).lower()
        in _TRUE_VALUES,
    )


def create_debug_logger(config: LoggerConfig | None = None) -> DebugLogger:
    """Wire a DebugLogger from configuration.

    Uses a SQLite primary store, a JSON file cache and, when enabled and
    available, the Sentry sink.
    """
    config = config or load_config()
    store = SQLiteRecordStore(config.db_path) if config.db_path else None
    if config.db_path and config.db_path != ":memory:":
        os.makedirs(os.path.dirname(config.db_path) or ".", exist_ok=True)
    coordinator = PersistenceCoordinator(
        store=store,
        cache=JsonFileCache(config.cache_path),
        user_id=config.user_id,
        timeout=config.store_timeout,
    )
    sink = detect_sink() if config.enable_sink else None
    return DebugLogger(coordinator, sink=sink)
