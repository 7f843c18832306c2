"""Python logging handler adapter for debuglog.

This adapter bridges Python's standard library logging module to the
DebugLogger facade, so existing ``logging`` calls become debug log entries.
"""

import asyncio
import logging
import traceback
from typing import TYPE_CHECKING, Any

from debuglog.core.models import Category

if TYPE_CHECKING:
    from debuglog.logger import DebugLogger

# Records from the package's own loggers are never bridged back in.
_OWN_LOGGER_PREFIX = "debuglog"

DEFAULT_CATEGORY = Category.RUNTIME


class DebugLogHandler(logging.Handler):
    """Logging handler that records log records through a DebugLogger.

    ERROR and above become log_error (with exception details when present),
    WARNING becomes log_warning and anything lower log_info. The category is
    taken from a ``category`` extra, falling back to ``default_category``.

    Example:
        ```python
        handler = DebugLogHandler(debug_logger)
        logging.getLogger("myapp").addHandler(handler)
        logging.getLogger("myapp").error("Build failed", extra={"category": "build"})
        ```
    """

    def __init__(
        self,
        debug_logger: "DebugLogger",
        level: int = logging.WARNING,
        default_category: Category | str = DEFAULT_CATEGORY,
    ) -> None:
        """Initialize the handler with the facade it feeds.

        Args:
            debug_logger: The DebugLogger to record through.
            level: Minimum record level handled. Defaults to WARNING.
            default_category: Category for records without a category extra.
        """
        super().__init__(level)
        self._debug_logger = debug_logger
        self._default_category = Category(default_category)
        self._pending: set[asyncio.Task[Any]] = set()

    def _category_for(self, record: logging.LogRecord) -> Category:
        value = getattr(record, "category", None)
        try:
            return Category(value) if value else self._default_category
        except ValueError:
            return self._default_category

    def _coroutine_for(self, record: logging.LogRecord) -> Any:
        category = self._category_for(record)
        title = record.getMessage()
        location = f"{record.module}.{record.funcName}:{record.lineno}"
        description = f"{record.name} ({location})"
        if record.levelno >= logging.ERROR:
            error_message = None
            stack_trace = None
            if record.exc_info and record.exc_info[1] is not None:
                exc_type, exc_value, exc_tb = record.exc_info
                error_message = f"{exc_type.__name__}: {exc_value}"
                stack_trace = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )
            return self._debug_logger.log_error(
                category,
                title,
                description,
                error_message=error_message,
                stack_trace=stack_trace,
            )
        if record.levelno >= logging.WARNING:
            return self._debug_logger.log_warning(category, title, description)
        return self._debug_logger.log_info(category, title, description)

    async def _record_and_flush(self, coro: Any) -> None:
        try:
            await coro
        finally:
            await self._debug_logger.flush()

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to the debug logger.

        Inside a running event loop the entry is recorded by a background
        task; otherwise it is recorded synchronously.

        Args:
            record: The log record to emit.
        """
        if record.name.startswith(_OWN_LOGGER_PREFIX) or not record.getMessage():
            return
        coro = self._coroutine_for(record)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                asyncio.run(self._record_and_flush(coro))
            except Exception:
                self.handleError(record)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
