"""Sentry adapter for the external monitoring sink.

sentry-sdk is an optional dependency (``pip install debuglog[sentry]``).
detect_sink() reports whether it is usable; nothing else in the package
imports it.
"""

import importlib
import importlib.util
import logging
from collections.abc import Mapping
from types import ModuleType
from typing import Any

logger = logging.getLogger(__name__)


class SentrySink:
    """SinkPort implementation forwarding to the sentry_sdk module.

    Context mappings use the keys ``tags``, ``extras`` and ``level``, which
    map onto sentry_sdk scope keyword arguments.
    """

    def __init__(self, sdk: ModuleType) -> None:
        self._sdk = sdk

    def _scope_kwargs(self, context: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: context[key] for key in ("tags", "extras", "level") if key in context
        }

    def capture_exception(
        self, error: BaseException, context: Mapping[str, Any]
    ) -> None:
        self._sdk.capture_exception(error, **self._scope_kwargs(context))

    def capture_message(self, text: str, context: Mapping[str, Any]) -> None:
        self._sdk.capture_message(text, **self._scope_kwargs(context))

    def add_breadcrumb(self, crumb: Mapping[str, Any]) -> None:
        self._sdk.add_breadcrumb(dict(crumb))


def detect_sink(require_initialized: bool = True) -> SentrySink | None:
    """Return a SentrySink if sentry_sdk is installed (and initialized).

    Args:
        require_initialized: Only return a sink when sentry_sdk.init() has
            been called, so events are not silently dropped by a bare SDK.

    Returns:
        SentrySink, or None when the SDK is unavailable.
    """
    if importlib.util.find_spec("sentry_sdk") is None:
        logger.debug("sentry_sdk not installed; monitoring sink disabled")
        return None
    sdk = importlib.import_module("sentry_sdk")
    if require_initialized and not sdk.is_initialized():
        logger.debug("sentry_sdk not initialized; monitoring sink disabled")
        return None
    return SentrySink(sdk)
