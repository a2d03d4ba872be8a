"""Extension points for scheduling and delivery.

Each extension point holds an ordered list of callbacks. Callbacks are
pure functions: they receive the current value as their first argument,
followed by the point's context arguments, and return the new value.
Callbacks run in registration order, each one seeing the previous result.

Context arguments per point:

    URL                         (url, entity_type, entity_id) -> url
    PAYLOAD                     (payload, entity_type, entity_id) -> payload | SUPPRESS
    HEADERS                     (headers, entity_type, entity_id, webhook) -> headers
    REQUEST_BODY                (body, action, entity_type, entity_id, payload, webhook) -> body
    RETRY_BASE_TIME             (base_seconds, webhook_name, attempt) -> base_seconds
    RETRY_DELAY                 (delay_seconds, attempt, webhook_name) -> delay_seconds
    MAX_CONSECUTIVE_FAILURES    (threshold, webhook_name) -> threshold
    MAX_RETRIES                 (max_retries, webhook_name) -> max_retries
    TIMEOUT                     (timeout_seconds, webhook_name) -> timeout_seconds
    EXCLUDED_META               (excluded, meta_key, meta_type, object_id) -> bool
    BLOCKED_NOTIFICATION_EMAIL  (email, url, response) -> email | None
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

HookCallback = Callable[..., Any]


class _Suppress:
    """Sentinel returned by a PAYLOAD callback to cancel an emission."""

    _instance: "_Suppress | None" = None

    def __new__(cls) -> "_Suppress":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SUPPRESS"

    def __bool__(self) -> bool:
        return False


SUPPRESS = _Suppress()


class HookPoint(str, Enum):
    """Named extension points."""

    URL = "url"
    PAYLOAD = "payload"
    HEADERS = "headers"
    REQUEST_BODY = "request_body"
    RETRY_BASE_TIME = "retry_base_time"
    RETRY_DELAY = "retry_delay"
    MAX_CONSECUTIVE_FAILURES = "max_consecutive_failures"
    MAX_RETRIES = "max_retries"
    TIMEOUT = "timeout"
    EXCLUDED_META = "excluded_meta"
    BLOCKED_NOTIFICATION_EMAIL = "blocked_notification_email"


class HookRegistry:
    """Ordered callback lists per extension point."""

    def __init__(self) -> None:
        self._callbacks: dict[HookPoint, list[HookCallback]] = {point: [] for point in HookPoint}

    def add(self, point: HookPoint, callback: HookCallback) -> None:
        """Register a callback for an extension point.

        Args:
            point: Extension point.
            callback: Function receiving the current value and context.
        """
        self._callbacks[point].append(callback)
        logger.debug("hook_added", point=point.value, callback=getattr(callback, "__name__", repr(callback)))

    def remove(self, point: HookPoint, callback: HookCallback) -> bool:
        """Remove a callback.

        Returns:
            True if the callback was registered.
        """
        callbacks = self._callbacks[point]
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def has(self, point: HookPoint) -> bool:
        """Check whether any callback is registered for a point."""
        return bool(self._callbacks[point])

    def clear(self, point: HookPoint | None = None) -> None:
        """Remove all callbacks for one point, or for every point."""
        if point is None:
            for callbacks in self._callbacks.values():
                callbacks.clear()
        else:
            self._callbacks[point].clear()

    def apply(self, point: HookPoint, value: Any, *args: Any) -> Any:
        """Run a value through every callback of a point.

        A callback returning SUPPRESS stops the chain; the sentinel is
        returned as is.

        Args:
            point: Extension point.
            value: Initial value.
            *args: Context arguments passed after the value.

        Returns:
            The value returned by the last callback, or the initial value
            when no callback is registered.
        """
        for callback in self._callbacks[point]:
            value = callback(value, *args)
            if value is SUPPRESS:
                break
        return value
