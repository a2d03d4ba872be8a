"""Webhook endpoint configuration.

A Webhook is configured with chaining setters, then activated by
registering it. Activation binds it to a dispatcher and freezes its
configuration; setters called afterwards raise ConfigurationLockedError.
Emission data is always passed as call arguments and never stored on the
webhook, so one instance can serve concurrent emissions.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from entity_webhooks.delivery.models import WEBHOOK_NAME_HEADER, ScheduledDelivery, WebhookAction
from entity_webhooks.errors import ConfigurationLockedError, WebhookFrameworkError
from entity_webhooks.hooks import HookPoint, HookRegistry

if TYPE_CHECKING:
    from entity_webhooks.delivery.dispatcher import Dispatcher
    from entity_webhooks.webhooks.registry import WebhookRegistry

logger = structlog.get_logger(__name__)

MIN_TIMEOUT = 1
MAX_TIMEOUT = 300
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 0
DEFAULT_MAX_CONSECUTIVE_FAILURES = 10
DEFAULT_RETRY_BASE_TIME = 60


class Webhook:
    """A named webhook endpoint and its delivery policy.

    Example:
        webhook = (
            Webhook("orders")
            .set_url("https://example.com/hooks/orders")
            .set_timeout(10)
            .set_max_retries(3)
        )
        registry.register(webhook, dispatcher=dispatcher)
        await webhook.emit("update", "post", 42, {"price": 10})
    """

    def __init__(self, name: str) -> None:
        if not name:
            raise ValueError("Webhook name must not be empty.")
        self._name = name
        self._url = ""
        self._timeout = DEFAULT_TIMEOUT
        self._max_retries = DEFAULT_MAX_RETRIES
        self._max_consecutive_failures = DEFAULT_MAX_CONSECUTIVE_FAILURES
        self._headers: dict[str, str] = {WEBHOOK_NAME_HEADER: name}
        self._notifications: tuple[str, ...] = ()

        self._hooks = HookRegistry()
        self._retry_base_time = DEFAULT_RETRY_BASE_TIME
        self._dispatcher: Dispatcher | None = None
        self._registry: WebhookRegistry | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self._name!r}, url={self._url!r}, active={self.is_active})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_active(self) -> bool:
        return self._dispatcher is not None

    @property
    def dispatcher(self) -> Dispatcher | None:
        return self._dispatcher

    @property
    def registry(self) -> WebhookRegistry | None:
        return self._registry

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def _ensure_mutable(self, setting: str) -> None:
        if self.is_active:
            raise ConfigurationLockedError(self._name, setting)

    def set_url(self, url: str) -> Webhook:
        self._ensure_mutable("url")
        self._url = url
        return self

    def set_timeout(self, timeout: int) -> Webhook:
        """Set the request timeout, clamped to 1..300 seconds."""
        self._ensure_mutable("timeout")
        self._timeout = max(MIN_TIMEOUT, min(MAX_TIMEOUT, int(timeout)))
        return self

    def set_max_retries(self, retries: int) -> Webhook:
        """Set how many retries follow a failed delivery. 0 disables retries."""
        self._ensure_mutable("max_retries")
        self._max_retries = max(0, int(retries))
        return self

    def set_max_consecutive_failures(self, failures: int) -> Webhook:
        """Set the consecutive failures that block the URL. 0 disables blocking."""
        self._ensure_mutable("max_consecutive_failures")
        self._max_consecutive_failures = max(0, int(failures))
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Webhook:
        """Merge static request headers into the configured ones."""
        self._ensure_mutable("headers")
        self._headers.update({str(k): str(v) for k, v in headers.items()})
        return self

    def set_notifications(self, identifiers: Sequence[str]) -> Webhook:
        """Select the notification handlers to enable for this webhook."""
        self._ensure_mutable("notifications")
        self._notifications = tuple(identifiers)
        return self

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def get_url(self) -> str:
        return self._url

    def get_timeout(self) -> int:
        return int(self._hooks.apply(HookPoint.TIMEOUT, self._timeout, self._name))

    def get_max_retries(self) -> int:
        return int(self._hooks.apply(HookPoint.MAX_RETRIES, self._max_retries, self._name))

    def get_max_consecutive_failures(self) -> int:
        return int(
            self._hooks.apply(HookPoint.MAX_CONSECUTIVE_FAILURES, self._max_consecutive_failures, self._name)
        )

    def get_headers(self) -> dict[str, str]:
        return dict(self._headers)

    def get_notifications(self) -> tuple[str, ...]:
        return self._notifications

    def calculate_retry_delay(self, attempt: int) -> int:
        """Seconds to wait before a retry.

        Args:
            attempt: 1-based number of the retry being scheduled.

        Returns:
            base * 2 ** (attempt - 1), after the retry hooks.
        """
        base = int(self._hooks.apply(HookPoint.RETRY_BASE_TIME, self._retry_base_time, self._name, attempt))
        delay = base * 2 ** max(0, attempt - 1)
        return int(self._hooks.apply(HookPoint.RETRY_DELAY, delay, attempt, self._name))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self, dispatcher: Dispatcher, registry: WebhookRegistry | None = None) -> None:
        """Bind the webhook to a dispatcher and freeze its configuration.

        Called by the registry on registration.
        """
        if self.is_active:
            return
        self._hooks = dispatcher.hooks
        self._retry_base_time = dispatcher.settings.RETRY_BASE_SECONDS
        self._registry = registry
        self._dispatcher = dispatcher
        logger.info("webhook_activated", webhook=self._name, url=self._url or None)

    async def emit(
        self,
        action: WebhookAction | str,
        entity_type: str,
        entity_id: int | str,
        payload: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ScheduledDelivery | None:
        """Schedule a delivery through the bound dispatcher.

        Per-call headers take precedence over configured ones. Scheduling
        errors are logged and dropped so that a host write never fails
        because of a webhook.

        Returns:
            The queued item, or None when nothing was queued.
        """
        if self._dispatcher is None:
            logger.warning("webhook_not_active", webhook=self._name, entity_type=entity_type, entity_id=entity_id)
            return None

        final_headers = {**self.get_headers(), **(headers or {})}
        try:
            return await self._dispatcher.schedule(
                action,
                entity_type,
                entity_id,
                self.get_url(),
                payload or {},
                final_headers,
            )
        except WebhookFrameworkError as e:
            logger.warning(
                "webhook_schedule_failed",
                webhook=self._name,
                entity_type=entity_type,
                entity_id=entity_id,
                **e.to_dict(),
            )
            return None
