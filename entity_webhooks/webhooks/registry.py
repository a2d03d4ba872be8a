"""Registry of active webhooks, keyed by name."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from entity_webhooks.errors import DuplicateWebhookError
from entity_webhooks.webhooks.base import Webhook

if TYPE_CHECKING:
    from entity_webhooks.delivery.dispatcher import Dispatcher
    from entity_webhooks.notifications.registry import NotificationRegistry

logger = structlog.get_logger(__name__)


class WebhookRegistry:
    """Holds registered webhooks.

    The dispatcher resolves a queued item's webhook here by the name
    persisted on the item, so a webhook must stay registered for as long
    as deliveries for it may be queued.
    """

    def __init__(
        self,
        dispatcher: Dispatcher | None = None,
        notifications: NotificationRegistry | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            dispatcher: Dispatcher bound to webhooks on registration.
            notifications: Notification handlers enabled per webhook.
        """
        self.dispatcher = dispatcher
        self.notifications = notifications
        self._webhooks: dict[str, Webhook] = {}
        self._logger = logger.bind(component="webhook_registry")

    def register(self, webhook: Webhook, *, dispatcher: Dispatcher | None = None) -> WebhookRegistry:
        """Register and activate a webhook.

        Activation freezes the webhook's configuration. Notifications the
        webhook selected are initialized.

        Args:
            webhook: Webhook to register.
            dispatcher: Dispatcher to bind, defaults to the registry's.

        Returns:
            The registry, for chaining.

        Raises:
            DuplicateWebhookError: A webhook with the same name exists.
            ValueError: No dispatcher is available.
        """
        if webhook.name in self._webhooks:
            raise DuplicateWebhookError(webhook.name)

        dispatcher = dispatcher or self.dispatcher
        if dispatcher is None:
            raise ValueError("A dispatcher is required to register webhooks.")

        self._webhooks[webhook.name] = webhook
        webhook.activate(dispatcher, self)

        selected = webhook.get_notifications()
        if selected and self.notifications is not None:
            self.notifications.init_selected(selected)

        self._logger.info(
            "webhook_registered",
            webhook=webhook.name,
            webhook_type=webhook.__class__.__name__,
            notifications=list(selected),
        )
        return self

    def get(self, name: str) -> Webhook | None:
        return self._webhooks.get(name)

    def get_all(self) -> dict[str, Webhook]:
        return dict(self._webhooks)

    def has(self, name: str) -> bool:
        return name in self._webhooks

    def unregister(self, name: str) -> bool:
        """Remove a webhook.

        Returns:
            True if the webhook was registered.
        """
        if name in self._webhooks:
            del self._webhooks[name]
            self._logger.info("webhook_unregistered", webhook=name)
            return True
        return False

    def __len__(self) -> int:
        return len(self._webhooks)

    def __contains__(self, name: object) -> bool:
        return name in self._webhooks
