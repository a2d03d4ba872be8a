"""Base class for delivery outcome notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from entity_webhooks.delivery.signals import (
        DeliveryFailure,
        DeliverySignals,
        DeliverySucceeded,
        EndpointBlocked,
    )


class Notification:
    """A handler that reacts to delivery signals.

    Subclasses set ``identifier`` and override the ``on_*`` callbacks they
    care about; ``init`` subscribes only the overridden ones.
    """

    identifier: str = ""

    def init(self, signals: DeliverySignals) -> None:
        """Subscribe the notification to delivery signals."""
        cls = type(self)
        if cls.on_webhook_success is not Notification.on_webhook_success:
            signals.on_success(self.on_webhook_success)
        if cls.on_webhook_failed is not Notification.on_webhook_failed:
            signals.on_failure(self.on_webhook_failed)
        if cls.on_webhook_blocked is not Notification.on_webhook_blocked:
            signals.on_blocked(self.on_webhook_blocked)

    def get_subject(self) -> str:
        raise NotImplementedError

    async def on_webhook_success(self, event: DeliverySucceeded) -> None:
        return None

    async def on_webhook_failed(self, event: DeliveryFailure) -> None:
        return None

    async def on_webhook_blocked(self, event: EndpointBlocked) -> None:
        return None
