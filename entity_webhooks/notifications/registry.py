"""Registry of available notification handlers."""

from collections.abc import Iterable

import structlog

from entity_webhooks.delivery.signals import DeliverySignals
from entity_webhooks.notifications.base import Notification

logger = structlog.get_logger(__name__)


class NotificationRegistry:
    """Holds notification handlers by identifier.

    Handlers are registered up front and initialized (subscribed to the
    delivery signals) only when selected, at most once each.
    """

    def __init__(self, signals: DeliverySignals) -> None:
        self.signals = signals
        self._notifications: dict[str, Notification] = {}
        self._initialized: set[str] = set()

    def register(self, notification: Notification) -> bool:
        """Register a handler.

        Returns:
            False if a handler with the same identifier is registered.
        """
        identifier = notification.identifier
        if identifier in self._notifications:
            return False
        self._notifications[identifier] = notification
        logger.debug("notification_registered", identifier=identifier)
        return True

    def get(self, identifier: str) -> Notification | None:
        return self._notifications.get(identifier)

    def is_registered(self, identifier: str) -> bool:
        return identifier in self._notifications

    def get_registered_identifiers(self) -> list[str]:
        return list(self._notifications)

    def is_initialized(self, identifier: str) -> bool:
        return identifier in self._initialized

    def init_all(self) -> None:
        self.init_selected(self._notifications)

    def init_selected(self, identifiers: Iterable[str]) -> None:
        """Initialize the given handlers; unknown identifiers are ignored."""
        for identifier in identifiers:
            notification = self._notifications.get(identifier)
            if notification is None:
                logger.warning("notification_unknown", identifier=identifier)
                continue
            if identifier in self._initialized:
                continue
            notification.init(self.signals)
            self._initialized.add(identifier)
            logger.info("notification_initialized", identifier=identifier)
