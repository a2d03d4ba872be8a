"""Shared base for webhooks that emit changes of one entity type."""

from __future__ import annotations

from typing import Generic, TypeVar

from entity_webhooks.entities.base import EntityHandler
from entity_webhooks.webhooks.base import Webhook

HandlerT = TypeVar("HandlerT", bound=EntityHandler)


class EntityWebhook(Webhook, Generic[HandlerT]):
    """A webhook whose payloads come from an entity handler.

    Until activation the webhook uses its own handler, which has no
    content source. Once active it shares the dispatcher pipeline's
    handler, and with it the host's content source.
    """

    entity_type: str = ""
    handler_class: type[EntityHandler] = EntityHandler

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._default_handler = self.handler_class()

    def get_handler(self) -> HandlerT:
        if self.dispatcher is not None:
            handler = self.dispatcher.pipeline.handler_for(self.entity_type)
            if isinstance(handler, self.handler_class):
                return handler  # type: ignore[return-value]
        return self._default_handler  # type: ignore[return-value]
