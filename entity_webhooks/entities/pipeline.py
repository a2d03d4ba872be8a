"""Delivery-time payload enrichment."""

from typing import Any

import structlog

from entity_webhooks.entities.base import ContentSource, EntityHandler, normalize_entity_id
from entity_webhooks.entities.meta import MetaHandler
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.entities.term import TermHandler
from entity_webhooks.entities.user import UserHandler
from entity_webhooks.hooks import HookRegistry

logger = structlog.get_logger(__name__)


class EnrichmentPipeline:
    """Routes scheduled payloads to the handler for their entity type.

    Enrichment never fails: invalid IDs, unknown entity types and
    missing entities leave the payload unchanged.
    """

    def __init__(self, source: ContentSource | None = None, hooks: HookRegistry | None = None) -> None:
        self.source = source
        self.meta = MetaHandler(source, hooks)
        self._handlers: dict[str, EntityHandler] = {
            "post": PostHandler(source),
            "term": TermHandler(source),
            "user": UserHandler(source),
            "meta": self.meta,
        }

    def register(self, entity_type: str, handler: EntityHandler) -> None:
        """Add or replace the handler for an entity type."""
        self._handlers[entity_type] = handler

    def handler_for(self, entity_type: str) -> EntityHandler | None:
        return self._handlers.get(entity_type)

    def enrich(self, entity_type: str, entity_id: int | str, payload: dict[str, Any]) -> dict[str, Any]:
        """Enrich a scheduled payload for delivery.

        Args:
            entity_type: Entity tag of the delivery.
            entity_id: Entity ID as scheduled.
            payload: Payload captured at schedule time.

        Returns:
            The enriched payload.
        """
        normalized_id = normalize_entity_id(entity_id)
        if normalized_id is None:
            return payload

        handler = self._handlers.get(entity_type)
        if handler is None:
            return payload

        enriched = handler.prepare_delivery_payload(normalized_id, payload)
        logger.debug(
            "payload_enriched",
            entity_type=entity_type,
            entity_id=normalized_id,
            added=sorted(set(enriched) - set(payload)),
        )
        return enriched
