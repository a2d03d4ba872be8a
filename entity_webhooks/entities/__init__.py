"""Entity payload handlers and the delivery-time enrichment pipeline."""

from entity_webhooks.entities.base import (
    ContentSource,
    EntityHandler,
    RestRoute,
    normalize_entity_id,
)
from entity_webhooks.entities.meta import MetaHandler, is_empty_value
from entity_webhooks.entities.pipeline import EnrichmentPipeline
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.entities.term import TermHandler
from entity_webhooks.entities.user import UserHandler

__all__ = [
    "ContentSource",
    "EnrichmentPipeline",
    "EntityHandler",
    "MetaHandler",
    "PostHandler",
    "RestRoute",
    "TermHandler",
    "UserHandler",
    "is_empty_value",
    "normalize_entity_id",
]
