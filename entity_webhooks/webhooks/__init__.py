"""Webhook endpoints and the entity change emitters built on them."""

from entity_webhooks.webhooks.base import (
    DEFAULT_MAX_CONSECUTIVE_FAILURES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_TIME,
    DEFAULT_TIMEOUT,
    Webhook,
)
from entity_webhooks.webhooks.entity import EntityWebhook
from entity_webhooks.webhooks.meta import MetaEmissionMode, MetaWebhook
from entity_webhooks.webhooks.post import PostWebhook
from entity_webhooks.webhooks.registry import WebhookRegistry
from entity_webhooks.webhooks.term import TermWebhook
from entity_webhooks.webhooks.user import UserWebhook

__all__ = [
    "DEFAULT_MAX_CONSECUTIVE_FAILURES",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_BASE_TIME",
    "DEFAULT_TIMEOUT",
    "EntityWebhook",
    "MetaEmissionMode",
    "MetaWebhook",
    "PostWebhook",
    "TermWebhook",
    "UserWebhook",
    "Webhook",
    "WebhookRegistry",
]
