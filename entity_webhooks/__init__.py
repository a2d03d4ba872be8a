"""Queued, deduplicated, retried and circuit-broken entity webhooks."""

from entity_webhooks.dedup import EmissionScope, current_emission_scope, emission_scope
from entity_webhooks.delivery import (
    DeliveryQueue,
    DeliverySignals,
    DeliveryWorker,
    Dispatcher,
    FailureRecord,
    FailureTracker,
    ScheduledDelivery,
    WebhookAction,
)
from entity_webhooks.errors import (
    ConfigurationLockedError,
    DeliveryFailedError,
    DuplicateWebhookError,
    EndpointBlockedError,
    EndpointNotFoundError,
    InvalidConfigurationError,
    InvalidPayloadError,
    WebhookFrameworkError,
)
from entity_webhooks.hooks import SUPPRESS, HookPoint, HookRegistry
from entity_webhooks.service import (
    WebhookService,
    get_webhook_service,
    init_webhook_service,
    shutdown_webhook_service,
)
from entity_webhooks.webhooks import (
    MetaEmissionMode,
    MetaWebhook,
    PostWebhook,
    TermWebhook,
    UserWebhook,
    Webhook,
    WebhookRegistry,
)

__version__ = "0.1.0"

__all__ = [
    "SUPPRESS",
    "ConfigurationLockedError",
    "DeliveryFailedError",
    "DeliveryQueue",
    "DeliverySignals",
    "DeliveryWorker",
    "Dispatcher",
    "DuplicateWebhookError",
    "EmissionScope",
    "EndpointBlockedError",
    "EndpointNotFoundError",
    "FailureRecord",
    "FailureTracker",
    "HookPoint",
    "HookRegistry",
    "InvalidConfigurationError",
    "InvalidPayloadError",
    "MetaEmissionMode",
    "MetaWebhook",
    "PostWebhook",
    "ScheduledDelivery",
    "TermWebhook",
    "UserWebhook",
    "Webhook",
    "WebhookAction",
    "WebhookFrameworkError",
    "WebhookRegistry",
    "WebhookService",
    "current_emission_scope",
    "emission_scope",
    "get_webhook_service",
    "init_webhook_service",
    "shutdown_webhook_service",
]
