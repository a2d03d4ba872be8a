"""Durable, deduplicated, retried and circuit-broken webhook delivery.

Provides:
- DeliveryQueue: Redis-backed delayed queue with pending-item dedup
- FailureTracker: per-URL consecutive failure counting and blocking
- Dispatcher: scheduling and delivery with exponential backoff retries
- DeliveryWorker: concurrent queue consumer
- DeliverySignals: success / failure / blocked listeners
"""

from entity_webhooks.delivery.dispatcher import Dispatcher
from entity_webhooks.delivery.failures import (
    FailureOutcome,
    FailureRecord,
    FailureState,
    FailureTracker,
)
from entity_webhooks.delivery.models import (
    RETRY_COUNT_HEADER,
    WEBHOOK_NAME_HEADER,
    ScheduledDelivery,
    WebhookAction,
)
from entity_webhooks.delivery.queue import DeliveryQueue
from entity_webhooks.delivery.signals import (
    DeliveryFailure,
    DeliverySignals,
    DeliverySucceeded,
    EndpointBlocked,
)
from entity_webhooks.delivery.worker import DeliveryWorker

__all__ = [
    "RETRY_COUNT_HEADER",
    "WEBHOOK_NAME_HEADER",
    "DeliveryFailure",
    "DeliveryQueue",
    "DeliverySignals",
    "DeliverySucceeded",
    "DeliveryWorker",
    "Dispatcher",
    "EndpointBlocked",
    "FailureOutcome",
    "FailureRecord",
    "FailureState",
    "FailureTracker",
    "ScheduledDelivery",
    "WebhookAction",
]
