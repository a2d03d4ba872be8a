"""Composition of the webhook framework around one Redis client.

Example:
    service = WebhookService.from_settings(source=my_content_source)
    post_webhook = PostWebhook().set_url("https://example.com/hooks/posts")
    service.register(post_webhook)
    await service.start()
    ...
    with service.unit_of_work():
        await post_webhook.on_save_post(42, update=True)
    ...
    await service.shutdown()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from redis.asyncio import Redis

from entity_webhooks.config import Settings
from entity_webhooks.config import settings as default_settings
from entity_webhooks.dedup import EmissionScope, emission_scope
from entity_webhooks.delivery.dispatcher import Dispatcher
from entity_webhooks.delivery.failures import FailureRecord, FailureTracker
from entity_webhooks.delivery.queue import DeliveryQueue
from entity_webhooks.delivery.signals import DeliverySignals
from entity_webhooks.delivery.worker import DeliveryWorker
from entity_webhooks.entities.base import ContentSource
from entity_webhooks.entities.pipeline import EnrichmentPipeline
from entity_webhooks.hooks import HookRegistry
from entity_webhooks.notifications.blocked import BlockedNotification, MailSender
from entity_webhooks.notifications.registry import NotificationRegistry
from entity_webhooks.webhooks.base import Webhook
from entity_webhooks.webhooks.registry import WebhookRegistry

logger = structlog.get_logger(__name__)


class WebhookService:
    """Wires hooks, registries, queue, failure tracker, dispatcher and worker."""

    def __init__(
        self,
        redis: Any,  # redis.asyncio.Redis
        *,
        source: ContentSource | None = None,
        settings: Settings | None = None,
        send_mail: MailSender | None = None,
        admin_email: str = "",
        site_name: str = "",
        clock: Callable[[], float] = time.time,
        owns_redis: bool = False,
    ) -> None:
        """Build the service.

        Args:
            redis: Async Redis client shared by the queue and failure tracker.
            source: Host content access for payload enrichment.
            settings: Framework settings.
            send_mail: Mail transport; enables the blocked-URL notification.
            admin_email: Recipient of blocked-URL notifications.
            site_name: Site name used in notification subjects.
            clock: Source of epoch seconds.
            owns_redis: Close the Redis client on shutdown.
        """
        self.settings = settings or default_settings
        self.redis = redis
        self._owns_redis = owns_redis

        self.hooks = HookRegistry()
        self.signals = DeliverySignals()
        self.notifications = NotificationRegistry(self.signals)
        if send_mail is not None:
            self.notifications.register(
                BlockedNotification(
                    send_mail,
                    recipient=admin_email,
                    site_name=site_name,
                    hooks=self.hooks,
                    clock=clock,
                )
            )

        self.failures = FailureTracker(
            redis,
            prefix=self.settings.KEY_PREFIX,
            block_window=self.settings.BLOCK_WINDOW_SECONDS,
            clock=clock,
        )
        self.queue = DeliveryQueue(redis, prefix=self.settings.KEY_PREFIX, clock=clock)
        self.pipeline = EnrichmentPipeline(source, self.hooks)
        self.registry = WebhookRegistry(notifications=self.notifications)
        self.dispatcher = Dispatcher(
            self.queue,
            self.failures,
            self.registry,
            hooks=self.hooks,
            pipeline=self.pipeline,
            signals=self.signals,
            settings=self.settings,
            clock=clock,
        )
        self.registry.dispatcher = self.dispatcher
        self.worker = DeliveryWorker(
            self.queue,
            self.dispatcher,
            concurrency=self.settings.WORKER_CONCURRENCY,
            poll_interval=self.settings.WORKER_POLL_INTERVAL,
            batch_size=self.settings.WORKER_BATCH_SIZE,
        )
        self._worker_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> WebhookService:
        """Build a service with its own Redis client from settings."""
        settings = settings or default_settings
        redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls(redis, settings=settings, owns_redis=True, **kwargs)

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    @contextmanager
    def unit_of_work(self) -> Iterator[EmissionScope]:
        """Bind an emission scope for one host request or job.

        Meta changes reported more than once inside the block are emitted
        once.

        Example:
            with service.unit_of_work():
                await meta_webhook.on_field_update("post_42", {"name": "price"}, 10, 5)
                await meta_webhook.on_updated_meta("post", 42, "price", 10, 5)  # skipped
        """
        with emission_scope() as scope:
            yield scope

    def register(self, webhook: Webhook) -> WebhookService:
        """Register and activate a webhook."""
        self.registry.register(webhook, dispatcher=self.dispatcher)
        return self

    async def start(self) -> None:
        """Start the delivery worker in a background task."""
        if self.is_running:
            return
        self._worker_task = asyncio.create_task(self.worker.run())
        logger.info("webhook_service_started", webhooks=sorted(self.registry.get_all()))

    async def shutdown(self) -> None:
        """Stop the worker, wait for in-flight deliveries and release Redis."""
        await self.worker.shutdown()
        if self._worker_task is not None:
            await self._worker_task
            self._worker_task = None
        if self._owns_redis:
            await self.redis.aclose()
        logger.info("webhook_service_stopped")

    async def status(self, url: str) -> FailureRecord:
        """Effective failure record for a URL."""
        return await self.failures.get(url)

    async def unblock(self, url: str) -> None:
        await self.failures.unblock(url)


# Global service instance
_webhook_service: WebhookService | None = None


def init_webhook_service(service: WebhookService | None = None, **kwargs: Any) -> WebhookService:
    """Initialize the process-wide service.

    Args:
        service: Ready service to install; built from settings when omitted.
        **kwargs: Passed to WebhookService.from_settings().

    Returns:
        The installed service.

    Raises:
        RuntimeError: A service is already installed.
    """
    global _webhook_service
    if _webhook_service is not None:
        raise RuntimeError("Webhook service is already initialized.")
    _webhook_service = service or WebhookService.from_settings(**kwargs)
    return _webhook_service


def get_webhook_service() -> WebhookService | None:
    """Get the process-wide service.

    Returns:
        The service, or None if not initialized.
    """
    return _webhook_service


async def shutdown_webhook_service() -> None:
    """Shut down and remove the process-wide service."""
    global _webhook_service
    if _webhook_service is None:
        return
    service = _webhook_service
    _webhook_service = None
    await service.shutdown()
