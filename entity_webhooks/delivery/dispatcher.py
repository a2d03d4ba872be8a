"""Webhook dispatcher: scheduling, delivery, retry and failure accounting.

Scheduling validates and deduplicates an emission and puts it on the
durable queue. Delivery enriches the payload, POSTs it, and on failure
schedules a bounded retry and updates the per-URL failure record, which
may block the URL.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from entity_webhooks.config import Settings
from entity_webhooks.config import settings as default_settings
from entity_webhooks.delivery.failures import FailureTracker
from entity_webhooks.delivery.models import ScheduledDelivery, WebhookAction
from entity_webhooks.delivery.queue import DeliveryQueue
from entity_webhooks.delivery.signals import (
    DeliveryFailure,
    DeliverySignals,
    DeliverySucceeded,
    EndpointBlocked,
)
from entity_webhooks.entities.pipeline import EnrichmentPipeline
from entity_webhooks.errors import (
    DeliveryFailedError,
    EndpointBlockedError,
    EndpointNotFoundError,
    InvalidConfigurationError,
    InvalidPayloadError,
)
from entity_webhooks.hooks import SUPPRESS, HookPoint, HookRegistry

if TYPE_CHECKING:
    from entity_webhooks.webhooks.base import Webhook
    from entity_webhooks.webhooks.registry import WebhookRegistry

logger = structlog.get_logger(__name__)


class Dispatcher:
    """Queues and sends webhooks.

    At most one delivery is pending per (url, action, entity, id). The
    payload of the first emission wins; later emissions for the same
    tuple are dropped until the pending item is claimed. Retries are not
    pending items, so an emission made while a retry waits is queued.

    Example:
        dispatcher = Dispatcher(queue, failures, registry)
        await dispatcher.schedule("update", "post", 42, "https://example.com/hook", {"price": 10})
    """

    def __init__(
        self,
        queue: DeliveryQueue,
        failures: FailureTracker,
        registry: WebhookRegistry,
        *,
        hooks: HookRegistry | None = None,
        pipeline: EnrichmentPipeline | None = None,
        signals: DeliverySignals | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            queue: Durable delivery queue.
            failures: Per-URL failure tracker.
            registry: Registry used to resolve webhooks by name at delivery time.
            hooks: Extension points.
            pipeline: Delivery-time payload enrichment.
            signals: Delivery outcome listeners.
            settings: Delivery policy settings.
            clock: Source of epoch seconds.
        """
        self.queue = queue
        self.failures = failures
        self.registry = registry
        self.hooks = hooks or HookRegistry()
        self.pipeline = pipeline or EnrichmentPipeline(hooks=self.hooks)
        self.signals = signals or DeliverySignals()
        self.settings = settings or default_settings
        self._clock = clock
        self._logger = logger.bind(component="webhook_dispatcher")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule(
        self,
        action: WebhookAction | str,
        entity_type: str,
        entity_id: int | str,
        url: str = "",
        payload: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ScheduledDelivery | None:
        """Schedule a delivery unless one is already pending for the same tuple.

        Args:
            action: create, update or delete.
            entity_type: Entity tag.
            entity_id: Entity ID.
            url: Target URL; the URL hook may override or supply it.
            payload: Payload captured now and delivered later.
            headers: Request headers, including the webhook name.

        Returns:
            The queued item, or None if the emission was suppressed or
            coalesced into a pending delivery.

        Raises:
            InvalidConfigurationError: No URL could be resolved.
            EndpointBlockedError: The URL is blocked.
            InvalidPayloadError: The payload hook returned an unusable payload.
        """
        action = WebhookAction(action)

        url = self.hooks.apply(HookPoint.URL, url, entity_type, entity_id)
        if not url:
            raise InvalidConfigurationError(entity_type=entity_type, entity_id=entity_id)

        if await self.is_url_blocked(url):
            self._logger.info("schedule_refused_blocked", url=url, entity_type=entity_type, entity_id=entity_id)
            raise EndpointBlockedError(url)

        original_payload = dict(payload or {})
        result = self.hooks.apply(HookPoint.PAYLOAD, dict(original_payload), entity_type, entity_id)
        if result is SUPPRESS or result is None or result is False:
            self._logger.debug("delivery_suppressed", url=url, entity_type=entity_type, entity_id=entity_id)
            return None
        if not isinstance(result, Mapping):
            raise InvalidPayloadError(reason=f"payload hook returned {type(result).__name__}")
        if not result and original_payload:
            raise InvalidPayloadError("webhook_payload_empty", reason="payload hook emptied a non-empty payload")

        item = ScheduledDelivery(
            url=url,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=dict(result),
            headers={str(k): str(v) for k, v in (headers or {}).items()},
            created_at=self._clock(),
        )

        queued = await self.queue.enqueue_unique(item, delay_seconds=self.settings.DEBOUNCE_SECONDS)
        if not queued:
            self._logger.debug(
                "delivery_coalesced",
                url=url,
                action=action.value,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            return None

        self._logger.info(
            "delivery_scheduled",
            item_id=item.item_id,
            url=url,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            webhook=item.webhook_name,
        )
        return item

    async def is_url_blocked(self, url: str) -> bool:
        """Check whether a URL is blocked, applying lazy block expiry."""
        return await self.failures.is_blocked(url)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def deliver(self, item: ScheduledDelivery) -> httpx.Response:
        """Deliver a claimed queue item.

        Args:
            item: The claimed delivery.

        Returns:
            The HTTP 200 response.

        Raises:
            EndpointBlockedError: The URL is blocked; nothing is retried.
            EndpointNotFoundError: The item's webhook is not registered.
            DeliveryFailedError: Transport error or non-200 response. Retry
                scheduling and failure accounting are already done.
        """
        url = item.url

        if await self.is_url_blocked(url):
            self._logger.info("delivery_skipped_blocked", item_id=item.item_id, url=url)
            raise EndpointBlockedError(url)

        webhook = self.registry.get(item.webhook_name)
        if webhook is None:
            self._logger.error("delivery_webhook_missing", item_id=item.item_id, webhook=item.webhook_name)
            raise EndpointNotFoundError(item.webhook_name)

        payload = self.pipeline.enrich(item.entity_type, item.entity_id, dict(item.payload))

        body: dict[str, Any] = {
            **payload,
            "action": item.action.value,
            "entity": item.entity_type,
            "id": item.entity_id,
        }
        body = self.hooks.apply(
            HookPoint.REQUEST_BODY,
            body,
            item.action.value,
            item.entity_type,
            item.entity_id,
            payload,
            webhook,
        )

        headers = dict(item.headers)
        if "Content-Type" not in headers:
            headers["Content-Type"] = "application/json"
        headers = self.hooks.apply(HookPoint.HEADERS, headers, item.entity_type, item.entity_id, webhook)

        self._logger.debug(
            "attempting_delivery",
            item_id=item.item_id,
            url=url,
            webhook=webhook.name,
            retry_count=item.retry_count,
        )

        response: httpx.Response | None = None
        error: str | None = None
        try:
            async with httpx.AsyncClient(timeout=webhook.get_timeout()) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={str(k): str(v) for k, v in headers.items()},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = str(e) or e.__class__.__name__

        if response is not None and response.status_code == 200:
            await self.failures.record_success(url)
            self._logger.info(
                "delivery_success",
                item_id=item.item_id,
                url=url,
                webhook=webhook.name,
                status_code=response.status_code,
            )
            await self.signals.send_success(
                DeliverySucceeded(url=url, body=body, response=response, webhook=webhook)
            )
            return response

        status_code = response.status_code if response is not None else None
        retry_scheduled = await self._handle_failure(item, webhook, response, error)
        raise DeliveryFailedError(
            url,
            status_code=status_code,
            error=error,
            retry_scheduled=retry_scheduled,
        )

    async def _handle_failure(
        self,
        item: ScheduledDelivery,
        webhook: Webhook,
        response: httpx.Response | None,
        error: str | None,
    ) -> bool:
        """Schedule a retry, then update the failure record and notify listeners.

        Returns:
            Whether a retry was scheduled.
        """
        retry = await self._schedule_retry(item, webhook)

        threshold = webhook.get_max_consecutive_failures()
        outcome = await self.failures.record_failure(item.url, threshold)

        self._logger.warning(
            "delivery_failed",
            item_id=item.item_id,
            url=item.url,
            webhook=webhook.name,
            status_code=response.status_code if response is not None else None,
            error=error,
            failure_count=outcome.count,
            threshold=outcome.threshold,
            retry_scheduled=retry is not None,
        )

        await self.signals.send_failure(
            DeliveryFailure(
                url=item.url,
                response=response,
                error=error,
                failure_count=outcome.count,
                threshold=outcome.threshold,
                webhook=webhook,
                final=retry is None,
            )
        )

        if outcome.newly_blocked:
            self._logger.warning(
                "endpoint_blocked",
                url=item.url,
                webhook=webhook.name,
                threshold=outcome.threshold,
            )
            await self.signals.send_blocked(
                EndpointBlocked(
                    url=item.url,
                    response=response,
                    error=error,
                    threshold=outcome.threshold,
                    webhook=webhook,
                )
            )

        return retry is not None

    async def _schedule_retry(self, item: ScheduledDelivery, webhook: Webhook) -> ScheduledDelivery | None:
        """Enqueue the next attempt if the webhook's retries are not exhausted.

        Returns:
            The retry item, or None when no retry was scheduled.
        """
        retry_count = item.retry_count
        if retry_count >= webhook.get_max_retries():
            return None

        attempt = retry_count + 1
        delay = webhook.calculate_retry_delay(attempt)
        retry = item.next_attempt(not_before=self._clock() + delay)
        await self.queue.enqueue(retry, delay_seconds=delay)

        self._logger.info(
            "retry_scheduled",
            item_id=retry.item_id,
            url=item.url,
            webhook=webhook.name,
            attempt=attempt,
            delay_seconds=delay,
        )
        return retry
