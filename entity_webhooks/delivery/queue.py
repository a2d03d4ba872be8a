"""Redis-backed durable queue for scheduled webhook deliveries.

Layout (all keys share the configured prefix):

- ``<prefix>:queue:scheduled`` - sorted set of item ids scored by not-before time
- ``<prefix>:queue:items`` - hash of item id to serialized delivery
- ``<prefix>:queue:pending:<hash>`` - item id of the pending delivery for a
  (url, action, entity, id) tuple; written with SET NX so only one pending
  item exists per tuple

Claiming removes the id from the sorted set with ZREM; only the worker
whose ZREM succeeds owns the item.
"""

import time
from collections.abc import Callable
from typing import Any

import structlog

from entity_webhooks.delivery.models import ScheduledDelivery

logger = structlog.get_logger(__name__)

# Pending markers expire this long after their item becomes due.
_PENDING_GRACE_SECONDS = 3600


class DeliveryQueue:
    """Durable delayed queue with pending-item deduplication.

    Example:
        from redis.asyncio import Redis

        redis = Redis.from_url("redis://localhost:6379", decode_responses=True)
        queue = DeliveryQueue(redis)

        queued = await queue.enqueue_unique(item, delay_seconds=5)
        ready = await queue.claim_ready()
    """

    def __init__(
        self,
        redis: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "entity_webhooks",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the queue.

        Args:
            redis: Async Redis client.
            prefix: Key prefix.
            clock: Source of epoch seconds.
        """
        self.redis = redis
        self.prefix = prefix
        self._clock = clock

    @property
    def scheduled_key(self) -> str:
        return f"{self.prefix}:queue:scheduled"

    @property
    def items_key(self) -> str:
        return f"{self.prefix}:queue:items"

    def pending_key(self, item: ScheduledDelivery) -> str:
        return f"{self.prefix}:queue:pending:{item.dedup_hash()}"

    async def enqueue_unique(self, item: ScheduledDelivery, *, delay_seconds: float) -> bool:
        """Enqueue an item unless one with the same tuple is already pending.

        Args:
            item: Delivery to enqueue.
            delay_seconds: Delay before the item becomes deliverable.

        Returns:
            True if enqueued, False if a pending item already exists.
        """
        delay = max(0.0, float(delay_seconds))
        item.not_before = self._clock() + delay

        acquired = await self.redis.set(
            self.pending_key(item),
            item.item_id,
            nx=True,
            ex=int(delay) + _PENDING_GRACE_SECONDS,
        )
        if not acquired:
            logger.debug(
                "queue_pending_exists",
                url=item.url,
                action=item.action.value,
                entity_type=item.entity_type,
                entity_id=item.entity_id,
            )
            return False

        await self._store(item)
        return True

    async def enqueue(self, item: ScheduledDelivery, *, delay_seconds: float) -> None:
        """Enqueue an item unconditionally.

        Used for retries. The pending marker is left alone, so a new emission
        for the same tuple still queues its own item.

        Args:
            item: Delivery to enqueue.
            delay_seconds: Delay before the item becomes deliverable.
        """
        delay = max(0.0, float(delay_seconds))
        item.not_before = self._clock() + delay
        await self._store(item)

    async def _store(self, item: ScheduledDelivery) -> None:
        await self.redis.hset(self.items_key, item.item_id, item.to_json())
        await self.redis.zadd(self.scheduled_key, {item.item_id: item.not_before})
        logger.info(
            "queue_item_scheduled",
            item_id=item.item_id,
            url=item.url,
            action=item.action.value,
            entity_type=item.entity_type,
            entity_id=item.entity_id,
            not_before=item.not_before,
            retry_count=item.retry_count,
        )

    async def has_pending(self, item: ScheduledDelivery) -> bool:
        """Check whether a pending item exists for the item's tuple."""
        result: int = await self.redis.exists(self.pending_key(item))
        return bool(result > 0)

    async def claim_ready(self, limit: int = 100) -> list[ScheduledDelivery]:
        """Claim items whose not-before time has passed.

        Claimed items are removed from the queue and their pending marker
        is released, so a new emission for the same tuple enqueues again.

        Args:
            limit: Maximum number of items to claim.

        Returns:
            Claimed deliveries in not-before order.
        """
        if limit <= 0:
            return []

        now = self._clock()
        item_ids = await self.redis.zrangebyscore(
            self.scheduled_key,
            "-inf",
            now,
            start=0,
            num=limit,
        )

        claimed: list[ScheduledDelivery] = []
        for raw_id in item_ids:
            item_id = raw_id.decode("utf-8") if isinstance(raw_id, bytes) else str(raw_id)
            removed: int = await self.redis.zrem(self.scheduled_key, item_id)
            if not removed:
                # Another worker won this item.
                continue

            raw = await self.redis.hget(self.items_key, item_id)
            await self.redis.hdel(self.items_key, item_id)
            if raw is None:
                logger.warning("queue_item_missing", item_id=item_id)
                continue

            try:
                item = ScheduledDelivery.from_json(raw)
            except ValueError as e:
                logger.error("queue_item_decode_failed", item_id=item_id, error=str(e))
                continue

            await self._release_pending(item)
            claimed.append(item)

        if claimed:
            logger.debug("queue_items_claimed", count=len(claimed))
        return claimed

    async def _release_pending(self, item: ScheduledDelivery) -> None:
        key = self.pending_key(item)
        current = await self.redis.get(key)
        if isinstance(current, bytes):
            current = current.decode("utf-8")
        if current == item.item_id:
            await self.redis.delete(key)

    async def next_due_in(self) -> float | None:
        """Seconds until the next scheduled item becomes due.

        Returns:
            0.0 if an item is already due, None if the queue is empty.
        """
        first = await self.redis.zrange(self.scheduled_key, 0, 0, withscores=True)
        if not first:
            return None
        score = float(first[0][1])
        return max(0.0, score - self._clock())

    async def size(self) -> int:
        """Number of items waiting in the queue."""
        result: int = await self.redis.zcard(self.scheduled_key)
        return int(result)
