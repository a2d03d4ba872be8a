"""Queue consumer that runs deliveries concurrently."""

import asyncio

import structlog

from entity_webhooks.delivery.dispatcher import Dispatcher
from entity_webhooks.delivery.models import ScheduledDelivery
from entity_webhooks.delivery.queue import DeliveryQueue
from entity_webhooks.errors import DeliveryFailedError, EndpointBlockedError, WebhookFrameworkError

logger = structlog.get_logger(__name__)


class DeliveryWorker:
    """Drains due items from the queue into the dispatcher.

    Each delivery runs in its own task, so one slow endpoint never holds
    up the others; a semaphore bounds how many run at once. Delivery
    errors are logged and dropped: the dispatcher has already scheduled
    its own retry where one applies.
    """

    def __init__(
        self,
        queue: DeliveryQueue,
        dispatcher: Dispatcher,
        *,
        concurrency: int = 10,
        poll_interval: float = 1.0,
        batch_size: int = 100,
    ) -> None:
        """Initialize the worker.

        Args:
            queue: Queue to claim items from.
            dispatcher: Dispatcher that delivers claimed items.
            concurrency: Maximum concurrent deliveries.
            poll_interval: Maximum seconds to sleep between polls.
            batch_size: Maximum items claimed per poll.
        """
        self.queue = queue
        self.dispatcher = dispatcher
        self.concurrency = max(1, concurrency)
        self.poll_interval = poll_interval
        self.batch_size = max(1, batch_size)
        self._semaphore = asyncio.Semaphore(self.concurrency)
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._stopping = asyncio.Event()
        self._logger = logger.bind(component="delivery_worker")

    @property
    def in_flight(self) -> int:
        """Number of deliveries currently running."""
        return len(self._background_tasks)

    async def run_once(self) -> int:
        """Claim due items and start a delivery task for each.

        Returns:
            Number of items claimed.
        """
        # Claim no more than there are free slots for
        capacity = max(0, min(self.batch_size, self.concurrency * 2 - self.in_flight))
        if capacity == 0:
            return 0

        items = await self.queue.claim_ready(limit=capacity)
        for item in items:
            task = asyncio.create_task(self._deliver(item))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return len(items)

    async def run(self) -> None:
        """Poll the queue until stop() is called."""
        self._stopping.clear()
        self._logger.info(
            "worker_started",
            concurrency=self.concurrency,
            poll_interval=self.poll_interval,
        )

        while not self._stopping.is_set():
            try:
                claimed = await self.run_once()
            except Exception as e:
                self._logger.error("worker_poll_failed", error=str(e))
                claimed = 0

            if claimed:
                await asyncio.sleep(0)
                continue

            await self._wait(await self._idle_delay())

        self._logger.info("worker_stopped", in_flight=self.in_flight)

    def stop(self) -> None:
        """Ask run() to return after the current poll."""
        self._stopping.set()

    async def shutdown(self) -> None:
        """Stop polling and wait for in-flight deliveries."""
        self.stop()
        if self._background_tasks:
            self._logger.info("waiting_for_deliveries", count=len(self._background_tasks))
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def _deliver(self, item: ScheduledDelivery) -> None:
        async with self._semaphore:
            try:
                await self.dispatcher.deliver(item)
            except EndpointBlockedError as e:
                self._logger.info("delivery_dropped_blocked", item_id=item.item_id, url=e.url)
            except DeliveryFailedError as e:
                self._logger.info(
                    "delivery_attempt_failed",
                    item_id=item.item_id,
                    url=e.url,
                    status_code=e.status_code,
                    error=e.error,
                    retry_scheduled=e.retry_scheduled,
                )
            except WebhookFrameworkError as e:
                self._logger.error("delivery_error", item_id=item.item_id, **e.to_dict())
            except Exception as e:
                self._logger.exception("delivery_unexpected_error", item_id=item.item_id, error=str(e))

    async def _idle_delay(self) -> float:
        if self.in_flight >= self.concurrency * 2:
            return min(self.poll_interval, 0.1)
        due_in = await self.queue.next_due_in()
        if due_in is None:
            return self.poll_interval
        return min(self.poll_interval, due_in)

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            pass
