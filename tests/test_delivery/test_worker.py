"""Tests for the delivery worker."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from entity_webhooks.delivery.models import ScheduledDelivery
from entity_webhooks.delivery.queue import DeliveryQueue
from entity_webhooks.delivery.worker import DeliveryWorker
from entity_webhooks.errors import DeliveryFailedError, EndpointBlockedError, EndpointNotFoundError

URL = "https://example.com/hook"


@pytest.fixture
def queue(redis, clock):
    """Create a queue over the in-memory Redis."""
    return DeliveryQueue(redis, prefix="test", clock=clock)


@pytest.fixture
def dispatcher():
    """Create a mock dispatcher."""
    mock = MagicMock()
    mock.deliver = AsyncMock(return_value=None)
    return mock


async def fill(queue, count: int, delay: float = 0) -> list[ScheduledDelivery]:
    items = []
    for entity_id in range(1, count + 1):
        item = ScheduledDelivery(url=URL, action="update", entity_type="post", entity_id=entity_id)
        await queue.enqueue_unique(item, delay_seconds=delay)
        items.append(item)
    return items


class TestRunOnce:
    """Tests for a single poll."""

    @pytest.mark.asyncio
    async def test_delivers_due_items(self, queue, dispatcher):
        """Test every due item is handed to the dispatcher."""
        items = await fill(queue, 3)
        worker = DeliveryWorker(queue, dispatcher)

        assert await worker.run_once() == 3
        await worker.shutdown()

        delivered = {call.args[0].item_id for call in dispatcher.deliver.call_args_list}
        assert delivered == {item.item_id for item in items}
        assert worker.in_flight == 0

    @pytest.mark.asyncio
    async def test_skips_items_not_yet_due(self, queue, dispatcher, clock):
        """Test debounced items wait for their time."""
        await fill(queue, 1, delay=5)
        worker = DeliveryWorker(queue, dispatcher)

        assert await worker.run_once() == 0
        clock.advance(5)
        assert await worker.run_once() == 1
        await worker.shutdown()

    @pytest.mark.asyncio
    async def test_claims_at_most_batch_size(self, queue, dispatcher):
        """Test a poll claims no more than the batch size."""
        await fill(queue, 5)
        worker = DeliveryWorker(queue, dispatcher, batch_size=2)

        assert await worker.run_once() == 2
        await worker.shutdown()
        assert await queue.size() == 3

    @pytest.mark.asyncio
    async def test_claims_limited_by_free_slots(self, queue, dispatcher):
        """Test in-flight deliveries reduce what a poll claims."""
        release = asyncio.Event()

        async def slow_deliver(item):
            await release.wait()

        dispatcher.deliver = AsyncMock(side_effect=slow_deliver)
        await fill(queue, 5)
        worker = DeliveryWorker(queue, dispatcher, concurrency=1)

        assert await worker.run_once() == 2
        assert await worker.run_once() == 0
        assert worker.in_flight == 2

        release.set()
        await worker.shutdown()
        assert worker.in_flight == 0

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, queue, dispatcher):
        """Test no more than the concurrency limit deliver at once."""
        running = 0
        peak = 0

        async def tracked_deliver(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        dispatcher.deliver = AsyncMock(side_effect=tracked_deliver)
        await fill(queue, 6)
        worker = DeliveryWorker(queue, dispatcher, concurrency=3)

        await worker.run_once()
        await worker.shutdown()

        assert peak == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            EndpointBlockedError(URL),
            DeliveryFailedError(URL, status_code=500, retry_scheduled=True),
            EndpointNotFoundError("gone"),
            RuntimeError("boom"),
        ],
    )
    async def test_delivery_errors_do_not_escape(self, queue, dispatcher, error):
        """Test delivery errors are logged and the worker keeps going."""
        dispatcher.deliver = AsyncMock(side_effect=error)
        await fill(queue, 2)
        worker = DeliveryWorker(queue, dispatcher)

        assert await worker.run_once() == 2
        await worker.shutdown()

        assert dispatcher.deliver.await_count == 2


# ============================================================================
# Run Loop Tests
# ============================================================================


class TestRunLoop:
    """Tests for the polling loop."""

    @pytest.mark.asyncio
    async def test_run_until_stopped(self, queue, dispatcher):
        """Test the loop drains the queue and stops on request."""
        await fill(queue, 3)
        worker = DeliveryWorker(queue, dispatcher, poll_interval=0.01)

        task = asyncio.create_task(worker.run())
        for _ in range(100):
            if dispatcher.deliver.await_count == 3:
                break
            await asyncio.sleep(0.01)
        await worker.shutdown()
        await asyncio.wait_for(task, timeout=1)

        assert dispatcher.deliver.await_count == 3
        assert await queue.size() == 0

    @pytest.mark.asyncio
    async def test_poll_errors_keep_loop_alive(self, queue, dispatcher):
        """Test a failing poll is logged and retried."""
        worker = DeliveryWorker(queue, dispatcher, poll_interval=0.01)
        calls = 0

        async def flaky_claim(limit=100):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ConnectionError("redis down")
            return []

        queue.claim_ready = flaky_claim

        task = asyncio.create_task(worker.run())
        for _ in range(100):
            if calls >= 2:
                break
            await asyncio.sleep(0.01)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert calls >= 2

    @pytest.mark.asyncio
    async def test_idle_delay_waits_for_next_item(self, queue, dispatcher):
        """Test the idle sleep is shortened to the next due item."""
        await fill(queue, 1, delay=0.5)
        worker = DeliveryWorker(queue, dispatcher, poll_interval=2.0)

        assert await worker._idle_delay() == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_idle_delay_empty_queue(self, queue, dispatcher):
        """Test an empty queue sleeps the full poll interval."""
        worker = DeliveryWorker(queue, dispatcher, poll_interval=2.0)

        assert await worker._idle_delay() == 2.0
