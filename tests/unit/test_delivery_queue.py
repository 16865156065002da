"""Unit tests for services.delivery_queue and services.queue_store."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from schemas.models.notification import EmailMessage, SendResult
from services.delivery_queue import DeliveryQueue
from services.queue_store import InMemoryQueueStore


def _message(to: str = "user@example.com") -> EmailMessage:
    return EmailMessage(to=to, subject="Verify", html="<p>123456</p>")


def _queue(clock, send=None, **kwargs) -> tuple[DeliveryQueue, AsyncMock]:
    send = send or AsyncMock(return_value=SendResult.ok("msg-1"))
    return DeliveryQueue(send=send, clock=clock, **kwargs), send


# ── Retry schedule ────────────────────────────────────────────────────────────


class TestRetryDelay:
    def test_exponential_from_base(self, clock):
        queue, _ = _queue(clock)
        assert queue.retry_delay(1) == timedelta(seconds=5)
        assert queue.retry_delay(2) == timedelta(seconds=10)
        assert queue.retry_delay(3) == timedelta(seconds=20)

    def test_custom_base(self, clock):
        queue, _ = _queue(clock, base_delay_seconds=1.0)
        assert queue.retry_delay(2) == timedelta(seconds=2)

    def test_max_attempts_must_be_positive(self, clock):
        with pytest.raises(ValueError):
            _queue(clock, max_attempts=0)


# ── Enqueue ───────────────────────────────────────────────────────────────────


class TestEnqueue:
    async def test_returns_id_and_counts(self, clock):
        queue, send = _queue(clock)
        queue_id = await queue.enqueue(_message())
        assert queue_id.startswith("ntf_")
        assert await queue.status() == {"queue_length": 1, "processing": False}
        send.assert_not_awaited()

    async def test_item_is_due_immediately(self, clock):
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=AsyncMock(), store=store, clock=clock)
        await queue.enqueue(_message())
        [item] = await store.snapshot()
        assert item.attempts == 0
        assert item.next_retry_at == clock.now()
        assert item.is_due(clock.now())

    async def test_same_idempotency_key_enqueued_once(self, clock):
        queue, _ = _queue(clock)
        first = await queue.enqueue(_message(), idempotency_key="welcome:u1")
        second = await queue.enqueue(_message(), idempotency_key="welcome:u1")
        assert first == second
        assert (await queue.status())["queue_length"] == 1

    async def test_distinct_keys_both_stored(self, clock):
        queue, _ = _queue(clock)
        await queue.enqueue(_message(), idempotency_key="a")
        await queue.enqueue(_message(), idempotency_key="b")
        assert (await queue.status())["queue_length"] == 2


# ── Processing ────────────────────────────────────────────────────────────────


class TestProcessPending:
    async def test_success_removes_item(self, clock):
        queue, send = _queue(clock)
        await queue.enqueue(_message())
        assert await queue.process_pending() == 1
        send.assert_awaited_once()
        assert (await queue.status())["queue_length"] == 0

    async def test_failure_then_success_after_backoff(self, clock):
        send = AsyncMock(
            side_effect=[SendResult.failed("HTTP 500"), SendResult.ok("msg-2")]
        )
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=send, store=store, clock=clock)
        await queue.enqueue(_message())

        await queue.process_pending()
        [item] = await store.snapshot()
        assert item.attempts == 1
        assert item.last_error == "HTTP 500"
        assert item.next_retry_at == clock.now() + timedelta(seconds=5)

        # Not due yet: nothing is attempted
        clock.advance(seconds=4)
        assert await queue.process_pending() == 0

        clock.advance(seconds=1)
        assert await queue.process_pending() == 1
        assert send.await_count == 2
        assert await store.count() == 0

    async def test_dropped_after_three_failures(self, clock, mocker):
        send = AsyncMock(return_value=SendResult.failed("HTTP 503"))
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=send, store=store, clock=clock)
        log_error = mocker.patch("services.delivery_queue.log.error")
        await queue.enqueue(_message())

        await queue.process_pending()  # attempt 1, retry in 5s
        [item] = await store.snapshot()
        assert item.next_retry_at == clock.now() + timedelta(seconds=5)

        clock.advance(seconds=5)
        await queue.process_pending()  # attempt 2, retry in 10s
        [item] = await store.snapshot()
        assert item.attempts == 2
        assert item.next_retry_at == clock.now() + timedelta(seconds=10)

        clock.advance(seconds=10)
        await queue.process_pending()  # attempt 3, exhausted

        assert send.await_count == 3
        assert await store.count() == 0
        log_error.assert_called_once()
        assert log_error.call_args[0][0] == "delivery_exhausted"
        assert log_error.call_args[1]["attempts"] == 3

    async def test_send_exception_counts_as_failure(self, clock):
        send = AsyncMock(side_effect=RuntimeError("connection reset"))
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=send, store=store, clock=clock)
        await queue.enqueue(_message())

        await queue.process_pending()
        [item] = await store.snapshot()
        assert item.attempts == 1
        assert "connection reset" in item.last_error

    async def test_later_item_not_blocked_by_backed_off_item(self, clock):
        send = AsyncMock(
            side_effect=[SendResult.failed("bounce"), SendResult.ok("m2")]
        )
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=send, store=store, clock=clock)
        await queue.enqueue(_message("a@example.com"))
        await queue.enqueue(_message("b@example.com"))

        assert await queue.process_pending() == 2
        [remaining] = await store.snapshot()
        assert remaining.payload.to == "a@example.com"

    async def test_reentrant_pass_is_skipped(self, clock):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_send(message):
            started.set()
            await release.wait()
            return SendResult.ok()

        queue = DeliveryQueue(send=slow_send, clock=clock)
        await queue.enqueue(_message())

        first = asyncio.create_task(queue.process_pending())
        await started.wait()
        assert (await queue.status())["processing"] is True
        assert await queue.process_pending() == 0

        release.set()
        assert await first == 1
        assert (await queue.status())["processing"] is False


# ── Lifecycle ─────────────────────────────────────────────────────────────────


class TestLifecycle:
    async def test_clear_discards_everything(self, clock):
        queue, send = _queue(clock)
        await queue.enqueue(_message())
        await queue.enqueue(_message())
        await queue.clear()
        assert (await queue.status())["queue_length"] == 0
        assert await queue.process_pending() == 0
        send.assert_not_awaited()

    async def test_worker_drains_queue(self, clock):
        queue, send = _queue(clock, poll_interval_seconds=0.01)
        await queue.enqueue(_message())
        queue.start()
        for _ in range(100):
            if send.await_count:
                break
            await asyncio.sleep(0.01)
        await queue.stop()
        send.assert_awaited_once()
        assert (await queue.status())["queue_length"] == 0

    async def test_stop_without_start_is_noop(self, clock):
        queue, _ = _queue(clock)
        await queue.stop()


# ── InMemoryQueueStore ────────────────────────────────────────────────────────


class TestInMemoryQueueStore:
    async def test_requeue_moves_to_tail(self, clock):
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=AsyncMock(), store=store, clock=clock)
        first = await queue.enqueue(_message("a@example.com"))
        await queue.enqueue(_message("b@example.com"))

        [item, _] = await store.snapshot()
        await store.requeue(item)
        ids = [i.id for i in await store.snapshot()]
        assert ids[-1] == first

    async def test_remove_frees_idempotency_key(self, clock):
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=AsyncMock(), store=store, clock=clock)
        first = await queue.enqueue(_message(), idempotency_key="k")
        await store.remove(first)
        second = await queue.enqueue(_message(), idempotency_key="k")
        assert second != first

    async def test_snapshot_limit(self, clock):
        store = InMemoryQueueStore()
        queue = DeliveryQueue(send=AsyncMock(), store=store, clock=clock)
        for _ in range(5):
            await queue.enqueue(_message())
        assert len(await store.snapshot(limit=3)) == 3
