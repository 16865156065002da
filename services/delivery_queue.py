"""
Delivery queue - retrying dispatcher for outbound notifications.

enqueue() returns as soon as the notification is stored; a single
cooperative worker task (run / start / stop) makes repeated passes over the
queue and sleeps ``poll_interval_seconds`` between passes.

Retry policy: after the k-th failed attempt (k < max_attempts) the next
attempt is scheduled ``base_delay * 2**(k-1)`` later, i.e. 5s then 10s with
the defaults. After ``max_attempts`` failures the notification is dropped and
a terminal failure is logged. Callers only ever learn "accepted for delivery".
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from errors import QueueExhausted
from schemas.models.notification import EmailMessage, QueuedNotification, SendResult
from services.queue_store import InMemoryQueueStore, QueueStore
from shared.datetime_utils import Clock, SystemClock
from shared.generators import generate_queue_id
from shared.logging import get_logger

log = get_logger(__name__)

SendFn = Callable[[EmailMessage], Awaitable[SendResult]]

DEFAULT_BASE_DELAY_SECONDS = 5.0
DEFAULT_MAX_ATTEMPTS = 3


class DeliveryQueue:
    def __init__(
        self,
        send: SendFn,
        store: Optional[QueueStore] = None,
        clock: Optional[Clock] = None,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval_seconds: float = 1.0,
        batch_size: int = 100,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._send = send
        self._store: QueueStore = store if store is not None else InMemoryQueueStore()
        self._clock = clock or SystemClock()
        self._base_delay = base_delay_seconds
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval_seconds
        self._batch_size = batch_size

        self._processing = False
        self._running = False
        self._task: Optional[asyncio.Task] = None

    def retry_delay(self, attempts: int) -> timedelta:
        """Delay before the next attempt after *attempts* failures."""
        return timedelta(seconds=self._base_delay * (2 ** (attempts - 1)))

    async def enqueue(
        self, message: EmailMessage, idempotency_key: Optional[str] = None
    ) -> str:
        now = self._clock.now()
        queue_id = generate_queue_id()
        item = QueuedNotification(
            _id=queue_id,
            idempotency_key=idempotency_key or queue_id,
            payload=message,
            attempts=0,
            max_attempts=self._max_attempts,
            next_retry_at=now,
            created_at=now,
        )
        stored_id = await self._store.add(item)
        log.info("notification_enqueued", queue_id=stored_id, to_email=message.to)
        return stored_id

    async def process_pending(self) -> int:
        """Make one pass over the queue. Returns the number of send attempts made."""
        if self._processing:
            return 0
        self._processing = True
        attempts_made = 0
        try:
            for item in await self._store.snapshot(self._batch_size):
                if not item.is_due(self._clock.now()):
                    continue
                await self._attempt(item)
                attempts_made += 1
        finally:
            self._processing = False
        return attempts_made

    async def _attempt(self, item: QueuedNotification) -> None:
        log.debug(
            "delivery_attempt",
            queue_id=item.id,
            attempt=item.attempts + 1,
            max_attempts=item.max_attempts,
        )
        try:
            result = await self._send(item.payload)
            error = None if result.success else (result.error or "Unknown error")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        if error is None:
            await self._store.remove(item.id)
            log.info("delivery_succeeded", queue_id=item.id, attempts=item.attempts + 1)
            return

        item.attempts += 1
        item.last_error = error

        if item.attempts < item.max_attempts:
            delay = self.retry_delay(item.attempts)
            item.next_retry_at = self._clock.now() + delay
            await self._store.requeue(item)
            log.warning(
                "delivery_attempt_failed",
                queue_id=item.id,
                attempts=item.attempts,
                retry_in_seconds=delay.total_seconds(),
                error=error,
            )
            return

        await self._store.remove(item.id)
        log.error(
            "delivery_exhausted",
            queue_id=item.id,
            to_email=item.payload.to,
            attempts=item.attempts,
            exc_info=QueueExhausted(item.id, item.attempts, error),
        )

    async def run(self) -> None:
        """Worker loop. Runs until stop() is called or the task is cancelled."""
        self._running = True
        log.info("delivery_worker_started", poll_interval=self._poll_interval)
        try:
            while self._running:
                try:
                    await self.process_pending()
                except Exception as e:
                    log.error(
                        "delivery_pass_failed",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                await asyncio.sleep(self._poll_interval)
        finally:
            self._running = False
            log.info("delivery_worker_stopped")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="delivery-queue-worker")
        return self._task

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def status(self) -> dict:
        return {"queue_length": await self._store.count(), "processing": self._processing}

    async def clear(self) -> None:
        await self._store.clear()
        log.info("delivery_queue_cleared")
