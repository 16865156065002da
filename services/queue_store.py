"""
Delivery queue storage.

QueueStore is the interface DeliveryQueue works against. Two implementations:

- InMemoryQueueStore (here): process-local ordered list, lost on restart.
- repositories.outbox_repository.MongoOutboxRepository: durable outbox.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Optional, Protocol

from schemas.models.notification import QueuedNotification


class QueueStore(Protocol):
    async def add(self, item: QueuedNotification) -> str: ...

    async def snapshot(self, limit: int = 100) -> list[QueuedNotification]: ...

    async def requeue(self, item: QueuedNotification) -> None: ...

    async def remove(self, item_id: str) -> None: ...

    async def count(self) -> int: ...

    async def clear(self) -> None: ...


class InMemoryQueueStore:
    """Ordered in-memory queue. Requeued items move to the tail.

    Safe only with a single worker in a single process.
    """

    def __init__(self) -> None:
        self._items: OrderedDict[str, QueuedNotification] = OrderedDict()
        self._ids_by_key: dict[str, str] = {}

    async def add(self, item: QueuedNotification) -> str:
        existing_id = self._ids_by_key.get(item.idempotency_key)
        if existing_id is not None and existing_id in self._items:
            return existing_id
        self._items[item.id] = item
        self._ids_by_key[item.idempotency_key] = item.id
        return item.id

    async def snapshot(self, limit: int = 100) -> list[QueuedNotification]:
        return list(self._items.values())[:limit]

    async def requeue(self, item: QueuedNotification) -> None:
        self._items[item.id] = item
        self._items.move_to_end(item.id)

    async def remove(self, item_id: str) -> None:
        item: Optional[QueuedNotification] = self._items.pop(item_id, None)
        if item is not None:
            self._ids_by_key.pop(item.idempotency_key, None)

    async def count(self) -> int:
        return len(self._items)

    async def clear(self) -> None:
        self._items.clear()
        self._ids_by_key.clear()
