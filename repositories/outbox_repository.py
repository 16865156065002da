"""
Durable notification outbox - MongoDB-backed delivery queue store.

Implements the same store interface as services.queue_store.InMemoryQueueStore
so DeliveryQueue can run on either. A document is deleted only after its
notification was delivered or exhausted its attempts, so pending sends
survive a process restart (at-least-once delivery). ``idempotency_key`` is
unique: enqueueing the same notification twice keeps a single entry.
"""

from __future__ import annotations

from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from schemas.models.notification import QueuedNotification
from shared.logging import get_logger

log = get_logger(__name__)

OUTBOX_COLLECTION = "notification_outbox"


class MongoOutboxRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db[OUTBOX_COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("idempotency_key", ASCENDING)], unique=True, name="idempotency_key_unique"
        )
        await self._col.create_index([("next_retry_at", ASCENDING)], name="next_retry_at")

    async def add(self, item: QueuedNotification) -> str:
        try:
            await self._col.insert_one(item.to_mongo())
            return item.id
        except DuplicateKeyError:
            existing = await self._col.find_one(
                {"idempotency_key": item.idempotency_key}, {"_id": 1}
            )
            if existing is None:
                # Deleted between the insert and the lookup; retry once.
                await self._col.insert_one(item.to_mongo())
                return item.id
            log.info(
                "outbox_duplicate_ignored",
                idempotency_key=item.idempotency_key,
                queue_id=existing["_id"],
            )
            return existing["_id"]

    async def snapshot(self, limit: int = 100) -> list[QueuedNotification]:
        cursor = self._col.find({}).sort(
            [("next_retry_at", ASCENDING), ("created_at", ASCENDING)]
        ).limit(limit)
        return [QueuedNotification.model_validate(doc) async for doc in cursor]

    async def requeue(self, item: QueuedNotification) -> None:
        await self._col.replace_one({"_id": item.id}, item.to_mongo())

    async def remove(self, item_id: str) -> None:
        await self._col.delete_one({"_id": item_id})

    async def count(self) -> int:
        return await self._col.count_documents({})

    async def clear(self) -> None:
        await self._col.delete_many({})
