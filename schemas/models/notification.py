"""
Outbound notification models.

EmailMessage        - a fully rendered transactional email
SendResult          - what a provider returns for one send attempt
QueuedNotification  - a delivery-queue entry (in memory or in the outbox)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.datetime_utils import ensure_utc


class EmailMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str
    subject: str
    html: str
    text: Optional[str] = None
    to_name: Optional[str] = None
    # Overrides the configured sender address when set
    from_address: Optional[str] = Field(default=None, alias="from")


class SendResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    # Set instead of message_id when the send was only accepted by the queue
    queue_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message_id: Optional[str] = None) -> "SendResult":
        return cls(success=True, message_id=message_id)

    @classmethod
    def queued(cls, queue_id: str) -> "SendResult":
        return cls(success=True, queue_id=queue_id)

    @classmethod
    def failed(cls, error: str) -> "SendResult":
        return cls(success=False, error=error)


class QueuedNotification(BaseModel):
    """
    One entry of the delivery queue.

    Stored under ``_id`` in the durable outbox; ``idempotency_key`` is unique
    there so re-enqueueing the same notification is a no-op.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    idempotency_key: str
    payload: EmailMessage
    attempts: int = 0
    max_attempts: int = 3
    next_retry_at: datetime
    created_at: datetime
    last_error: Optional[str] = None

    @field_validator("next_retry_at", "created_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def is_due(self, now: datetime) -> bool:
        return now >= self.next_retry_at

    def to_mongo(self) -> dict:
        return self.model_dump(by_alias=True)
