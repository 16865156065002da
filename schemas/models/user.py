"""
User document model and its embedded verification record.

Maps to the `users` MongoDB collection. The user lifecycle (registration,
login, profile) is owned by another service; this service only reads users
and writes the embedded ``verification`` sub-document.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc


class VerificationRecord(BaseModel):
    """
    Dual-channel verification state embedded in a user document.

    A channel has a code "issued" while its code field is set (or, for SMS
    under the hosted backend, while ``sms_delegated`` is true). ``sms_destination``
    is the E.164 number the current SMS challenge was sent to. ``is_verified``
    is a cached flag recomputed whenever a channel is cleared.
    """

    email_code: Optional[str] = None
    email_expires_at: Optional[datetime] = None
    email_verified_at: Optional[datetime] = None

    sms_code: Optional[str] = None
    sms_expires_at: Optional[datetime] = None
    sms_verified_at: Optional[datetime] = None
    sms_delegated: bool = False
    sms_destination: Optional[str] = None

    is_verified: bool = False

    @field_validator(
        "email_expires_at",
        "email_verified_at",
        "sms_expires_at",
        "sms_verified_at",
    )
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def email_pending(self) -> bool:
        return self.email_code is not None

    @property
    def sms_pending(self) -> bool:
        return self.sms_code is not None or self.sms_delegated


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection (fields this service uses)."""

    email: Optional[str] = None
    telephone: Optional[str] = None
    first_name: Optional[str] = None
    username: Optional[str] = None
    verification: VerificationRecord = VerificationRecord()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.first_name or self.username or "there"
