"""
Dual-channel verification state machine.

Each channel (email, SMS) moves through

    UNVERIFIED --issue--> CODE_ISSUED --verify--> VERIFIED
                              ^                       |
                              +--------issue----------+

Issuance never looks at the current state, so a re-issue reopens a verified
channel. Expiry is checked lazily: an expired code stays stored and is only
rejected when submitted.

The functions here mutate a VerificationRecord in place and never touch the
database; persisting the record is the caller's job.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from errors import ExpiredError, ValidationError
from schemas.models.user import VerificationRecord


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class ChannelState(str, Enum):
    UNVERIFIED = "unverified"
    CODE_ISSUED = "code_issued"
    VERIFIED = "verified"


def _pending(record: VerificationRecord, channel: Channel) -> bool:
    if channel is Channel.EMAIL:
        return record.email_pending
    return record.sms_pending


def channel_state(record: VerificationRecord, channel: Channel) -> ChannelState:
    if _pending(record, channel):
        return ChannelState.CODE_ISSUED
    verified_at = (
        record.email_verified_at if channel is Channel.EMAIL else record.sms_verified_at
    )
    if verified_at is not None:
        return ChannelState.VERIFIED
    return ChannelState.UNVERIFIED


def recompute_verified(record: VerificationRecord) -> bool:
    """Combined flag: true iff neither channel has an outstanding code."""
    record.is_verified = not record.email_pending and not record.sms_pending
    return record.is_verified


def issue_code(
    record: VerificationRecord,
    channel: Channel,
    code: str,
    now: datetime,
    ttl: timedelta,
) -> None:
    """Store a fresh code for *channel*, overwriting whatever was there."""
    expires_at = now + ttl
    if channel is Channel.EMAIL:
        record.email_code = code
        record.email_expires_at = expires_at
        record.email_verified_at = None
    else:
        record.sms_code = code
        record.sms_expires_at = expires_at
        record.sms_verified_at = None
        record.sms_delegated = False


def issue_delegated_sms(record: VerificationRecord) -> None:
    """Mark an SMS challenge owned by a hosted verification service.

    The provider keeps the code and its expiry, so none are stored locally.
    """
    record.sms_code = None
    record.sms_expires_at = None
    record.sms_verified_at = None
    record.sms_delegated = True


def check_code(
    record: VerificationRecord, channel: Channel, code: str, now: datetime
) -> None:
    """Validate *code* against the stored code without mutating the record.

    Raises:
        ValidationError: no code is issued for the channel, or it does not match.
        ExpiredError: the code matches but its expiry has passed.
    """
    if channel is Channel.EMAIL:
        stored, expires_at = record.email_code, record.email_expires_at
    else:
        stored, expires_at = record.sms_code, record.sms_expires_at

    if not stored or not code or stored != code:
        raise ValidationError("Invalid verification code", field="code")

    if expires_at is None or now > expires_at:
        raise ExpiredError(
            "Verification code has expired. Please request a new one.", field="code"
        )


def clear_channel(record: VerificationRecord, channel: Channel, now: datetime) -> bool:
    """Mark *channel* verified and return the recomputed combined flag."""
    if channel is Channel.EMAIL:
        record.email_code = None
        record.email_expires_at = None
        record.email_verified_at = now
    else:
        record.sms_code = None
        record.sms_expires_at = None
        record.sms_delegated = False
        record.sms_destination = None
        record.sms_verified_at = now
    return recompute_verified(record)


def verify_code(
    record: VerificationRecord, channel: Channel, code: str, now: datetime
) -> bool:
    """check_code() then clear_channel(). Returns the combined flag."""
    check_code(record, channel, code, now)
    return clear_channel(record, channel, now)
