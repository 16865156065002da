"""
SMS verification backends.

Both backends implement the same issue/dispatch/check contract, so the
verification service does not care who owns the code. One backend is chosen
per deployment (``SMS_BACKEND``):

- LocalCodeBackend: we generate the code, store it on the user record, send
  it as a plain SMS and compare it ourselves.
- HostedVerificationBackend: the hosted service generates, stores, expires
  and checks the code; the record only remembers that a challenge is open.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Protocol

from errors import ProviderError, ValidationError
from infrastructure.sms.protocol import HostedVerificationProvider, SMSProvider
from schemas.models.notification import SendResult
from schemas.models.user import VerificationRecord
from services.verification_state import (
    Channel,
    clear_channel,
    issue_code,
    issue_delegated_sms,
    verify_code,
)
from shared.generators import generate_verification_code
from shared.logging import get_logger
from shared.phone import mask_phone_number

log = get_logger(__name__)


class SMSVerificationBackend(Protocol):
    name: str

    def prepare(self, record: VerificationRecord, now: datetime, ttl: timedelta) -> None:
        """Record a new SMS issuance on *record* (before it is persisted)."""
        ...

    async def dispatch(
        self,
        record: VerificationRecord,
        to: str,
        user_name: Optional[str],
        ttl_minutes: int = 10,
    ) -> SendResult:
        """Deliver the challenge prepared on *record* to the E.164 number *to*."""
        ...

    async def check(
        self, record: VerificationRecord, to: Optional[str], code: str, now: datetime
    ) -> bool:
        """Verify *code*, clear the SMS channel and return the combined flag."""
        ...


class LocalCodeBackend:
    name = "local"

    def __init__(self, provider: SMSProvider, app_name: str = "dualverify") -> None:
        self._provider = provider
        self._app_name = app_name

    def prepare(self, record: VerificationRecord, now: datetime, ttl: timedelta) -> None:
        issue_code(record, Channel.SMS, generate_verification_code(), now, ttl)

    def _body(self, code: str, user_name: Optional[str], ttl_minutes: int) -> str:
        return (
            f"{self._app_name} verification code: {code}\n\n"
            f"Hi{f' {user_name}' if user_name else ''}, use this code to verify your "
            f"account. This code expires in {ttl_minutes} minutes.\n\n"
            f"If you didn't request this, please ignore this message."
        )

    async def dispatch(
        self, record: VerificationRecord, to: str, user_name: Optional[str], ttl_minutes: int = 10
    ) -> SendResult:
        if not record.sms_code:
            return SendResult.failed("No SMS code has been issued")
        try:
            return await self._provider.send_message(
                to, self._body(record.sms_code, user_name, ttl_minutes)
            )
        except Exception as e:
            log.error(
                "sms_dispatch_error",
                to=mask_phone_number(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult.failed(f"{type(e).__name__}: {e}")

    async def check(
        self, record: VerificationRecord, to: Optional[str], code: str, now: datetime
    ) -> bool:
        return verify_code(record, Channel.SMS, code, now)


class HostedVerificationBackend:
    name = "hosted"

    def __init__(self, provider: HostedVerificationProvider) -> None:
        self._provider = provider

    def prepare(self, record: VerificationRecord, now: datetime, ttl: timedelta) -> None:
        issue_delegated_sms(record)

    async def dispatch(
        self, record: VerificationRecord, to: str, user_name: Optional[str], ttl_minutes: int = 10
    ) -> SendResult:
        try:
            status = await self._provider.start_verification(to, channel="sms")
        except ProviderError as e:
            return SendResult.failed(e.message)
        if status in ("canceled", "failed"):
            return SendResult.failed(f"Hosted verification returned status '{status}'")
        return SendResult.ok()

    async def check(
        self, record: VerificationRecord, to: Optional[str], code: str, now: datetime
    ) -> bool:
        if not record.sms_pending:
            raise ValidationError("Invalid verification code", field="code")
        if not to:
            raise ValidationError("No phone number on file", field="phoneNumber")

        status = await self._provider.check_verification(to, code)
        log.info("hosted_verification_checked", to=mask_phone_number(to), status=status)
        if status != "approved":
            raise ValidationError("Invalid or expired verification code", field="code")
        return clear_channel(record, Channel.SMS, now)

    async def fetch_status(self, to: str) -> str:
        return await self._provider.fetch_verification(to)
