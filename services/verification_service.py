"""
Verification service - send, verify, resend and status for dual-channel
(email + SMS) account verification.

Codes are issued and persisted on the user record before anything is sent,
then both channels are dispatched together and joined. Send failures are
reported per channel (partial success); verification failures raise.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

from config import VerificationSettings
from errors import NotFoundError
from repositories.user_repository import UserRepository
from schemas.dto.responses.verification import (
    ChannelSendResult,
    SendVerificationResponse,
    VerificationStatusResponse,
    VerifyCodeResponse,
)
from schemas.models.notification import SendResult
from schemas.models.user import UserDoc, VerificationRecord
from services.email_sender import DeliveryMode, EmailSender
from services.sms_backends import SMSVerificationBackend
from services.verification_state import (
    Channel,
    ChannelState,
    channel_state,
    issue_code,
    verify_code,
)
from shared.datetime_utils import Clock, SystemClock
from shared.generators import generate_verification_code
from shared.logging import get_logger
from shared.phone import normalize_phone_number

log = get_logger(__name__)

ALL_CHANNELS = (Channel.EMAIL, Channel.SMS)


def _to_channel_result(result: SendResult) -> ChannelSendResult:
    return ChannelSendResult(
        success=result.success,
        message_id=result.message_id,
        queue_id=result.queue_id,
        error=result.error,
    )


class VerificationService:
    def __init__(
        self,
        users: UserRepository,
        email_sender: EmailSender,
        sms_backend: SMSVerificationBackend,
        settings: Optional[VerificationSettings] = None,
        clock: Optional[Clock] = None,
        default_country_code: str = "1",
    ) -> None:
        self._users = users
        self._email_sender = email_sender
        self._sms_backend = sms_backend
        self._settings = settings or VerificationSettings()
        self._clock = clock or SystemClock()
        self._country_code = default_country_code

    @property
    def code_ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.code_ttl_seconds)

    @property
    def _ttl_minutes(self) -> int:
        return max(1, self._settings.code_ttl_seconds // 60)

    async def _load_user(self, user_id: str) -> UserDoc:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _normalize_phone(self, phone_number: Optional[str]) -> Optional[str]:
        if not phone_number:
            return None
        try:
            return normalize_phone_number(phone_number, self._country_code)
        except ValueError:
            return None

    # ── Send / resend ────────────────────────────────────────────────────────

    async def send_codes(
        self,
        user_id: str,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> SendVerificationResponse:
        """Issue and send fresh codes on both channels.

        *email* / *phone_number* override the addresses stored on the user.
        """
        user = await self._load_user(user_id)
        email_result, sms_result = await self._issue_and_dispatch(
            user,
            ALL_CHANNELS,
            email_to=email or user.email,
            phone_to=phone_number or user.telephone,
        )
        all_ok = email_result.success and sms_result.success
        log.info(
            "verification_codes_sent",
            user_id=user_id,
            email_success=email_result.success,
            sms_success=sms_result.success,
        )
        return SendVerificationResponse(
            message=(
                "Verification codes sent successfully"
                if all_ok
                else "Verification codes sent with some issues"
            ),
            email=email_result,
            sms=sms_result,
        )

    async def resend(
        self, user_id: str, channel: Optional[Channel] = None
    ) -> SendVerificationResponse:
        """Re-issue codes according to the configured resend policy.

        ``all``: every requested channel gets a new code, even a verified one
        (which reopens it). ``unverified``: verified channels are skipped.
        *channel* limits the resend to a single channel.
        """
        user = await self._load_user(user_id)
        requested = (channel,) if channel is not None else ALL_CHANNELS

        if self._settings.resend_policy == "unverified":
            targets = tuple(
                c
                for c in requested
                if channel_state(user.verification, c) is not ChannelState.VERIFIED
            )
        else:
            targets = requested

        email_result, sms_result = await self._issue_and_dispatch(
            user, targets, email_to=user.email, phone_to=user.telephone
        )
        all_ok = email_result.success and sms_result.success
        log.info(
            "verification_codes_resent",
            user_id=user_id,
            channels=[c.value for c in targets],
            policy=self._settings.resend_policy,
        )
        return SendVerificationResponse(
            message=(
                "Verification codes resent successfully"
                if all_ok
                else "Verification codes resent with some issues"
            ),
            email=email_result,
            sms=sms_result,
        )

    async def _issue_and_dispatch(
        self,
        user: UserDoc,
        channels: tuple[Channel, ...],
        email_to: Optional[str],
        phone_to: Optional[str],
    ) -> tuple[ChannelSendResult, ChannelSendResult]:
        now = self._clock.now()
        record = user.verification
        user_id = str(user.id)

        if Channel.EMAIL in channels:
            issue_code(record, Channel.EMAIL, generate_verification_code(), now, self.code_ttl)
        sms_to = self._normalize_phone(phone_to)
        if Channel.SMS in channels:
            self._sms_backend.prepare(record, now, self.code_ttl)
            # verify_sms checks against this number, not the stored telephone
            record.sms_destination = sms_to

        if channels:
            await self._users.save_verification(user_id, record)

        email_coro = (
            self._dispatch_email(user, record, email_to)
            if Channel.EMAIL in channels
            else self._skipped()
        )
        sms_coro = (
            self._dispatch_sms(user, record, sms_to)
            if Channel.SMS in channels
            else self._skipped()
        )
        email_result, sms_result = await asyncio.gather(email_coro, sms_coro)
        return email_result, sms_result

    async def _skipped(self) -> ChannelSendResult:
        return ChannelSendResult(success=True, issued=False)

    async def _dispatch_email(
        self, user: UserDoc, record: VerificationRecord, to: Optional[str]
    ) -> ChannelSendResult:
        if not to:
            return ChannelSendResult(success=False, error="No email address on file")

        message = self._email_sender.render_verification(
            to, user.first_name or user.username, record.email_code, self._ttl_minutes
        )
        idempotency_key = f"email_verification:{user.id}:{record.email_expires_at.isoformat()}"
        try:
            result = await self._email_sender.send(
                message,
                mode=DeliveryMode(self._settings.email_delivery_mode),
                idempotency_key=idempotency_key,
            )
        except Exception as e:
            log.error(
                "verification_email_dispatch_error",
                user_id=str(user.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return ChannelSendResult(success=False, error="Failed to send verification email")
        return _to_channel_result(result)

    async def _dispatch_sms(
        self, user: UserDoc, record: VerificationRecord, to: Optional[str]
    ) -> ChannelSendResult:
        if to is None:
            return ChannelSendResult(success=False, error="No phone number on file")

        result = await self._sms_backend.dispatch(
            record, to, user.first_name or user.username, ttl_minutes=self._ttl_minutes
        )
        return _to_channel_result(result)

    # ── Verify ───────────────────────────────────────────────────────────────

    async def verify_email(self, user_id: str, code: str) -> VerifyCodeResponse:
        user = await self._load_user(user_id)
        record = user.verification
        was_verified = record.is_verified

        verify_code(record, Channel.EMAIL, code, self._clock.now())
        await self._users.save_verification(user_id, record)

        return await self._after_verification(
            user, was_verified, "Email verification successful"
        )

    async def verify_sms(self, user_id: str, code: str) -> VerifyCodeResponse:
        user = await self._load_user(user_id)
        record = user.verification
        was_verified = record.is_verified

        to = record.sms_destination or self._normalize_phone(user.telephone)
        await self._sms_backend.check(record, to, code, self._clock.now())
        await self._users.save_verification(user_id, record)

        return await self._after_verification(
            user, was_verified, "SMS verification successful"
        )

    async def _after_verification(
        self, user: UserDoc, was_verified: bool, message: str
    ) -> VerifyCodeResponse:
        record = user.verification
        if record.is_verified and not was_verified:
            log.info("account_fully_verified", user_id=str(user.id))
            await self._queue_welcome_email(user)
        else:
            log.info(
                "channel_verified_awaiting_other",
                user_id=str(user.id),
                is_verified=record.is_verified,
            )
        return VerifyCodeResponse(
            message=message,
            is_verified=record.is_verified,
            email_verified=channel_state(record, Channel.EMAIL) is ChannelState.VERIFIED,
            sms_verified=channel_state(record, Channel.SMS) is ChannelState.VERIFIED,
        )

    async def _queue_welcome_email(self, user: UserDoc) -> None:
        if not self._settings.send_welcome_email or not user.email:
            return
        message = self._email_sender.render_welcome(
            user.email, user.first_name or user.username
        )
        try:
            await self._email_sender.send(
                message, mode=DeliveryMode.QUEUED, idempotency_key=f"welcome:{user.id}"
            )
        except Exception as e:
            log.error(
                "welcome_email_enqueue_failed",
                user_id=str(user.id),
                error=str(e),
                error_type=type(e).__name__,
            )

    # ── Status ───────────────────────────────────────────────────────────────

    async def get_status(self, user_id: str) -> VerificationStatusResponse:
        user = await self._load_user(user_id)
        record = user.verification
        return VerificationStatusResponse(
            is_verified=record.is_verified,
            email_verified=channel_state(record, Channel.EMAIL) is ChannelState.VERIFIED,
            sms_verified=channel_state(record, Channel.SMS) is ChannelState.VERIFIED,
            has_email_verification=record.email_pending,
            has_sms_verification=record.sms_pending,
        )
