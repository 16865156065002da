"""Twilio REST implementations of the SMS provider protocols.

TwilioMessagingProvider - Programmable Messaging (Messages.json)
TwilioVerifyProvider    - Verify v2 (Verifications / VerificationCheck)

Both talk to Twilio over plain HTTPS through HttpClient, authenticated with
the account SID and auth token (HTTP basic auth). Numbers must already be in
E.164 form.
"""

from __future__ import annotations

from typing import Any

import httpx

from config import SMSSettings
from errors import ProviderError
from infrastructure.http_client import HttpClient
from schemas.models.notification import SendResult
from shared.logging import get_logger
from shared.phone import mask_phone_number

log = get_logger(__name__)

_MESSAGING_BASE_URL = "https://api.twilio.com/2010-04-01"
_VERIFY_BASE_URL = "https://verify.twilio.com/v2"


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    return str(body.get("message") or body)[:200]


class TwilioMessagingProvider:
    def __init__(self, settings: SMSSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    @property
    def _messages_url(self) -> str:
        return f"{_MESSAGING_BASE_URL}/Accounts/{self._settings.twilio_account_sid}/Messages.json"

    async def send_message(self, to: str, body: str) -> SendResult:
        if not self._settings.is_configured or not self._settings.twilio_from_number:
            log.error("sms_send_failed", reason="twilio_not_configured")
            return SendResult.failed("SMS provider is not configured")

        data = {"From": self._settings.twilio_from_number, "To": to, "Body": body}

        try:
            response = await self._http.post(self._messages_url, data=data)
        except httpx.TimeoutException:
            log.error("sms_send_timeout", to=mask_phone_number(to))
            return SendResult.failed("SMS provider timed out")
        except Exception as e:
            log.error(
                "sms_send_error",
                to=mask_phone_number(to),
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult.failed(f"{type(e).__name__}: {e}")

        if response.status_code in (200, 201):
            sid = response.json().get("sid")
            log.info("sms_sent_success", to=mask_phone_number(to), message_sid=sid)
            return SendResult.ok(sid)

        detail = _error_detail(response)
        log.error(
            "sms_send_failed",
            to=mask_phone_number(to),
            status_code=response.status_code,
            response=detail,
        )
        return SendResult.failed(f"SMS provider returned HTTP {response.status_code}: {detail}")


class TwilioVerifyProvider:
    def __init__(self, settings: SMSSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    @property
    def _service_url(self) -> str:
        return f"{_VERIFY_BASE_URL}/Services/{self._settings.twilio_verify_service_sid}"

    def _ensure_configured(self) -> None:
        if not self._settings.is_configured or not self._settings.twilio_verify_service_sid:
            raise ProviderError(
                "Hosted verification service is not configured", provider="twilio_verify"
            )

    async def _call(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if method == "GET":
                return await self._http.get(url, **kwargs)
            return await self._http.post(url, **kwargs)
        except Exception as e:
            log.error(
                "twilio_verify_request_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderError(
                "Hosted verification service is unreachable",
                provider="twilio_verify",
                details=type(e).__name__,
            ) from e

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        detail = _error_detail(response)
        log.error(
            "twilio_verify_error",
            operation=operation,
            status_code=response.status_code,
            response=detail,
        )
        raise ProviderError(
            f"Hosted verification {operation} failed (HTTP {response.status_code})",
            provider="twilio_verify",
            details=detail,
        )

    async def start_verification(self, to: str, channel: str = "sms") -> str:
        self._ensure_configured()
        response = await self._call(
            "POST",
            f"{self._service_url}/Verifications",
            data={"To": to, "Channel": channel},
        )
        if response.status_code not in (200, 201):
            self._raise_for_status(response, "start")
        status = response.json().get("status", "pending")
        log.info("hosted_verification_started", to=mask_phone_number(to), status=status)
        return status

    async def check_verification(self, to: str, code: str) -> str:
        self._ensure_configured()
        response = await self._call(
            "POST",
            f"{self._service_url}/VerificationCheck",
            data={"To": to, "Code": code},
        )
        # Twilio answers 404 once the verification expired, was approved
        # already or ran out of attempts.
        if response.status_code == 404:
            return "failed"
        if response.status_code not in (200, 201):
            self._raise_for_status(response, "check")
        return response.json().get("status", "failed")

    async def fetch_verification(self, to: str) -> str:
        self._ensure_configured()
        response = await self._call("GET", f"{self._service_url}/Verifications/{to}")
        if response.status_code == 404:
            return "not_found"
        if response.status_code != 200:
            self._raise_for_status(response, "fetch")
        return response.json().get("status", "not_found")
