"""ZeptoMail implementation of EmailProvider.

Takes fully rendered messages; template rendering lives in EmailSender.
Failures (HTTP error status, transport error, missing token) are reported as
a failed SendResult rather than raised, so the delivery queue can retry them.
"""

from config import EmailSettings
from infrastructure.http_client import HttpClient
from schemas.models.notification import EmailMessage, SendResult
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"


class ZeptoMailProvider:
    def __init__(self, settings: EmailSettings, http_client: HttpClient) -> None:
        self._settings = settings
        self._http = http_client

    def _build_payload(self, message: EmailMessage) -> dict:
        payload: dict = {
            "from": {
                "address": message.from_address or self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": message.to,
                        "name": message.to_name or message.to,
                    }
                }
            ],
            "subject": message.subject,
            "htmlbody": message.html,
        }
        if message.text:
            payload["textbody"] = message.text
        return payload

    def _auth_header(self) -> str:
        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"
        return token

    async def submit(self, message: EmailMessage) -> SendResult:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return SendResult.failed("Email provider is not configured")

        headers = {"Authorization": self._auth_header(), "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=self._build_payload(message), headers=headers
            )
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=message.to,
                subject=message.subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult.failed(f"{type(e).__name__}: {e}")

        if response.status_code in (200, 201, 202):
            message_id = None
            try:
                message_id = response.json().get("request_id")
            except ValueError:
                pass
            log.info("email_sent_success", to_email=message.to, subject=message.subject)
            return SendResult.ok(message_id)

        log.error(
            "email_sent_failed",
            to_email=message.to,
            subject=message.subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return SendResult.failed(f"Email provider returned HTTP {response.status_code}")
