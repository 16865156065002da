"""
Email sender - the single entry point for outbound email.

Callers pick a delivery mode per message:

- DeliveryMode.QUEUED: hand the message to the DeliveryQueue and return at
  once ("accepted for delivery"); retries happen in the background.
- DeliveryMode.DIRECT: submit once to the provider and report its result.

Message bodies are rendered from Jinja2 templates in templates/emails.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from infrastructure.email.protocol import EmailProvider
from schemas.models.notification import EmailMessage, SendResult
from services.delivery_queue import DeliveryQueue
from shared.logging import get_logger

log = get_logger(__name__)

_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "templates",
    "emails",
)


class DeliveryMode(str, Enum):
    QUEUED = "queued"
    DIRECT = "direct"


class EmailSender:
    def __init__(
        self,
        provider: EmailProvider,
        queue: DeliveryQueue,
        app_name: str = "dualverify",
        app_url: str = "https://dualverify.app",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._provider = provider
        self._queue = queue
        self._app_name = app_name
        self._app_url = app_url
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render_verification(
        self,
        to: str,
        user_name: Optional[str],
        code: str,
        ttl_minutes: int,
    ) -> EmailMessage:
        template = self._jinja.get_template("verification.html")
        html = template.render(
            code=code,
            user_name=user_name,
            ttl_minutes=ttl_minutes,
            app_name=self._app_name,
            app_url=self._app_url,
        )
        text = (
            f"{self._app_name} verification code: {code}\n\n"
            f"Hi{f' {user_name}' if user_name else ''}, use this code to verify your "
            f"account. This code expires in {ttl_minutes} minutes.\n\n"
            f"If you didn't request this, please ignore this email."
        )
        return EmailMessage(
            to=to,
            to_name=user_name,
            subject=f"{self._app_name} - Verify your account",
            html=html,
            text=text,
        )

    def render_welcome(self, to: str, user_name: Optional[str]) -> EmailMessage:
        template = self._jinja.get_template("welcome.html")
        html = template.render(
            user_name=user_name, app_name=self._app_name, app_url=self._app_url
        )
        text = (
            f"Welcome to {self._app_name}{f', {user_name}' if user_name else ''}!\n\n"
            f"Your email address and phone number are verified.\n\n"
            f"Get started: {self._app_url}"
        )
        return EmailMessage(
            to=to,
            to_name=user_name,
            subject=f"Welcome to {self._app_name}",
            html=html,
            text=text,
        )

    async def send(
        self,
        message: EmailMessage,
        mode: DeliveryMode = DeliveryMode.QUEUED,
        idempotency_key: Optional[str] = None,
    ) -> SendResult:
        if mode is DeliveryMode.QUEUED:
            queue_id = await self._queue.enqueue(message, idempotency_key=idempotency_key)
            return SendResult.queued(queue_id)

        try:
            result = await self._provider.submit(message)
        except Exception as e:
            log.error(
                "email_direct_send_error",
                to_email=message.to,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult.failed(f"{type(e).__name__}: {e}")
        if not result.success:
            log.warning("email_direct_send_failed", to_email=message.to, error=result.error)
        return result
