"""EmailProvider protocol - services depend on this, not the concrete implementation."""

from typing import Protocol

from schemas.models.notification import EmailMessage, SendResult


class EmailProvider(Protocol):
    async def submit(self, message: EmailMessage) -> SendResult:
        """Submit one rendered message. Never raises for provider-side failures."""
        ...
