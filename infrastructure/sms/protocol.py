"""SMS provider protocols - services depend on these, not the Twilio classes.

SMSProvider                - raw messaging (we own the code)
HostedVerificationProvider - a verification service that owns code issuance,
                             storage and expiry; we only start and check
"""

from typing import Literal, Protocol

from schemas.models.notification import SendResult

VerificationStatus = Literal["pending", "approved", "canceled", "failed", "not_found"]


class SMSProvider(Protocol):
    async def send_message(self, to: str, body: str) -> SendResult:
        """Send *body* to an E.164 number. Never raises for provider-side failures."""
        ...


class HostedVerificationProvider(Protocol):
    async def start_verification(self, to: str, channel: str = "sms") -> str:
        """Start a verification and return its status. Raises ProviderError."""
        ...

    async def check_verification(self, to: str, code: str) -> str:
        """Check *code* for *to* and return the resulting status. Raises ProviderError."""
        ...

    async def fetch_verification(self, to: str) -> str:
        """Return the status of the latest verification for *to*. Raises ProviderError."""
        ...
