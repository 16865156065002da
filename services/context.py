"""
Service wiring.

build_services() turns AppSettings + a database handle into the full object
graph (HTTP clients, providers, delivery queue, senders, verification
service). The FastAPI lifespan and the standalone outbox worker both use it,
so they always run the same configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from config import AppSettings
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.sms.twilio import TwilioMessagingProvider, TwilioVerifyProvider
from repositories.outbox_repository import MongoOutboxRepository
from repositories.user_repository import UserRepository
from services.delivery_queue import DeliveryQueue
from services.email_sender import EmailSender
from services.queue_store import InMemoryQueueStore, QueueStore
from services.sms_backends import (
    HostedVerificationBackend,
    LocalCodeBackend,
    SMSVerificationBackend,
)
from services.verification_service import VerificationService
from shared.datetime_utils import Clock, SystemClock
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass
class ServiceContext:
    delivery_queue: DeliveryQueue
    email_sender: EmailSender
    sms_backend: SMSVerificationBackend
    verification: VerificationService
    outbox: Optional[MongoOutboxRepository] = None
    http_clients: list[HttpClient] = field(default_factory=list)

    async def aclose(self) -> None:
        for client in self.http_clients:
            await client.aclose()


def build_sms_backend(settings: AppSettings, http_client: HttpClient) -> SMSVerificationBackend:
    if settings.sms.sms_backend == "hosted":
        return HostedVerificationBackend(TwilioVerifyProvider(settings.sms, http_client))
    return LocalCodeBackend(
        TwilioMessagingProvider(settings.sms, http_client), app_name=settings.app_name
    )


def build_services(
    settings: AppSettings,
    db: AsyncDatabase,
    clock: Optional[Clock] = None,
) -> ServiceContext:
    clock = clock or SystemClock()

    email_http = HttpClient(timeout=settings.email.email_timeout_seconds)
    sms_http = HttpClient(
        timeout=settings.sms.sms_timeout_seconds,
        auth=(settings.sms.twilio_account_sid, settings.sms.twilio_auth_token),
    )
    email_provider = ZeptoMailProvider(settings.email, email_http)

    outbox: Optional[MongoOutboxRepository] = None
    store: QueueStore
    if settings.delivery_queue.delivery_queue_backend == "mongo":
        outbox = MongoOutboxRepository(db)
        store = outbox
    else:
        store = InMemoryQueueStore()

    queue = DeliveryQueue(
        send=email_provider.submit,
        store=store,
        clock=clock,
        base_delay_seconds=settings.delivery_queue.base_delay_seconds,
        max_attempts=settings.delivery_queue.max_attempts,
        poll_interval_seconds=settings.delivery_queue.poll_interval_seconds,
    )
    email_sender = EmailSender(
        email_provider, queue, app_name=settings.app_name, app_url=settings.app_url
    )
    sms_backend = build_sms_backend(settings, sms_http)

    verification = VerificationService(
        users=UserRepository(db, clock=clock),
        email_sender=email_sender,
        sms_backend=sms_backend,
        settings=settings.verification,
        clock=clock,
        default_country_code=settings.sms.default_country_code,
    )

    log.info(
        "services_built",
        sms_backend=sms_backend.name,
        queue_backend=settings.delivery_queue.delivery_queue_backend,
        email_delivery_mode=settings.verification.email_delivery_mode,
        resend_policy=settings.verification.resend_policy,
    )
    return ServiceContext(
        delivery_queue=queue,
        email_sender=email_sender,
        sms_backend=sms_backend,
        verification=verification,
        outbox=outbox,
        http_clients=[email_http, sms_http],
    )
