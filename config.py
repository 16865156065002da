"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).
Sub-configs are composed onto AppSettings by a model_validator so that a
single ``AppSettings()`` call reads everything from the same env source.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "dualverify"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "dualverify"
    jwt_audience: str = "dualverify.api"

    # RS256 public key (preferred); tokens are issued by the auth service
    jwt_public_key: str = ""

    # HS256 fallback (used when no RS256 public key is configured)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_public_key)


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@dualverify.app"
    zepto_from_name: str = "dualverify"
    email_timeout_seconds: float = 10.0


class SMSSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "local": we issue the code and send it as a plain message.
    # "hosted": Twilio Verify issues, stores and checks the code.
    sms_backend: Literal["local", "hosted"] = "local"

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""
    twilio_verify_service_sid: str = ""
    sms_timeout_seconds: float = 10.0

    default_country_code: str = "1"

    @property
    def is_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)


class VerificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    code_ttl_seconds: int = 600

    # "all" re-issues both channels on resend, even verified ones.
    # "unverified" leaves channels that are already verified untouched.
    resend_policy: Literal["all", "unverified"] = "all"

    email_delivery_mode: Literal["queued", "direct"] = "queued"
    send_welcome_email: bool = True


class DeliveryQueueSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    delivery_queue_backend: Literal["memory", "mongo"] = "memory"
    base_delay_seconds: float = 5.0
    max_attempts: int = 3
    poll_interval_seconds: float = 1.0
    # Set false when start_worker.py drains the mongo outbox
    run_embedded_worker: bool = True

    @property
    def embedded_worker_enabled(self) -> bool:
        """The memory queue only exists in the API process, so it always runs there."""
        return self.delivery_queue_backend == "memory" or self.run_embedded_worker


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "dualverify"
    app_url: str = "https://dualverify.app"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    email: Optional[EmailSettings] = None
    sms: Optional[SMSSettings] = None
    verification: Optional[VerificationSettings] = None
    delivery_queue: Optional[DeliveryQueueSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.sms is None:
            self.sms = SMSSettings()
        if self.verification is None:
            self.verification = VerificationSettings()
        if self.delivery_queue is None:
            self.delivery_queue = DeliveryQueueSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
