"""
Request DTOs for the verification endpoints.

SendVerificationRequest - POST /api/verification/send
VerifyCodeRequest       - POST /api/verification/verify-email, /verify-sms
ResendRequest           - POST /api/verification/resend
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SendVerificationRequest(BaseModel):
    """Request body for POST /send.

    Both fields are optional; when omitted the address stored on the user
    record is used.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")

    @field_validator("email", "phone_number")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class VerifyCodeRequest(BaseModel):
    """Request body for POST /verify-email and POST /verify-sms.

    ``code`` is the 6-digit code delivered on that channel. It is compared as
    an exact string; surrounding whitespace is stripped.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class ResendRequest(BaseModel):
    """Request body for POST /resend. An empty body re-issues per policy."""

    model_config = ConfigDict(populate_by_name=True)

    channel: Optional[Literal["email", "sms"]] = None
