"""
Response DTOs for the verification endpoints.

Keys are camelCase on the wire (the frontend contract); Python code uses the
snake_case field names.

ChannelSendResult          - per-channel outcome inside a send/resend response
SendVerificationResponse   - POST /send, POST /resend
VerifyCodeResponse         - POST /verify-email, POST /verify-sms
VerificationStatusResponse - GET /status
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChannelSendResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message_id: Optional[str] = Field(default=None, alias="messageId")
    queue_id: Optional[str] = Field(default=None, alias="queueId")
    error: Optional[str] = None
    # False when the channel was left alone (e.g. already verified on resend)
    issued: bool = True


class SendVerificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    email: ChannelSendResult
    sms: ChannelSendResult


class VerifyCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    is_verified: bool = Field(alias="isVerified")
    email_verified: bool = Field(alias="emailVerified")
    sms_verified: bool = Field(alias="smsVerified")


class VerificationStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    is_verified: bool = Field(alias="isVerified")
    email_verified: bool = Field(alias="emailVerified")
    sms_verified: bool = Field(alias="smsVerified")
    has_email_verification: bool = Field(alias="hasEmailVerification")
    has_sms_verification: bool = Field(alias="hasSMSVerification")
