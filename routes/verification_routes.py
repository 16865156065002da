"""
Verification endpoints - /api/verification/*

POST /send          issue and send codes on both channels
POST /verify-email  submit the email code
POST /verify-sms    submit the SMS code
POST /resend        re-issue codes (per RESEND_POLICY, optional channel)
GET  /status        combined and per-channel verification state

All routes require a bearer token except /status, which also accepts
``?userId=``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from dependencies import (
    get_current_user_id,
    get_verification_service,
    resolve_status_user_id,
)
from schemas.dto.requests.verification import (
    ResendRequest,
    SendVerificationRequest,
    VerifyCodeRequest,
)
from schemas.dto.responses.verification import (
    SendVerificationResponse,
    VerificationStatusResponse,
    VerifyCodeResponse,
)
from services.verification_service import VerificationService
from services.verification_state import Channel

router = APIRouter(prefix="/api/verification", tags=["verification"])


@router.post("/send", response_model=SendVerificationResponse)
async def send_verification_codes(
    body: Optional[SendVerificationRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: VerificationService = Depends(get_verification_service),
) -> SendVerificationResponse:
    body = body or SendVerificationRequest()
    return await service.send_codes(
        user_id, email=body.email, phone_number=body.phone_number
    )


@router.post("/verify-email", response_model=VerifyCodeResponse)
async def verify_email_code(
    body: VerifyCodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: VerificationService = Depends(get_verification_service),
) -> VerifyCodeResponse:
    return await service.verify_email(user_id, body.code)


@router.post("/verify-sms", response_model=VerifyCodeResponse)
async def verify_sms_code(
    body: VerifyCodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: VerificationService = Depends(get_verification_service),
) -> VerifyCodeResponse:
    return await service.verify_sms(user_id, body.code)


@router.post("/resend", response_model=SendVerificationResponse)
async def resend_verification_codes(
    body: Optional[ResendRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: VerificationService = Depends(get_verification_service),
) -> SendVerificationResponse:
    channel = Channel(body.channel) if body and body.channel else None
    return await service.resend(user_id, channel=channel)


@router.get("/status", response_model=VerificationStatusResponse)
async def verification_status(
    user_id: str = Depends(resolve_status_user_id),
    service: VerificationService = Depends(get_verification_service),
) -> VerificationStatusResponse:
    return await service.get_status(user_id)
