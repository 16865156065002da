"""Unit tests for request and response DTOs."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from schemas.dto.requests.verification import (
    ResendRequest,
    SendVerificationRequest,
    VerifyCodeRequest,
)
from schemas.dto.responses.common import ErrorResponse, HealthResponse, QueueStatusResponse
from schemas.dto.responses.verification import (
    ChannelSendResult,
    SendVerificationResponse,
    VerifyCodeResponse,
)


# ── Requests ──────────────────────────────────────────────────────────────────


class TestSendVerificationRequest:
    def test_camel_case_phone(self):
        req = SendVerificationRequest.model_validate({"phoneNumber": "2149576425"})
        assert req.phone_number == "2149576425"

    def test_all_optional(self):
        req = SendVerificationRequest.model_validate({})
        assert req.email is None
        assert req.phone_number is None

    def test_blank_becomes_none(self):
        req = SendVerificationRequest.model_validate({"email": "  ", "phoneNumber": ""})
        assert req.email is None
        assert req.phone_number is None


class TestVerifyCodeRequest:
    def test_strips_whitespace(self):
        assert VerifyCodeRequest(code=" 123456 ").code == "123456"

    @pytest.mark.parametrize("body", [{}, {"code": ""}], ids=["missing", "empty"])
    def test_code_required(self, body):
        with pytest.raises(ValidationError):
            VerifyCodeRequest.model_validate(body)


class TestResendRequest:
    @pytest.mark.parametrize("channel", ["email", "sms", None])
    def test_valid_channels(self, channel):
        assert ResendRequest(channel=channel).channel == channel

    def test_unknown_channel_rejected(self):
        with pytest.raises(ValidationError):
            ResendRequest(channel="fax")


# ── Responses ─────────────────────────────────────────────────────────────────


class TestSendVerificationResponse:
    def test_camel_case_keys(self):
        resp = SendVerificationResponse(
            message="ok",
            email=ChannelSendResult(success=True, queue_id="ntf_1"),
            sms=ChannelSendResult(success=False, error="HTTP 400"),
        )
        body = resp.model_dump(by_alias=True)
        assert body["success"] is True
        assert body["email"]["queueId"] == "ntf_1"
        assert body["sms"]["error"] == "HTTP 400"
        assert body["sms"]["messageId"] is None


class TestVerifyCodeResponse:
    def test_camel_case_keys(self):
        resp = VerifyCodeResponse(
            message="Email verification successful",
            is_verified=False,
            email_verified=True,
            sms_verified=False,
        )
        assert resp.model_dump(by_alias=True) == {
            "success": True,
            "message": "Email verification successful",
            "isVerified": False,
            "emailVerified": True,
            "smsVerified": False,
        }


class TestCommonResponses:
    def test_error_response(self):
        resp = ErrorResponse(error="Invalid verification code", code="validation_error")
        assert resp.field is None

    def test_health_response(self):
        resp = HealthResponse(
            status="healthy",
            checks={"mongodb": "ok"},
            delivery_queue=QueueStatusResponse(queue_length=2, processing=False),
        )
        body = resp.model_dump(by_alias=True)
        assert body["deliveryQueue"] == {"queueLength": 2, "processing": False}
