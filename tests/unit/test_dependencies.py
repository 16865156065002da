"""Unit tests for bearer-token verification in dependencies.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from config import JWTSettings
from dependencies import decode_access_token
from errors import AuthenticationError

SECRET = "test-secret-that-is-long-enough-for-hs256"


def _settings(**overrides) -> JWTSettings:
    base = dict(jwt_secret=SECRET, jwt_public_key="")
    base.update(overrides)
    return JWTSettings(**base)


def _token(secret: str = SECRET, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "iss": "dualverify",
        "aud": "dualverify.api",
        "sub": "507f1f77bcf86cd799439011",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=15)).timestamp()),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestDecodeAccessToken:
    def test_valid_token(self):
        claims = decode_access_token(_token(), _settings())
        assert claims["sub"] == "507f1f77bcf86cd799439011"

    def test_expired_token(self):
        past = int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())
        with pytest.raises(AuthenticationError, match="expired"):
            decode_access_token(_token(exp=past), _settings())

    @pytest.mark.parametrize(
        "claims",
        [{"aud": "someone-else"}, {"iss": "evil"}],
        ids=["wrong_audience", "wrong_issuer"],
    )
    def test_wrong_claims_rejected(self, claims):
        with pytest.raises(AuthenticationError):
            decode_access_token(_token(**claims), _settings())

    def test_wrong_signature_rejected(self):
        token = _token(secret="another-secret-that-is-long-enough")
        with pytest.raises(AuthenticationError):
            decode_access_token(token, _settings())

    def test_garbage_rejected(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.jwt", _settings())

    def test_unconfigured_secret(self):
        with pytest.raises(AuthenticationError):
            decode_access_token(_token(), _settings(jwt_secret=""))
