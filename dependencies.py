"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services live on app.state (built once in the
lifespan), so routes never construct anything themselves.
"""

from __future__ import annotations

from typing import Optional

import jwt
from fastapi import Depends, Query, Request

from config import AppSettings, JWTSettings
from errors import AuthenticationError, ValidationError
from services.context import ServiceContext
from services.verification_service import VerificationService
from shared.logging import get_logger

log = get_logger(__name__)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_services(request: Request) -> ServiceContext:
    return request.app.state.services


def get_verification_service(
    services: ServiceContext = Depends(get_services),
) -> VerificationService:
    return services.verification


# ── Auth ─────────────────────────────────────────────────────────────────────


def _verification_key(settings: JWTSettings) -> str:
    if settings.use_rs256:
        # Keys provided via env may carry literal \n sequences
        return settings.jwt_public_key.replace("\\n", "\n")
    if not settings.jwt_secret:
        raise AuthenticationError("Authentication is not configured")
    return settings.jwt_secret


def decode_access_token(token: str, settings: JWTSettings) -> dict:
    """Verify an access JWT issued by the account service and return its claims."""
    algorithm = "RS256" if settings.use_rs256 else "HS256"
    try:
        return jwt.decode(
            token,
            _verification_key(settings),
            algorithms=[algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Access token has expired")
    except jwt.InvalidTokenError as e:
        log.info("access_token_rejected", reason=str(e))
        raise AuthenticationError("Invalid access token")


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer ") :].strip() or None
    return request.cookies.get("access_token")


def get_optional_user_id(
    request: Request, settings: AppSettings = Depends(get_settings)
) -> Optional[str]:
    """Return the authenticated user id, or None when no token was sent."""
    token = _extract_token(request)
    if token is None:
        return None
    claims = decode_access_token(token, settings.jwt)
    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid access token")
    return str(user_id)


def get_current_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    if user_id is None:
        raise AuthenticationError("Authentication required")
    return user_id


def resolve_status_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
    query_user_id: Optional[str] = Query(default=None, alias="userId"),
) -> str:
    """Status lookups accept a bearer token or an explicit ``?userId=``."""
    resolved = user_id or query_user_id
    if not resolved:
        raise ValidationError("User ID is required", field="userId")
    return resolved
