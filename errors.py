"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

QueueExhausted is not an AppError: it is raised and logged
inside the delivery worker and never reaches an HTTP caller.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class ExpiredError(AppError):
    status_code = 400
    error_code = "code_expired"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ProviderError(AppError):
    """An outbound call to an email/SMS/verification provider failed."""

    status_code = 502
    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.provider = provider


class QueueExhausted(Exception):
    """A queued notification failed on every allowed attempt."""

    def __init__(self, queue_id: str, attempts: int, last_error: Optional[str]) -> None:
        super().__init__(
            f"notification {queue_id} failed after {attempts} attempts: {last_error}"
        )
        self.queue_id = queue_id
        self.attempts = attempts
        self.last_error = last_error


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query")]
        payload = ValidationError(
            first.get("msg", "Invalid request"),
            field=".".join(loc) or None,
            details=[{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors],
        ).to_dict()
        return JSONResponse(status_code=400, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
