"""
Common response DTOs shared across endpoints.

ErrorResponse          - standard error shape from AppError.to_dict()
QueueStatusResponse    - delivery queue snapshot embedded in HealthResponse
HealthResponse         - GET /health
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class QueueStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queue_length: int = Field(alias="queueLength")
    processing: bool


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]
    delivery_queue: Optional[QueueStatusResponse] = Field(
        default=None, alias="deliveryQueue"
    )
