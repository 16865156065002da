"""
Health check endpoint.

GET /health - checks MongoDB connectivity and reports delivery queue status.
Rules:
- MongoDB failure → "unhealthy" (503) - verification state lives there.
- Delivery queue status unavailable (e.g. outbox unreachable, services not
  built) → "degraded" (200) - codes can still be verified.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse, QueueStatusResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    queue_status = None
    services = getattr(request.app.state, "services", None)
    if services is None:
        checks["delivery_queue"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"
    else:
        try:
            status = await services.delivery_queue.status()
            queue_status = QueueStatusResponse(
                queue_length=status["queue_length"], processing=status["processing"]
            )
            checks["delivery_queue"] = "ok"
        except Exception:
            checks["delivery_queue"] = "error"
            if overall == "healthy":
                overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    body = HealthResponse(status=overall, checks=checks, delivery_queue=queue_status)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )
