"""Integration tests for GET /health."""

import os
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from routes.health_routes import router as health_router

# Ensure a MONGODB_URI is present so AppSettings can be instantiated
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")


def _build_test_app(
    mongo_ok: bool = True,
    queue_ok: bool = True,
    services_built: bool = True,
) -> FastAPI:
    """
    Build a minimal FastAPI app with mocked DB/services injected via lifespan.
    No real network connections are made.
    """
    mock_db = MagicMock()
    if mongo_ok:
        mock_db.client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        mock_db.client.admin.command = AsyncMock(
            side_effect=Exception("connection refused")
        )

    if not services_built:
        mock_services = None
    else:
        mock_services = MagicMock()
        if queue_ok:
            mock_services.delivery_queue.status = AsyncMock(
                return_value={"queue_length": 3, "processing": False}
            )
        else:
            mock_services.delivery_queue.status = AsyncMock(
                side_effect=Exception("outbox unreachable")
            )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = mock_db
        app.state.services = mock_services
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(health_router)
    return app


class TestHealthEndpoint:
    def test_healthy_when_both_ok(self):
        app = _build_test_app()
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["checks"]["mongodb"] == "ok"
        assert body["checks"]["delivery_queue"] == "ok"
        assert body["deliveryQueue"] == {"queueLength": 3, "processing": False}

    def test_unhealthy_when_mongo_fails(self):
        app = _build_test_app(mongo_ok=False)
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 503
        body = resp.json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["mongodb"] == "error"

    def test_degraded_when_queue_status_fails(self):
        app = _build_test_app(queue_ok=False)
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["checks"]["delivery_queue"] == "error"
        assert "deliveryQueue" not in body

    def test_degraded_when_services_missing(self):
        app = _build_test_app(services_built=False)
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "degraded"
        assert body["checks"]["delivery_queue"] == "not_configured"

    def test_mongo_failure_wins_over_queue(self):
        app = _build_test_app(mongo_ok=False, queue_ok=False)
        with TestClient(app) as client:
            resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"
