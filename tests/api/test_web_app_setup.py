"""Tests for FastAPI application wiring."""

from __future__ import annotations

from fastapi.routing import APIRoute
import pytest
from httpx import ASGITransport, AsyncClient

from sitemap_builder.main import create_app


def test_create_app_registers_generation_scheduler_and_sitemap_routes() -> None:
    app = create_app()

    paths = {route.path for route in app.routes if isinstance(route, APIRoute)}

    assert {
        "/health",
        "/sitemap.xml",
        "/sitemaps/{filename}",
        "/api/generation/status",
        "/api/generation/full",
        "/api/generation/generate-now",
        "/api/scheduler",
        "/api/scheduler/jobs/monitoring",
    } <= paths
    assert app.state.inflight_requests == 0


@pytest.mark.asyncio
async def test_health_check_and_missing_services() -> None:
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        health_response = await client.get("/health")
        sitemap_response = await client.get("/sitemap.xml")

    assert health_response.status_code == 200
    assert health_response.json() == {"status": "ok"}
    assert sitemap_response.status_code == 503
    assert app.state.inflight_requests == 0
