"""Tests for scheduler management API routes."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sitemap_builder.api import scheduler_router
from sitemap_builder.services.container import build_sitemap_services
from sitemap_builder.services.generation_scheduler import GENERATE_FOR_DATE_ACTION
from sitemap_builder.services.generation_tasks import AUTOMATIC_UPDATE_JOB_ID
from sitemap_builder.services.option_store import InMemoryOptionStore
from sitemap_builder.services.scheduler import SchedulerService
from sitemap_builder.services.site_eligibility import StaticSiteEligibility
from sitemap_builder.services.task_dispatcher import InMemoryTaskDispatcher


async def _noop_job() -> None:
    return None


@pytest.mark.asyncio
async def test_scheduler_api_pause_resume_and_job_listing(tmp_path: Path) -> None:
    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'scheduler-api.sqlite'}",
    )
    scheduler.add_interval_job(job_id="api-job", func=_noop_job, seconds=300)

    app = FastAPI()
    app.include_router(scheduler_router)
    app.state.scheduler_service = scheduler

    await scheduler.start()
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            status_response = await client.get("/api/scheduler")
            assert status_response.status_code == 200
            assert status_response.json()["enabled"] is True
            assert status_response.json()["running"] is True

            jobs_response = await client.get("/api/scheduler/jobs")
            assert jobs_response.status_code == 200
            assert len(jobs_response.json()) == 1
            assert jobs_response.json()[0]["job_id"] == "api-job"

            pause_response = await client.post("/api/scheduler/pause")
            assert pause_response.status_code == 200
            assert pause_response.json()["paused"] is True

            resume_response = await client.post("/api/scheduler/resume")
            assert resume_response.status_code == 200
            assert resume_response.json()["paused"] is False
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_scheduler_api_returns_conflict_when_disabled(tmp_path: Path) -> None:
    scheduler = SchedulerService(
        enabled=False,
        jobstore_url=f"sqlite:///{tmp_path / 'scheduler-api-disabled.sqlite'}",
    )

    app = FastAPI()
    app.include_router(scheduler_router)
    app.state.scheduler_service = scheduler

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        pause_response = await client.post("/api/scheduler/pause")
        jobs_response = await client.get("/api/scheduler/jobs")

    assert pause_response.status_code == 409
    assert jobs_response.status_code == 409


@pytest.mark.asyncio
async def test_scheduler_api_exposes_generation_monitoring_metrics(
    settings,
    session_factory,
) -> None:
    services = build_sitemap_services(
        settings,
        dispatcher=InMemoryTaskDispatcher(),
        session_factory=session_factory,
        store=InMemoryOptionStore(),
        eligibility=StaticSiteEligibility(True),
    )

    app = FastAPI()
    app.include_router(scheduler_router)
    app.state.sitemap_services = services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        monitoring_response = await client.get("/api/scheduler/jobs/monitoring")

    assert monitoring_response.status_code == 200
    payload = monitoring_response.json()
    assert {item["job_id"] for item in payload} == {
        GENERATE_FOR_DATE_ACTION,
        AUTOMATIC_UPDATE_JOB_ID,
    }
    assert all(item["total_runs"] == 0 for item in payload)
