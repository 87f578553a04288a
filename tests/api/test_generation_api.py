"""Integration tests for generation control routes."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sitemap_builder.api import generation_router
from sitemap_builder.services.container import SitemapServices, build_sitemap_services
from sitemap_builder.services.option_store import InMemoryOptionStore
from sitemap_builder.services.site_eligibility import StaticSiteEligibility
from sitemap_builder.services.sitemap_stats import SitemapStatsService
from sitemap_builder.services.task_dispatcher import InMemoryTaskDispatcher

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _build_app(
    settings,
    session_factory,
    *,
    dispatcher: InMemoryTaskDispatcher | None = None,
) -> tuple[FastAPI, SitemapServices]:
    services = build_sitemap_services(
        settings,
        dispatcher=dispatcher or InMemoryTaskDispatcher(clock=lambda: NOW),
        session_factory=session_factory,
        store=InMemoryOptionStore(),
        eligibility=StaticSiteEligibility(True),
        clock=lambda: NOW,
    )
    app = FastAPI()
    app.include_router(generation_router)
    app.state.sitemap_services = services
    return app, services


@pytest.mark.asyncio
async def test_generation_api_schedules_runs_and_reports_progress(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/a", datetime(2024, 3, 1, 9, tzinfo=UTC))
    await add_content("https://blog.example/b", datetime(2024, 3, 2, 9, tzinfo=UTC))
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    app, services = _build_app(settings, session_factory, dispatcher=dispatcher)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        summary_response = await client.get("/api/generation/missing-summary")
        assert summary_response.status_code == 200
        assert summary_response.json()["missing_dates"] == ["2024-03-01", "2024-03-02"]

        dates_response = await client.get("/api/generation/dates/missing")
        assert dates_response.status_code == 200
        assert dates_response.json()["count"] == 2

        unknown_response = await client.get("/api/generation/dates/recent")
        assert unknown_response.status_code == 404

        incremental_response = await client.post("/api/generation/incremental")
        assert incremental_response.status_code == 200
        assert incremental_response.json()["method"] == "background"
        assert incremental_response.json()["scheduled_count"] == 2

        full_response = await client.post("/api/generation/full")
        assert full_response.status_code == 409

        status_response = await client.get("/api/generation/status")
        assert status_response.status_code == 200
        status_payload = status_response.json()
        assert status_payload["in_progress"] is True
        assert status_payload["total"] == 2
        assert status_payload["current_date"] == "2024-03-01"
        assert status_payload["cron_available"] is True
        assert status_payload["next_task_at"] is not None

        await dispatcher.run_pending()

        progress_response = await client.get("/api/generation/progress")
        assert progress_response.json() == {
            "in_progress": False,
            "total": 2,
            "remaining": 0,
            "completed": 2,
        }

        finished_status = (await client.get("/api/generation/status")).json()
        assert finished_status["percent_complete"] == 100.0
        assert finished_status["indexed_url_count"] == 2
        assert finished_status["last_generation"] is not None

    assert await services.partition_repository.count() == 2


@pytest.mark.asyncio
async def test_generation_api_generate_now_and_cancel(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/a", datetime(2024, 3, 1, 9, tzinfo=UTC))
    app, services = _build_app(settings, session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        generate_response = await client.post(
            "/api/generation/generate-now",
            json={"dates": ["2024-03-01", "2024-03-04"]},
        )
        assert generate_response.status_code == 200
        payload = generate_response.json()
        assert payload["success"] is True
        assert payload["generated_count"] == 1
        assert payload["url_counts"] == {"2024-03-01": 1, "2024-03-04": 0}

        invalid_response = await client.post(
            "/api/generation/generate-now",
            json={"dates": ["2024-02-30"]},
        )
        assert invalid_response.status_code == 422

        empty_response = await client.post(
            "/api/generation/generate-now",
            json={"dates": []},
        )
        assert empty_response.status_code == 422

        too_many_response = await client.post(
            "/api/generation/generate-now",
            json={"dates": [f"2024-01-{day:02d}" for day in range(1, 32)] + ["2024-02-01"]},
        )
        assert too_many_response.status_code == 422

        await services.scheduler.schedule(["2024-03-05", "2024-03-06", "2024-03-07"])
        cancel_response = await client.post("/api/generation/cancel")
        assert cancel_response.status_code == 200
        assert cancel_response.json()["cancelled_tasks"] == 3
        assert cancel_response.json()["progress"]["in_progress"] is False
        assert cancel_response.json()["progress"]["total"] == 3


@pytest.mark.asyncio
async def test_generation_api_cleanup_and_provider_listing(
    settings,
    session_factory,
) -> None:
    app, services = _build_app(settings, session_factory)
    for day in (date(2024, 3, 1), date(2024, 4, 1)):
        await services.partition_repository.save(day, "<urlset/>", 1, built_at=NOW)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        scoped_response = await client.post(
            "/api/generation/cleanup", params={"date": "2024-03"}
        )
        assert scoped_response.status_code == 200
        assert scoped_response.json() == {"deleted_count": 1}

        invalid_response = await client.post(
            "/api/generation/cleanup", params={"date": "2024-99"}
        )
        assert invalid_response.status_code == 422

        all_response = await client.post("/api/generation/cleanup")
        assert all_response.json() == {"deleted_count": 1}

        providers_response = await client.get("/api/generation/providers")
        assert providers_response.status_code == 200
        slugs = {item["sitemap_slug"] for item in providers_response.json()}
        assert {"taxonomy-category", "author", "page"} <= slugs


@pytest.mark.asyncio
async def test_generation_api_reports_conflict_without_cron(
    settings,
    session_factory,
) -> None:
    app, _ = _build_app(
        settings, session_factory, dispatcher=InMemoryTaskDispatcher(enabled=False)
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        full_response = await client.post("/api/generation/full")
        assert full_response.status_code == 409

        direct_response = await client.post(
            "/api/generation/incremental", params={"background": "false"}
        )
        assert direct_response.status_code == 200
        assert direct_response.json()["method"] == "none"


@pytest.mark.asyncio
async def test_generation_api_is_unavailable_without_services() -> None:
    app = FastAPI()
    app.include_router(generation_router)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/generation/progress")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_generation_api_rejects_new_runs_while_one_is_queued(
    settings,
    session_factory,
) -> None:
    app, services = _build_app(settings, session_factory)
    await services.scheduler.schedule(["2024-07-10", "2024-07-11"])

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        generate_response = await client.post(
            "/api/generation/generate-now",
            json={"dates": ["2024-07-13"]},
        )
        direct_response = await client.post(
            "/api/generation/incremental", params={"background": "false"}
        )
        background_response = await client.post("/api/generation/incremental")

    assert generate_response.status_code == 409
    assert generate_response.json()["detail"] == "Generation is already in progress."
    assert direct_response.status_code == 409
    assert background_response.status_code == 409
    assert await services.scheduler.get_progress() == {
        "in_progress": True,
        "total": 2,
        "remaining": 2,
        "completed": 0,
    }


@pytest.mark.asyncio
async def test_generation_api_validates_partitions_and_reports_recent_counts(
    settings,
    session_factory,
) -> None:
    app, services = _build_app(settings, session_factory)
    valid_xml = (
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        "<url><loc>https://blog.example/a</loc></url></urlset>"
    )
    partitions = services.partition_repository
    await partitions.save(date(2024, 3, 1), valid_xml, 1, built_at=NOW)
    await partitions.save(date(2024, 3, 3), "<urlset/>", 0, built_at=NOW)
    services.stats = SitemapStatsService(
        partition_repository=partitions,
        today=lambda: date(2024, 3, 3),
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        validate_response = await client.post(
            "/api/generation/validate", params={"date": "2024-03"}
        )
        missing_year_response = await client.post(
            "/api/generation/validate", params={"date": "2023"}
        )
        invalid_query_response = await client.post(
            "/api/generation/validate", params={"date": "2024-99"}
        )
        recent_response = await client.get(
            "/api/generation/stats/recent", params={"days": 3}
        )
        too_many_days_response = await client.get(
            "/api/generation/stats/recent", params={"days": 1000}
        )

    assert validate_response.status_code == 200
    payload = validate_response.json()
    assert payload["total"] == 2
    assert payload["valid_count"] == 1
    assert payload["partitions"][0] == {
        "date": "2024-03-01",
        "valid": True,
        "url_count": 1,
        "errors": [],
        "warnings": [],
    }
    assert payload["partitions"][1]["valid"] is False
    assert missing_year_response.status_code == 404
    assert invalid_query_response.status_code == 422
    assert recent_response.status_code == 200
    assert recent_response.json() == {
        "days": 3,
        "total_urls": 1,
        "url_counts": {"2024-03-03": 0, "2024-03-02": 0, "2024-03-01": 1},
    }
    assert too_many_days_response.status_code == 422
