"""Integration tests for the public sitemap XML routes."""

from __future__ import annotations

from datetime import UTC, datetime

from lxml import etree
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sitemap_builder.api import sitemaps_router
from sitemap_builder.services.container import SitemapServices, build_sitemap_services
from sitemap_builder.services.option_store import InMemoryOptionStore
from sitemap_builder.services.site_eligibility import StaticSiteEligibility
from sitemap_builder.services.sitemap_xml import SITEMAP_NAMESPACE, parse_url_set
from sitemap_builder.services.task_dispatcher import InMemoryTaskDispatcher

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
NAMESPACES = {"sm": SITEMAP_NAMESPACE}


def _build_app(
    settings,
    session_factory,
    eligibility: StaticSiteEligibility,
) -> tuple[FastAPI, SitemapServices]:
    services = build_sitemap_services(
        settings,
        dispatcher=InMemoryTaskDispatcher(clock=lambda: NOW),
        session_factory=session_factory,
        store=InMemoryOptionStore(),
        eligibility=eligibility,
        clock=lambda: NOW,
    )
    app = FastAPI()
    app.include_router(sitemaps_router)
    app.state.sitemap_services = services
    return app, services


@pytest.mark.asyncio
async def test_sitemap_routes_serve_index_partitions_and_archive_pages(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content(
        "https://blog.example/hello",
        datetime(2024, 3, 1, 9, tzinfo=UTC),
        author="ada",
        terms=[("category", "news")],
    )
    app, services = _build_app(settings, session_factory, StaticSiteEligibility(True))
    await services.scheduler.generate_now(["2024-03-01"])

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        index_response = await client.get("/sitemap.xml")
        assert index_response.status_code == 200
        assert index_response.headers["content-type"].startswith("application/xml")
        index_root = etree.fromstring(index_response.content)
        assert index_root.xpath("sm:sitemap/sm:loc/text()", namespaces=NAMESPACES) == [
            "https://blog.example/sitemap.xml?yyyy=2024&mm=03&dd=01",
            "https://blog.example/sitemaps/taxonomy-category-1.xml",
            "https://blog.example/sitemaps/author-1.xml",
        ]
        assert index_root.xpath(
            "sm:sitemap[1]/sm:lastmod/text()", namespaces=NAMESPACES
        ) == ["2024-06-01T12:00:00+00:00"]

        partition_response = await client.get(
            "/sitemap.xml", params={"yyyy": "2024", "mm": "03", "dd": "01"}
        )
        assert partition_response.status_code == 200
        [entry] = parse_url_set(partition_response.content)
        assert entry.loc == "https://blog.example/hello"

        unbuilt_response = await client.get(
            "/sitemap.xml", params={"yyyy": "2024", "mm": "03", "dd": "02"}
        )
        assert unbuilt_response.status_code == 404

        partial_response = await client.get("/sitemap.xml", params={"yyyy": "2024"})
        assert partial_response.status_code == 422

        impossible_response = await client.get(
            "/sitemap.xml", params={"yyyy": "2023", "mm": "02", "dd": "29"}
        )
        assert impossible_response.status_code == 422

        author_response = await client.get("/sitemaps/author-1.xml")
        assert author_response.status_code == 200
        assert [item.loc for item in parse_url_set(author_response.content)] == [
            "https://blog.example/author/ada/"
        ]

        beyond_response = await client.get("/sitemaps/author-2.xml")
        assert beyond_response.status_code == 404

        unknown_response = await client.get("/sitemaps/videos-1.xml")
        assert unknown_response.status_code == 404

        malformed_response = await client.get("/sitemaps/author.xml")
        assert malformed_response.status_code == 404


@pytest.mark.asyncio
async def test_sitemap_routes_hide_everything_for_private_sites(
    settings,
    session_factory,
) -> None:
    app, _ = _build_app(settings, session_factory, StaticSiteEligibility(False))

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        index_response = await client.get("/sitemap.xml")
        archive_response = await client.get("/sitemaps/page-1.xml")

    assert index_response.status_code == 404
    assert archive_response.status_code == 404
