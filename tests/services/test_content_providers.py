"""Tests for date-partitioned, enhancing and paginated content providers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from sitemap_builder.domain import SitemapDate, UrlEntry
from sitemap_builder.services.content_providers import (
    AuthorContentProvider,
    ContentProviderRegistry,
    EntryPolicy,
    ImageContentProvider,
    PageContentProvider,
    PostContentProvider,
    TaxonomyContentProvider,
)
from sitemap_builder.services.content_repository import (
    ContentRecord,
    ContentRepository,
)
from sitemap_builder.services.sitemap_generator import SitemapGenerator

PUBLISHED = datetime(2024, 3, 15, 8, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_post_provider_emits_one_entry_per_post(
    session_factory,
    add_content,
) -> None:
    for index in range(3):
        await add_content(
            f"https://blog.example/post-{index}",
            PUBLISHED + timedelta(minutes=index),
        )
    await add_content("https://blog.example/other-day", PUBLISHED + timedelta(days=1))

    provider = PostContentProvider(
        repository=ContentRepository(session_factory=session_factory)
    )

    url_set = await provider.get_urls_for_date("2024-03-15")

    assert url_set.count() == 3
    first = url_set.entries[0]
    assert first.loc == "https://blog.example/post-0"
    assert first.lastmod == "2024-03-15T08:00:00+00:00"
    assert first.changefreq == "monthly"
    assert first.priority == 0.7


@pytest.mark.asyncio
async def test_post_provider_returns_empty_set_for_bad_or_empty_dates(
    session_factory,
) -> None:
    provider = PostContentProvider(
        repository=ContentRepository(session_factory=session_factory)
    )

    assert (await provider.get_urls_for_date("2024-02-30")).is_empty()
    assert (await provider.get_urls_for_date(SitemapDate(2024, 1, 1))).is_empty()


@pytest.mark.asyncio
async def test_post_provider_applies_policy_and_per_page_limit(
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/keep", PUBLISHED)
    await add_content("https://blog.example/skip-me", PUBLISHED + timedelta(minutes=1))
    await add_content("https://blog.example/late", PUBLISHED + timedelta(minutes=2))

    policy: EntryPolicy[ContentRecord] = EntryPolicy(
        changefreq=lambda record: "daily",
        priority=lambda record: 0.9 if "keep" in record.url else 0.1,
        skip=lambda record: "skip-me" in record.url,
    )
    provider = PostContentProvider(
        repository=ContentRepository(session_factory=session_factory),
        per_page=2,
        policy=policy,
    )

    url_set = await provider.get_urls_for_date("2024-03-15")

    assert [entry.loc for entry in url_set] == ["https://blog.example/keep"]
    assert url_set.entries[0].priority == 0.9
    assert url_set.entries[0].changefreq == "daily"


@pytest.mark.asyncio
async def test_image_provider_attaches_featured_first_and_skips_duplicates(
    session_factory,
    add_content,
) -> None:
    await add_content(
        "https://blog.example/gallery",
        PUBLISHED,
        images=[
            ("https://blog.example/inline.png", False),
            ("https://blog.example/hero.png", True),
        ],
    )
    await add_content("https://blog.example/plain", PUBLISHED)

    repository = ContentRepository(session_factory=session_factory)
    provider = ImageContentProvider(repository=repository)
    entries = [
        UrlEntry(loc="https://blog.example/gallery"),
        UrlEntry(loc="https://blog.example/plain"),
    ]

    enhanced = await provider.enhance_url_entries(entries)

    assert [image.loc for image in enhanced[0].images] == [
        "https://blog.example/hero.png",
        "https://blog.example/inline.png",
    ]
    assert enhanced[1] is entries[1]
    assert not entries[0].has_images
    assert (await provider.get_urls_for_date("2024-03-15")).is_empty()

    again = await provider.enhance_url_entries(enhanced)
    assert again[0].image_count == 2

    featured_only = ImageContentProvider(repository=repository, include_content=False)
    [gallery, _] = await featured_only.enhance_url_entries(entries)
    assert [image.loc for image in gallery.images] == ["https://blog.example/hero.png"]


@pytest.mark.asyncio
async def test_paginated_providers_split_archives_into_pages(
    session_factory,
    add_content,
) -> None:
    for index in range(5):
        await add_content(
            f"https://blog.example/post-{index}",
            PUBLISHED,
            author=f"writer{index}",
            terms=[("category", f"topic-{index}")],
        )
    await add_content("https://blog.example/about/", PUBLISHED, content_type="page")

    repository = ContentRepository(session_factory=session_factory)
    taxonomy = TaxonomyContentProvider(
        repository=repository, taxonomy="category", default_per_page=2
    )
    authors = AuthorContentProvider(repository=repository, default_per_page=2)
    pages = PageContentProvider(repository=repository)

    assert taxonomy.get_sitemap_slug() == "taxonomy-category"
    assert await taxonomy.get_total_count() == 5
    assert await taxonomy.get_page_count() == 3
    assert (await taxonomy.get_urls(page=3)).count() == 1
    assert (await taxonomy.get_urls(page=4)).is_empty()
    assert (await taxonomy.get_urls(page=0)).is_empty()
    assert (await taxonomy.get_urls(page=1, per_page=5)).count() == 5

    first_author_page = await authors.get_urls(page=1)
    assert [entry.loc for entry in first_author_page] == [
        "https://blog.example/author/writer0/",
        "https://blog.example/author/writer1/",
    ]
    assert first_author_page.entries[0].changefreq == "weekly"

    assert await pages.get_page_count() == 1
    [page_entry] = (await pages.get_urls()).entries
    assert page_entry.loc == "https://blog.example/about/"
    assert page_entry.priority == 0.6

    empty_tags = TaxonomyContentProvider(repository=repository, taxonomy="post_tag")
    assert await empty_tags.get_page_count() == 0


@pytest.mark.asyncio
async def test_registry_from_settings_and_generator_deduplicate_urls(
    session_factory,
    add_content,
    settings,
) -> None:
    await add_content(
        "https://blog.example/hello",
        PUBLISHED,
        images=[("https://blog.example/hero.png", True)],
        terms=[("category", "news")],
    )

    repository = ContentRepository(session_factory=session_factory)
    registry = ContentProviderRegistry.from_settings(settings, repository=repository)

    statuses = {status.content_type: status for status in registry.list_statuses()}
    assert set(statuses) == {"posts", "images", "taxonomies", "authors", "pages"}
    assert statuses["images"].kind == "enhancer"
    assert registry.get_paginated_provider("taxonomy-category") is not None
    assert registry.get_paginated_provider("missing") is None

    duplicate_registry = ContentProviderRegistry(
        date_providers=[
            PostContentProvider(repository=repository),
            PostContentProvider(repository=repository),
        ],
        enhancers=registry.enhancers,
    )
    content = await SitemapGenerator(registry=duplicate_registry).generate_content(
        SitemapDate(2024, 3, 15)
    )

    assert content.count() == 1
    [entry] = content.entries
    assert [image.loc for image in entry.images] == ["https://blog.example/hero.png"]
