"""Date-partitioned provider for published posts."""

from __future__ import annotations

import logging

from sitemap_builder.domain import SitemapDate, UrlEntry, UrlSet, format_lastmod
from sitemap_builder.services.content_providers.base import (
    EntryPolicy,
    build_url_entry,
    coerce_sitemap_date,
)
from sitemap_builder.services.content_repository import (
    ContentRecord,
    ContentRepository,
)

DEFAULT_POSTS_PER_SITEMAP_PAGE = 500
DEFAULT_POST_CHANGEFREQ = "monthly"
DEFAULT_POST_PRIORITY = 0.7

_posts_logger = logging.getLogger("sitemap_builder.providers.posts")


class PostContentProvider:
    """Emit one URL per post published on the requested date."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        per_page: int = DEFAULT_POSTS_PER_SITEMAP_PAGE,
        policy: EntryPolicy[ContentRecord] | None = None,
    ) -> None:
        self._repository = repository
        self._per_page = per_page
        self._policy = policy or EntryPolicy.fixed(
            changefreq=DEFAULT_POST_CHANGEFREQ,
            priority=DEFAULT_POST_PRIORITY,
        )

    async def get_urls_for_date(self, sitemap_date: str | SitemapDate) -> UrlSet:
        parsed_date = coerce_sitemap_date(sitemap_date, provider="posts")
        if parsed_date is None:
            return UrlSet()

        records = await self._repository.get_items_for_date(
            parsed_date.to_date(),
            limit=self._per_page,
        )
        if not records:
            return UrlSet()

        entries: list[UrlEntry] = []
        skipped = 0
        for record in records:
            if self._policy.skip(record):
                skipped += 1
                continue
            entry = build_url_entry(
                provider="posts",
                loc=record.url,
                lastmod=format_lastmod(record.modified_at),
                changefreq=self._policy.changefreq(record),
                priority=self._policy.priority(record),
            )
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)

        _posts_logger.debug(
            "post_urls_collected",
            extra={
                "date": str(parsed_date),
                "url_count": len(entries),
                "skipped": skipped,
            },
        )
        return UrlSet(entries)

    def get_content_type(self) -> str:
        return "posts"

    def get_display_name(self) -> str:
        return "Posts"

    def get_description(self) -> str:
        return "Include published posts in date-based sitemaps"


__all__ = [
    "DEFAULT_POSTS_PER_SITEMAP_PAGE",
    "DEFAULT_POST_CHANGEFREQ",
    "DEFAULT_POST_PRIORITY",
    "PostContentProvider",
]
