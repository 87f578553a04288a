"""Sitemap index assembly and public sitemap document lookup."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from sitemap_builder.domain import (
    SitemapDate,
    SitemapIndexCollection,
    SitemapIndexEntry,
    format_lastmod,
)
from sitemap_builder.services.content_providers import ContentProviderRegistry
from sitemap_builder.services.partition_repository import SitemapPartitionRepository
from sitemap_builder.services.sitemap_xml import format_sitemap_index, format_url_set

_index_logger = logging.getLogger("sitemap_builder.sitemap_index")


class SitemapIndexBuilder:
    """Reference every built partition and every paginated provider page."""

    def __init__(
        self,
        *,
        site_url: str,
        partition_repository: SitemapPartitionRepository,
        registry: ContentProviderRegistry,
    ) -> None:
        self._site_url = site_url.rstrip("/")
        self._partition_repository = partition_repository
        self._registry = registry

    def partition_url(self, sitemap_date: SitemapDate) -> str:
        return f"{self._site_url}/sitemap.xml?{urlencode(sitemap_date.to_url_params())}"

    def paginated_url(self, slug: str, page: int) -> str:
        return f"{self._site_url}/sitemaps/{slug}-{page}.xml"

    async def build(self) -> SitemapIndexCollection:
        entries: list[SitemapIndexEntry] = []
        build_times = await self._partition_repository.get_build_times()
        for partition_date in sorted(build_times):
            entries.append(
                SitemapIndexEntry(
                    loc=self.partition_url(SitemapDate.from_date(partition_date)),
                    lastmod=format_lastmod(build_times[partition_date]),
                )
            )

        for provider in self._registry.paginated_providers:
            page_count = await provider.get_page_count()
            slug = provider.get_sitemap_slug()
            entries.extend(
                SitemapIndexEntry(loc=self.paginated_url(slug, page))
                for page in range(1, page_count + 1)
            )

        _index_logger.debug(
            "sitemap_index_built",
            extra={"partitions": len(build_times), "entries": len(entries)},
        )
        return SitemapIndexCollection(entries)

    async def render_index(self) -> str:
        return format_sitemap_index(await self.build())

    async def render_partition(self, sitemap_date: SitemapDate) -> str | None:
        partition = await self._partition_repository.find_by_date(sitemap_date.to_date())
        if partition is None:
            return None
        return partition.xml_content

    async def render_paginated(self, slug: str, page: int) -> str | None:
        provider = self._registry.get_paginated_provider(slug)
        if provider is None or page < 1:
            return None
        if page > await provider.get_page_count():
            return None
        return format_url_set(await provider.get_urls(page=page))


__all__ = ["SitemapIndexBuilder"]
