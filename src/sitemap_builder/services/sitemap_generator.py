"""Aggregate content provider output into one partition's entries."""

from __future__ import annotations

import logging

from sitemap_builder.domain import SitemapContent, SitemapDate, UrlEntry
from sitemap_builder.services.content_providers import ContentProviderRegistry

_generator_logger = logging.getLogger("sitemap_builder.generator")


class SitemapGenerator:
    """Combine date providers, then let enhancers decorate the result.

    Entries past the protocol ceiling are dropped; a URL already produced by
    an earlier provider is not repeated.
    """

    def __init__(self, *, registry: ContentProviderRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ContentProviderRegistry:
        return self._registry

    async def generate_content(self, sitemap_date: SitemapDate) -> SitemapContent:
        entries: list[UrlEntry] = []
        seen: set[str] = set()
        for provider in self._registry.date_providers:
            url_set = await provider.get_urls_for_date(sitemap_date)
            for entry in url_set:
                if entry.loc in seen:
                    continue
                seen.add(entry.loc)
                entries.append(entry)

        for enhancer in self._registry.enhancers:
            entries = await enhancer.enhance_url_entries(entries)

        content = SitemapContent(entries)
        _generator_logger.debug(
            "sitemap_content_generated",
            extra={"date": str(sitemap_date), "url_count": content.count()},
        )
        return content


__all__ = ["SitemapGenerator"]
