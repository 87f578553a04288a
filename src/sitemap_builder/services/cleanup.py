"""Removal of built partitions whose date no longer has published content."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from sitemap_builder.services.content_repository import ContentRepository
from sitemap_builder.services.date_queries import DateQuery, filter_matching_dates
from sitemap_builder.services.partition_repository import SitemapPartitionRepository

_cleanup_logger = logging.getLogger("sitemap_builder.cleanup")


class SitemapCleanupService:
    def __init__(
        self,
        *,
        content_repository: ContentRepository,
        partition_repository: SitemapPartitionRepository,
    ) -> None:
        self._content_repository = content_repository
        self._partition_repository = partition_repository

    async def find_orphaned_dates(self) -> list[date]:
        built_dates = await self._partition_repository.get_all_dates()
        if not built_dates:
            return []
        content_dates = set(await self._content_repository.get_dates_with_content())
        return [day for day in built_dates if day not in content_dates]

    async def cleanup_all_orphaned_sitemaps(self) -> int:
        """Delete every partition whose date has no published content."""

        orphaned = await self.find_orphaned_dates()
        deleted = await self._partition_repository.delete_for_dates(orphaned)
        if deleted:
            _cleanup_logger.info(
                "orphaned_partitions_deleted",
                extra={
                    "deleted": deleted,
                    "dates": [day.isoformat() for day in orphaned],
                },
            )
        return deleted

    async def cleanup_orphaned_sitemaps(
        self,
        date_queries: Iterable[DateQuery | str],
    ) -> int:
        """Delete orphaned partitions restricted to the queried years, months or days."""

        queries = [
            query if isinstance(query, DateQuery) else DateQuery.parse(query)
            for query in date_queries
        ]
        if not queries:
            return 0

        candidates = filter_matching_dates(queries, await self.find_orphaned_dates())
        deleted = 0
        for day in candidates:
            if await self._content_repository.date_has_content(day):
                continue
            if await self._partition_repository.delete_by_date(day):
                deleted += 1

        _cleanup_logger.info(
            "orphaned_partitions_cleanup_finished",
            extra={
                "queries": len(queries),
                "candidates": len(candidates),
                "deleted": deleted,
            },
        )
        return deleted


__all__ = ["SitemapCleanupService"]
