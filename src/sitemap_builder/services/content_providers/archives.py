"""Paginated providers for taxonomy, author, and page archives."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sitemap_builder.domain import (
    DEFAULT_MAX_ENTRIES,
    UrlEntry,
    UrlSet,
    format_lastmod,
)
from sitemap_builder.services.content_providers.base import (
    EntryPolicy,
    build_url_entry,
)
from sitemap_builder.services.content_repository import (
    ArchiveRecord,
    ContentRecord,
    ContentRepository,
)

DEFAULT_PER_PAGE = 2000
DEFAULT_ARCHIVE_CHANGEFREQ = "weekly"
DEFAULT_ARCHIVE_PRIORITY = 0.5
DEFAULT_PAGE_PRIORITY = 0.6

RecordT = TypeVar("RecordT", ArchiveRecord, ContentRecord)

_archive_logger = logging.getLogger("sitemap_builder.providers.archives")


class _PaginatedProvider(ABC, Generic[RecordT]):
    """Shared paging arithmetic and entry building for archive providers."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        policy: EntryPolicy[RecordT],
        default_per_page: int = DEFAULT_PER_PAGE,
        enabled: bool = True,
    ) -> None:
        self._repository = repository
        self._policy = policy
        self._default_per_page = default_per_page
        self._enabled = enabled

    def is_enabled(self) -> bool:
        return self._enabled

    def _resolve_per_page(self, per_page: int | None) -> int:
        value = per_page if per_page is not None else self._default_per_page
        return min(max(1, value), DEFAULT_MAX_ENTRIES)

    async def get_urls(self, page: int = 1, per_page: int | None = None) -> UrlSet:
        if not self._enabled or page < 1:
            return UrlSet()

        size = self._resolve_per_page(per_page)
        records = await self._fetch(offset=(page - 1) * size, limit=size)
        entries: list[UrlEntry] = []
        for record in records:
            if self._policy.skip(record):
                continue
            entry = build_url_entry(
                provider=self.get_sitemap_slug(),
                loc=record.url,
                lastmod=self._lastmod(record),
                changefreq=self._policy.changefreq(record),
                priority=self._policy.priority(record),
            )
            if entry is not None:
                entries.append(entry)

        _archive_logger.debug(
            "archive_urls_collected",
            extra={
                "slug": self.get_sitemap_slug(),
                "page": page,
                "url_count": len(entries),
            },
        )
        return UrlSet(entries)

    async def get_total_count(self) -> int:
        if not self._enabled:
            return 0
        return await self._count()

    async def get_page_count(self, per_page: int | None = None) -> int:
        total = await self.get_total_count()
        if total == 0:
            return 0
        return math.ceil(total / self._resolve_per_page(per_page))

    @abstractmethod
    async def _fetch(self, *, offset: int, limit: int) -> list[RecordT]: ...

    @abstractmethod
    async def _count(self) -> int: ...

    @abstractmethod
    def _lastmod(self, record: RecordT) -> str | None: ...

    @abstractmethod
    def get_sitemap_slug(self) -> str: ...


def _archive_lastmod(record: ArchiveRecord) -> str | None:
    if record.last_modified is None:
        return None
    return format_lastmod(record.last_modified)


class TaxonomyContentProvider(_PaginatedProvider[ArchiveRecord]):
    """Archive pages of one taxonomy's terms that have published content."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        taxonomy: str,
        policy: EntryPolicy[ArchiveRecord] | None = None,
        default_per_page: int = DEFAULT_PER_PAGE,
        enabled: bool = True,
    ) -> None:
        super().__init__(
            repository=repository,
            policy=policy
            or EntryPolicy.fixed(
                changefreq=DEFAULT_ARCHIVE_CHANGEFREQ,
                priority=DEFAULT_ARCHIVE_PRIORITY,
            ),
            default_per_page=default_per_page,
            enabled=enabled,
        )
        self._taxonomy = taxonomy

    @property
    def taxonomy(self) -> str:
        return self._taxonomy

    async def _fetch(self, *, offset: int, limit: int) -> list[ArchiveRecord]:
        return await self._repository.get_terms(
            self._taxonomy, offset=offset, limit=limit
        )

    async def _count(self) -> int:
        return await self._repository.count_terms(self._taxonomy)

    def _lastmod(self, record: ArchiveRecord) -> str | None:
        return _archive_lastmod(record)

    def get_sitemap_slug(self) -> str:
        return f"taxonomy-{self._taxonomy}"

    def get_content_type(self) -> str:
        return "taxonomies"

    def get_display_name(self) -> str:
        return f"Taxonomy: {self._taxonomy}"

    def get_description(self) -> str:
        return f"Include {self._taxonomy} archive pages in sitemaps"


class AuthorContentProvider(_PaginatedProvider[ArchiveRecord]):
    """Archive pages of authors with published content."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        policy: EntryPolicy[ArchiveRecord] | None = None,
        default_per_page: int = DEFAULT_PER_PAGE,
        enabled: bool = True,
    ) -> None:
        super().__init__(
            repository=repository,
            policy=policy
            or EntryPolicy.fixed(
                changefreq=DEFAULT_ARCHIVE_CHANGEFREQ,
                priority=DEFAULT_ARCHIVE_PRIORITY,
            ),
            default_per_page=default_per_page,
            enabled=enabled,
        )

    async def _fetch(self, *, offset: int, limit: int) -> list[ArchiveRecord]:
        return await self._repository.get_authors(offset=offset, limit=limit)

    async def _count(self) -> int:
        return await self._repository.count_authors()

    def _lastmod(self, record: ArchiveRecord) -> str | None:
        return _archive_lastmod(record)

    def get_sitemap_slug(self) -> str:
        return "author"

    def get_content_type(self) -> str:
        return "authors"

    def get_display_name(self) -> str:
        return "Authors"

    def get_description(self) -> str:
        return "Include author archive pages in sitemaps"


class PageContentProvider(_PaginatedProvider[ContentRecord]):
    """Published standalone pages, which are not partitioned by date."""

    def __init__(
        self,
        *,
        repository: ContentRepository,
        policy: EntryPolicy[ContentRecord] | None = None,
        default_per_page: int = DEFAULT_PER_PAGE,
        enabled: bool = True,
    ) -> None:
        super().__init__(
            repository=repository,
            policy=policy
            or EntryPolicy.fixed(
                changefreq=DEFAULT_ARCHIVE_CHANGEFREQ,
                priority=DEFAULT_PAGE_PRIORITY,
            ),
            default_per_page=default_per_page,
            enabled=enabled,
        )

    async def _fetch(self, *, offset: int, limit: int) -> list[ContentRecord]:
        return await self._repository.get_pages(offset=offset, limit=limit)

    async def _count(self) -> int:
        return await self._repository.count_pages()

    def _lastmod(self, record: ContentRecord) -> str | None:
        return format_lastmod(record.modified_at)

    def get_sitemap_slug(self) -> str:
        return "page"

    def get_content_type(self) -> str:
        return "pages"

    def get_display_name(self) -> str:
        return "Pages"

    def get_description(self) -> str:
        return "Include published pages in sitemaps"


__all__ = [
    "AuthorContentProvider",
    "DEFAULT_ARCHIVE_CHANGEFREQ",
    "DEFAULT_ARCHIVE_PRIORITY",
    "DEFAULT_PAGE_PRIORITY",
    "DEFAULT_PER_PAGE",
    "PageContentProvider",
    "TaxonomyContentProvider",
]
