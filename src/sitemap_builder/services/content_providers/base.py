"""Content provider contracts and shared entry-building helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar, runtime_checkable

from sitemap_builder.domain import (
    SitemapDate,
    SitemapValidationError,
    UrlEntry,
    UrlSet,
)

RecordT = TypeVar("RecordT")

_provider_logger = logging.getLogger("sitemap_builder.providers")


def _never_skip(_: object) -> bool:
    return False


@dataclass(slots=True, frozen=True)
class EntryPolicy(Generic[RecordT]):
    """Pluggable skip rule and changefreq/priority defaults for one provider."""

    changefreq: Callable[[RecordT], str | None]
    priority: Callable[[RecordT], float | None]
    skip: Callable[[RecordT], bool] = field(default=_never_skip)

    @classmethod
    def fixed(
        cls,
        *,
        changefreq: str | None,
        priority: float | None,
        skip: Callable[[RecordT], bool] | None = None,
    ) -> EntryPolicy[RecordT]:
        return cls(
            changefreq=lambda _record: changefreq,
            priority=lambda _record: priority,
            skip=skip or _never_skip,
        )


@runtime_checkable
class ContentProvider(Protocol):
    """Metadata shared by every provider."""

    def get_content_type(self) -> str: ...

    def get_display_name(self) -> str: ...

    def get_description(self) -> str: ...


@runtime_checkable
class DateContentProvider(ContentProvider, Protocol):
    """Provider producing the URLs published on one calendar date."""

    async def get_urls_for_date(self, sitemap_date: str | SitemapDate) -> UrlSet: ...


@runtime_checkable
class UrlEnhancer(Protocol):
    """Provider that decorates entries produced by other providers."""

    async def enhance_url_entries(
        self, entries: Sequence[UrlEntry]
    ) -> list[UrlEntry]: ...


@runtime_checkable
class PaginatedContentProvider(ContentProvider, Protocol):
    """Provider for content without a publication date, served in pages."""

    async def get_urls(self, page: int = 1, per_page: int | None = None) -> UrlSet: ...

    async def get_total_count(self) -> int: ...

    async def get_page_count(self, per_page: int | None = None) -> int: ...

    def get_sitemap_slug(self) -> str: ...

    def is_enabled(self) -> bool: ...


def coerce_sitemap_date(
    sitemap_date: str | SitemapDate,
    *,
    provider: str,
) -> SitemapDate | None:
    """Return a validated date, or None after logging when it is malformed."""

    if isinstance(sitemap_date, SitemapDate):
        return sitemap_date
    try:
        return SitemapDate.from_string(sitemap_date)
    except SitemapValidationError:
        _provider_logger.warning(
            "provider_invalid_date",
            extra={"provider": provider, "date": sitemap_date},
        )
        return None


def build_url_entry(
    *,
    provider: str,
    loc: str,
    lastmod: str | None,
    changefreq: str | None,
    priority: float | None,
) -> UrlEntry | None:
    """Build an entry, logging and dropping it when it violates the protocol."""

    try:
        return UrlEntry(
            loc=loc,
            lastmod=lastmod,
            changefreq=changefreq,
            priority=priority,
        )
    except SitemapValidationError as error:
        _provider_logger.warning(
            "provider_entry_skipped",
            extra={"provider": provider, "loc": loc[:256], "reason": str(error)},
        )
        return None


__all__ = [
    "ContentProvider",
    "DateContentProvider",
    "EntryPolicy",
    "PaginatedContentProvider",
    "UrlEnhancer",
    "build_url_entry",
    "coerce_sitemap_date",
]
