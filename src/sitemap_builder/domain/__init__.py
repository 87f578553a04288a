"""Sitemap domain value objects."""

from sitemap_builder.domain.collections import (
    DEFAULT_MAX_ENTRIES,
    SitemapContent,
    SitemapIndexCollection,
    UrlSet,
)
from sitemap_builder.domain.entries import (
    CHANGEFREQ_VALUES,
    MAX_URL_LENGTH,
    ImageEntry,
    SitemapIndexEntry,
    UrlEntry,
    format_lastmod,
)
from sitemap_builder.domain.errors import (
    CollectionCapacityError,
    InvalidImageEntryError,
    InvalidIndexEntryError,
    InvalidSitemapDateError,
    InvalidUrlEntryError,
    SitemapValidationError,
)
from sitemap_builder.domain.generation_progress import GenerationProgress
from sitemap_builder.domain.sitemap_date import SitemapDate

__all__ = [
    "CHANGEFREQ_VALUES",
    "CollectionCapacityError",
    "DEFAULT_MAX_ENTRIES",
    "GenerationProgress",
    "ImageEntry",
    "InvalidImageEntryError",
    "InvalidIndexEntryError",
    "InvalidSitemapDateError",
    "InvalidUrlEntryError",
    "MAX_URL_LENGTH",
    "SitemapContent",
    "SitemapDate",
    "SitemapIndexCollection",
    "SitemapIndexEntry",
    "SitemapValidationError",
    "UrlEntry",
    "UrlSet",
    "format_lastmod",
]
