"""Validation errors raised by sitemap value objects."""

from __future__ import annotations


class SitemapValidationError(ValueError):
    """Base exception for values that violate the sitemap protocol."""


class InvalidSitemapDateError(SitemapValidationError):
    """Raised when a date string or triple is not a real calendar date."""


class InvalidUrlEntryError(SitemapValidationError):
    """Raised when a URL entry violates protocol constraints."""


class InvalidImageEntryError(SitemapValidationError):
    """Raised when image metadata violates protocol constraints."""


class InvalidIndexEntryError(SitemapValidationError):
    """Raised when a sitemap index entry violates protocol constraints."""


class CollectionCapacityError(SitemapValidationError):
    """Raised when a bounded collection cannot accept more entries."""


__all__ = [
    "CollectionCapacityError",
    "InvalidImageEntryError",
    "InvalidIndexEntryError",
    "InvalidSitemapDateError",
    "InvalidUrlEntryError",
    "SitemapValidationError",
]
