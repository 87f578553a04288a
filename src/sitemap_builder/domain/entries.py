"""Validated sitemap entry value objects."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

from sitemap_builder.domain.errors import (
    InvalidImageEntryError,
    InvalidIndexEntryError,
    InvalidUrlEntryError,
    SitemapValidationError,
)

MAX_URL_LENGTH = 2048
MAX_TEXT_LENGTH = 2048

CHANGEFREQ_VALUES = frozenset(
    {"always", "hourly", "daily", "weekly", "monthly", "yearly", "never"}
)

_LASTMOD_PATTERN = re.compile(
    r"^[0-9]{4}-[0-9]{2}-[0-9]{2}(T[0-9]{2}:[0-9]{2}:[0-9]{2}[+-][0-9]{2}:[0-9]{2})?$"
)


def is_valid_http_url(url: str) -> bool:
    parsed_url = urlsplit(url)
    return parsed_url.scheme in {"http", "https"} and bool(parsed_url.netloc)


def _validate_url(
    value: str,
    *,
    field_name: str,
    error_type: type[SitemapValidationError],
) -> None:
    if not isinstance(value, str) or not value:
        raise error_type(f"{field_name} must be a non-empty string")
    if len(value) > MAX_URL_LENGTH:
        raise error_type(
            f"{field_name} exceeds {MAX_URL_LENGTH} characters: {len(value)}"
        )
    if not is_valid_http_url(value):
        raise error_type(f"{field_name} is not a valid absolute URL: {value!r}")


def _validate_text(
    value: str | None,
    *,
    field_name: str,
    error_type: type[SitemapValidationError],
) -> None:
    if value is None:
        return
    if len(value) > MAX_TEXT_LENGTH:
        raise error_type(
            f"{field_name} exceeds {MAX_TEXT_LENGTH} characters: {len(value)}"
        )


def _is_valid_lastmod(value: str) -> bool:
    if _LASTMOD_PATTERN.match(value) is None:
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def format_lastmod(value: datetime) -> str:
    """Render a datetime in the ``YYYY-MM-DDTHH:MM:SS+HH:MM`` lastmod form."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.replace(microsecond=0).isoformat()


@dataclass(slots=True, frozen=True)
class ImageEntry:
    """Image metadata attached to a URL entry."""

    loc: str
    caption: str | None = None
    geo_location: str | None = None
    title: str | None = None
    license: str | None = None

    def __post_init__(self) -> None:
        _validate_url(
            self.loc, field_name="Image loc", error_type=InvalidImageEntryError
        )
        _validate_text(
            self.caption, field_name="Image caption", error_type=InvalidImageEntryError
        )
        _validate_text(
            self.geo_location,
            field_name="Image geo_location",
            error_type=InvalidImageEntryError,
        )
        _validate_text(
            self.title, field_name="Image title", error_type=InvalidImageEntryError
        )
        if self.license is not None:
            _validate_url(
                self.license,
                field_name="Image license",
                error_type=InvalidImageEntryError,
            )

    def to_dict(self) -> dict[str, str]:
        payload = {
            "loc": self.loc,
            "caption": self.caption,
            "geo_location": self.geo_location,
            "title": self.title,
            "license": self.license,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass(slots=True, frozen=True)
class UrlEntry:
    """One ``<url>`` element; equality ignores attached images."""

    loc: str
    lastmod: str | None = None
    changefreq: str | None = None
    priority: float | None = None
    images: tuple[ImageEntry, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        _validate_url(self.loc, field_name="URL loc", error_type=InvalidUrlEntryError)

        if self.lastmod is not None and not _is_valid_lastmod(self.lastmod):
            raise InvalidUrlEntryError(f"Invalid lastmod value: {self.lastmod!r}")

        if self.changefreq is not None and self.changefreq not in CHANGEFREQ_VALUES:
            raise InvalidUrlEntryError(
                f"Invalid changefreq value: {self.changefreq!r}"
            )

        if self.priority is not None:
            if not 0.0 <= float(self.priority) <= 1.0:
                raise InvalidUrlEntryError(
                    f"Priority must be between 0.0 and 1.0: {self.priority}"
                )
            object.__setattr__(self, "priority", float(self.priority))

        images = tuple(self.images)
        for image in images:
            if not isinstance(image, ImageEntry):
                raise InvalidUrlEntryError("Images must be ImageEntry instances")
        object.__setattr__(self, "images", images)

    @property
    def has_images(self) -> bool:
        return bool(self.images)

    @property
    def image_count(self) -> int:
        return len(self.images)

    def with_images(self, images: tuple[ImageEntry, ...]) -> UrlEntry:
        return UrlEntry(
            loc=self.loc,
            lastmod=self.lastmod,
            changefreq=self.changefreq,
            priority=self.priority,
            images=images,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"loc": self.loc}
        if self.lastmod is not None:
            payload["lastmod"] = self.lastmod
        if self.changefreq is not None:
            payload["changefreq"] = self.changefreq
        if self.priority is not None:
            payload["priority"] = self.priority
        if self.images:
            payload["images"] = [image.to_dict() for image in self.images]
        return payload


@dataclass(slots=True, frozen=True)
class SitemapIndexEntry:
    """One ``<sitemap>`` reference inside a sitemap index."""

    loc: str
    lastmod: str | None = None

    def __post_init__(self) -> None:
        _validate_url(
            self.loc, field_name="Sitemap loc", error_type=InvalidIndexEntryError
        )
        if self.lastmod is not None and not self.lastmod.strip():
            raise InvalidIndexEntryError("Sitemap lastmod cannot be empty")

    def to_dict(self) -> dict[str, str]:
        payload = {"loc": self.loc}
        if self.lastmod is not None:
            payload["lastmod"] = self.lastmod
        return payload


__all__ = [
    "CHANGEFREQ_VALUES",
    "ImageEntry",
    "MAX_TEXT_LENGTH",
    "MAX_URL_LENGTH",
    "SitemapIndexEntry",
    "UrlEntry",
    "format_lastmod",
    "is_valid_http_url",
]
