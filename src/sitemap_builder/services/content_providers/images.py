"""Image enhancer that attaches image metadata to post URLs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sitemap_builder.domain import (
    ImageEntry,
    SitemapDate,
    SitemapValidationError,
    UrlEntry,
    UrlSet,
)
from sitemap_builder.services.content_repository import (
    ContentRepository,
    ImageRecord,
)

# Search engines read at most 1,000 images per page.
MAX_IMAGES_PER_URL = 1000

_images_logger = logging.getLogger("sitemap_builder.providers.images")


class ImageContentProvider:
    """Enhance existing URL entries with featured and inline images.

    The provider originates no URLs of its own: ``get_urls_for_date`` is
    always empty. Entries without images are returned unchanged.
    """

    def __init__(
        self,
        *,
        repository: ContentRepository,
        include_featured: bool = True,
        include_content: bool = True,
    ) -> None:
        self._repository = repository
        self._include_featured = include_featured
        self._include_content = include_content

    @property
    def enabled(self) -> bool:
        return self._include_featured or self._include_content

    async def get_urls_for_date(self, sitemap_date: str | SitemapDate) -> UrlSet:
        return UrlSet()

    async def enhance_url_entries(self, entries: Sequence[UrlEntry]) -> list[UrlEntry]:
        if not entries or not self.enabled:
            return list(entries)

        images_by_url = await self._repository.get_images_for_urls(
            [entry.loc for entry in entries],
            include_featured=self._include_featured,
            include_content=self._include_content,
        )
        if not images_by_url:
            return list(entries)

        enhanced: list[UrlEntry] = []
        enhanced_count = 0
        for entry in entries:
            images = self._image_entries(
                entry, images_by_url.get(entry.loc, [])
            )
            if len(images) == entry.image_count:
                enhanced.append(entry)
                continue
            enhanced.append(entry.with_images(images))
            enhanced_count += 1

        _images_logger.debug(
            "image_entries_attached",
            extra={"entries": len(entries), "enhanced": enhanced_count},
        )
        return enhanced

    @staticmethod
    def _image_entries(
        entry: UrlEntry,
        records: Sequence[ImageRecord],
    ) -> tuple[ImageEntry, ...]:
        images = list(entry.images)
        seen = {image.loc for image in images}
        for record in records:
            if len(images) >= MAX_IMAGES_PER_URL:
                break
            if record.url in seen:
                continue
            try:
                image = ImageEntry(
                    loc=record.url,
                    caption=record.caption,
                    geo_location=record.geo_location,
                    title=record.title,
                    license=record.license,
                )
            except SitemapValidationError as error:
                _images_logger.warning(
                    "image_entry_skipped",
                    extra={"loc": record.url[:256], "reason": str(error)},
                )
                continue
            seen.add(record.url)
            images.append(image)
        return tuple(images)

    def get_content_type(self) -> str:
        return "images"

    def get_display_name(self) -> str:
        return "Images"

    def get_description(self) -> str:
        return "Include images from posts in sitemaps"


__all__ = ["ImageContentProvider", "MAX_IMAGES_PER_URL"]
