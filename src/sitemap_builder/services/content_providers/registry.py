"""Content provider registry selected by configuration."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sitemap_builder.config import Settings
from sitemap_builder.services.content_providers.archives import (
    AuthorContentProvider,
    PageContentProvider,
    TaxonomyContentProvider,
)
from sitemap_builder.services.content_providers.base import (
    ContentProvider,
    DateContentProvider,
    PaginatedContentProvider,
    UrlEnhancer,
)
from sitemap_builder.services.content_providers.images import ImageContentProvider
from sitemap_builder.services.content_providers.posts import PostContentProvider
from sitemap_builder.services.content_repository import ContentRepository

_registry_logger = logging.getLogger("sitemap_builder.providers.registry")


@dataclass(slots=True, frozen=True)
class ProviderStatus:
    """Operator-facing description of one registered provider."""

    content_type: str
    display_name: str
    description: str
    kind: str
    enabled: bool
    sitemap_slug: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "content_type": self.content_type,
            "display_name": self.display_name,
            "description": self.description,
            "kind": self.kind,
            "enabled": self.enabled,
            "sitemap_slug": self.sitemap_slug,
        }


class ContentProviderRegistry:
    """Hold the date-partitioned, enhancing and paginated providers in use."""

    def __init__(
        self,
        *,
        date_providers: Iterable[DateContentProvider] = (),
        enhancers: Iterable[UrlEnhancer] = (),
        paginated_providers: Iterable[PaginatedContentProvider] = (),
    ) -> None:
        self._date_providers = list(date_providers)
        self._enhancers = list(enhancers)
        self._paginated_providers = list(paginated_providers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        repository: ContentRepository,
    ) -> ContentProviderRegistry:
        enabled = set(settings.SITEMAP_CONTENT_PROVIDERS)
        date_providers: list[DateContentProvider] = []
        enhancers: list[UrlEnhancer] = []
        paginated: list[PaginatedContentProvider] = []

        if "posts" in enabled:
            date_providers.append(
                PostContentProvider(
                    repository=repository,
                    per_page=settings.SITEMAP_POSTS_PER_PAGE,
                )
            )
        if "images" in enabled:
            enhancers.append(
                ImageContentProvider(
                    repository=repository,
                    include_featured=settings.SITEMAP_INCLUDE_FEATURED_IMAGES,
                    include_content=settings.SITEMAP_INCLUDE_CONTENT_IMAGES,
                )
            )
        if "taxonomies" in enabled:
            paginated.extend(
                TaxonomyContentProvider(
                    repository=repository,
                    taxonomy=taxonomy,
                    default_per_page=settings.SITEMAP_PAGINATED_PER_PAGE,
                )
                for taxonomy in settings.SITEMAP_TAXONOMIES
            )
        if "authors" in enabled:
            paginated.append(
                AuthorContentProvider(
                    repository=repository,
                    default_per_page=settings.SITEMAP_PAGINATED_PER_PAGE,
                )
            )
        if "pages" in enabled:
            paginated.append(
                PageContentProvider(
                    repository=repository,
                    default_per_page=settings.SITEMAP_PAGINATED_PER_PAGE,
                )
            )

        _registry_logger.info(
            "content_providers_registered",
            extra={"providers": sorted(enabled)},
        )
        return cls(
            date_providers=date_providers,
            enhancers=enhancers,
            paginated_providers=paginated,
        )

    @property
    def date_providers(self) -> list[DateContentProvider]:
        return list(self._date_providers)

    @property
    def enhancers(self) -> list[UrlEnhancer]:
        return list(self._enhancers)

    @property
    def paginated_providers(self) -> list[PaginatedContentProvider]:
        return [provider for provider in self._paginated_providers if provider.is_enabled()]

    def get_paginated_provider(self, slug: str) -> PaginatedContentProvider | None:
        for provider in self.paginated_providers:
            if provider.get_sitemap_slug() == slug:
                return provider
        return None

    def list_statuses(self) -> list[ProviderStatus]:
        statuses: list[ProviderStatus] = []
        for provider in self._date_providers:
            statuses.append(_status(provider, kind="date", enabled=True))
        for enhancer in self._enhancers:
            if isinstance(enhancer, ContentProvider):
                statuses.append(
                    _status(
                        enhancer,
                        kind="enhancer",
                        enabled=bool(getattr(enhancer, "enabled", True)),
                    )
                )
        for paginated in self._paginated_providers:
            statuses.append(
                _status(
                    paginated,
                    kind="paginated",
                    enabled=paginated.is_enabled(),
                    sitemap_slug=paginated.get_sitemap_slug(),
                )
            )
        return statuses


def _status(
    provider: ContentProvider,
    *,
    kind: str,
    enabled: bool,
    sitemap_slug: str | None = None,
) -> ProviderStatus:
    return ProviderStatus(
        content_type=provider.get_content_type(),
        display_name=provider.get_display_name(),
        description=provider.get_description(),
        kind=kind,
        enabled=enabled,
        sitemap_slug=sitemap_slug,
    )


__all__ = ["ContentProviderRegistry", "ProviderStatus"]
