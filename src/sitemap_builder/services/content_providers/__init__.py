"""Content providers that turn published content into sitemap entries."""

from sitemap_builder.services.content_providers.archives import (
    DEFAULT_PER_PAGE,
    AuthorContentProvider,
    PageContentProvider,
    TaxonomyContentProvider,
)
from sitemap_builder.services.content_providers.base import (
    ContentProvider,
    DateContentProvider,
    EntryPolicy,
    PaginatedContentProvider,
    UrlEnhancer,
)
from sitemap_builder.services.content_providers.images import (
    MAX_IMAGES_PER_URL,
    ImageContentProvider,
)
from sitemap_builder.services.content_providers.posts import (
    DEFAULT_POSTS_PER_SITEMAP_PAGE,
    PostContentProvider,
)
from sitemap_builder.services.content_providers.registry import (
    ContentProviderRegistry,
    ProviderStatus,
)

__all__ = [
    "AuthorContentProvider",
    "ContentProvider",
    "ContentProviderRegistry",
    "DEFAULT_PER_PAGE",
    "DEFAULT_POSTS_PER_SITEMAP_PAGE",
    "DateContentProvider",
    "EntryPolicy",
    "ImageContentProvider",
    "MAX_IMAGES_PER_URL",
    "PageContentProvider",
    "PaginatedContentProvider",
    "PostContentProvider",
    "ProviderStatus",
    "TaxonomyContentProvider",
    "UrlEnhancer",
]
