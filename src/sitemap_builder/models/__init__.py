"""ORM model exports."""

from sitemap_builder import __version__
from sitemap_builder.models.author import Author
from sitemap_builder.models.base import Base
from sitemap_builder.models.content_item import ContentImage, ContentItem
from sitemap_builder.models.option import Option
from sitemap_builder.models.sitemap_partition import SitemapPartition
from sitemap_builder.models.term import Term, content_item_terms

__all__ = [
    "__version__",
    "Author",
    "Base",
    "ContentImage",
    "ContentItem",
    "Option",
    "SitemapPartition",
    "Term",
    "content_item_terms",
]
