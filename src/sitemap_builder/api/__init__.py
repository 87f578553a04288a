"""API package exports."""

from sitemap_builder import __version__
from sitemap_builder.api.generation import router as generation_router
from sitemap_builder.api.scheduler import router as scheduler_router
from sitemap_builder.api.sitemaps import router as sitemaps_router

__all__ = [
    "__version__",
    "generation_router",
    "scheduler_router",
    "sitemaps_router",
]
