"""Schema exports for API serialization."""

from sitemap_builder.schemas.generation import (
    CancelGenerationRead,
    CleanupRead,
    ContentProviderRead,
    DateProviderRead,
    GenerateNowRead,
    GenerateNowRequest,
    GenerationProgressRead,
    GenerationServiceRead,
    GenerationStatusRead,
    MissingSummaryRead,
    PartitionValidationRead,
    RecentUrlCountsRead,
    SitemapValidationRead,
)

__all__ = [
    "CancelGenerationRead",
    "CleanupRead",
    "ContentProviderRead",
    "DateProviderRead",
    "GenerateNowRead",
    "GenerateNowRequest",
    "GenerationProgressRead",
    "GenerationServiceRead",
    "GenerationStatusRead",
    "MissingSummaryRead",
    "PartitionValidationRead",
    "RecentUrlCountsRead",
    "SitemapValidationRead",
]
