"""Pydantic schemas for generation control endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class GenerationProgressRead(BaseModel):
    """Stable progress payload polled by status commands."""

    in_progress: bool
    total: int
    remaining: int
    completed: int


class GenerationStatusRead(GenerationProgressRead):
    percent_complete: float
    current_date: str | None = None
    cron_available: bool
    next_task_at: datetime | None = None
    last_generation: datetime | None = None
    last_check: datetime | None = None
    indexed_url_count: int


class GenerationServiceRead(BaseModel):
    """Outcome of starting full or incremental generation."""

    success: bool
    method: Literal["background", "direct", "none"]
    message: str
    counts: list[str] = Field(default_factory=list)
    scheduled_count: int | None = None
    generated_count: int | None = None


class GenerateNowRequest(BaseModel):
    """Dates to build synchronously, as ``YYYY-MM-DD`` strings."""

    dates: list[str] = Field(min_length=1)


class GenerateNowRead(BaseModel):
    success: bool
    message: str
    generated_count: int
    failed_dates: list[str]
    stopped: bool
    url_counts: dict[str, int]


class CancelGenerationRead(BaseModel):
    cancelled_tasks: int
    progress: GenerationProgressRead


class DateProviderRead(BaseModel):
    provider_type: str
    description: str
    count: int
    dates: list[str]


class MissingSummaryRead(BaseModel):
    has_missing: bool
    message: str
    missing_dates: list[str]
    dates_needing_updates: list[str]
    all_dates_to_generate: list[str]
    missing_dates_count: int
    dates_needing_updates_count: int
    all_dates_count: int
    total_posts_count: int
    recently_modified_count: int


class CleanupRead(BaseModel):
    deleted_count: int


class PartitionValidationRead(BaseModel):
    date: str
    valid: bool
    url_count: int
    errors: list[str]
    warnings: list[str]


class SitemapValidationRead(BaseModel):
    """Per-partition findings from re-parsing stored sitemaps."""

    success: bool
    message: str
    error_code: str | None = None
    total: int
    valid_count: int
    invalid_count: int
    error_count: int
    partitions: list[PartitionValidationRead]


class RecentUrlCountsRead(BaseModel):
    days: int
    total_urls: int
    url_counts: dict[str, int]


class ContentProviderRead(BaseModel):
    content_type: str
    display_name: str
    description: str
    kind: str
    enabled: bool
    sitemap_slug: str | None = None


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
