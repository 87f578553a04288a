"""Detection strategies that decide which date partitions need work."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Protocol, runtime_checkable

from sitemap_builder.services.content_repository import ContentRepository
from sitemap_builder.services.generation_state import (
    UPDATE_LAST_RUN_OPTION,
    GenerationStateRepository,
)
from sitemap_builder.services.partition_repository import SitemapPartitionRepository

DateProviderType = Literal["missing", "stale", "all"]

_date_provider_logger = logging.getLogger("sitemap_builder.date_providers")


def _format_dates(days: Iterable[date]) -> list[str]:
    return [day.isoformat() for day in sorted(set(days))]


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@runtime_checkable
class SitemapDateProvider(Protocol):
    """Strategy returning ascending, de-duplicated ``YYYY-MM-DD`` strings."""

    async def get_dates(self) -> list[str]: ...

    def get_type(self) -> str: ...

    def get_description(self) -> str: ...

    async def get_count(self) -> int: ...


class MissingSitemapDateProvider:
    """Dates with published content but no built partition."""

    def __init__(
        self,
        *,
        content_repository: ContentRepository,
        partition_repository: SitemapPartitionRepository,
    ) -> None:
        self._content_repository = content_repository
        self._partition_repository = partition_repository

    async def get_dates(self) -> list[str]:
        content_dates = set(await self._content_repository.get_dates_with_content())
        if not content_dates:
            return []
        built_dates = set(await self._partition_repository.get_all_dates())
        return _format_dates(content_dates - built_dates)

    async def get_count(self) -> int:
        return len(await self.get_dates())

    def get_type(self) -> str:
        return "missing"

    def get_description(self) -> str:
        return "Dates with posts but no sitemap"


class StaleSitemapDateProvider:
    """Built partitions older than the newest modification on their date."""

    def __init__(
        self,
        *,
        content_repository: ContentRepository,
        partition_repository: SitemapPartitionRepository,
    ) -> None:
        self._content_repository = content_repository
        self._partition_repository = partition_repository

    async def get_dates(self) -> list[str]:
        build_times = await self._partition_repository.get_build_times()
        if not build_times:
            return []

        latest_modifications = await self._content_repository.get_max_modified_by_date(
            build_times.keys()
        )
        stale = [
            day
            for day, modified_at in latest_modifications.items()
            if build_times[day] < modified_at
        ]
        if stale:
            _date_provider_logger.debug(
                "stale_partitions_detected",
                extra={"count": len(stale)},
            )
        return _format_dates(stale)

    async def get_count(self) -> int:
        return len(await self.get_dates())

    def get_type(self) -> str:
        return "stale"

    def get_description(self) -> str:
        return "Dates with sitemaps that need updating due to recent post modifications"


class AllDatesWithContentProvider:
    """Every date with at least one published item, for full rebuilds."""

    def __init__(self, *, content_repository: ContentRepository) -> None:
        self._content_repository = content_repository

    async def get_dates(self) -> list[str]:
        return _format_dates(await self._content_repository.get_dates_with_content())

    async def get_dates_for_year(self, year: int) -> list[str]:
        return _format_dates(await self._content_repository.get_dates_for_year(year))

    async def get_years_with_content(self) -> list[int]:
        return await self._content_repository.get_years_with_content()

    async def get_count(self) -> int:
        return len(await self.get_dates())

    def get_type(self) -> str:
        return "all"

    def get_description(self) -> str:
        return "All dates with published posts"


@dataclass(slots=True, frozen=True)
class MissingContentSummary:
    """Combined view of missing and stale partitions for operators."""

    missing_dates: list[str] = field(default_factory=list)
    stale_dates: list[str] = field(default_factory=list)
    all_dates_to_generate: list[str] = field(default_factory=list)
    total_posts_count: int = 0
    recently_modified_count: int = 0

    @property
    def has_missing(self) -> bool:
        return bool(self.all_dates_to_generate) or self.recently_modified_count > 0

    def message_parts(self) -> list[str]:
        parts: list[str] = []
        if self.missing_dates:
            parts.append(
                _plural(len(self.missing_dates), "missing sitemap", "missing sitemaps")
            )
        if self.stale_dates:
            parts.append(
                _plural(
                    len(self.stale_dates),
                    "sitemap that needs updating",
                    "sitemaps that need updating",
                )
            )
        return parts

    @property
    def message(self) -> str:
        if not self.has_missing:
            return "No missing sitemaps detected"
        parts = self.message_parts()
        if self.recently_modified_count:
            parts.append(
                _plural(
                    self.recently_modified_count,
                    "recently modified post",
                    "recently modified posts",
                )
            )
        return "; ".join(parts)

    def to_dict(self) -> dict[str, object]:
        return {
            "has_missing": self.has_missing,
            "message": self.message,
            "missing_dates": list(self.missing_dates),
            "dates_needing_updates": list(self.stale_dates),
            "all_dates_to_generate": list(self.all_dates_to_generate),
            "missing_dates_count": len(self.missing_dates),
            "dates_needing_updates_count": len(self.stale_dates),
            "all_dates_count": len(self.all_dates_to_generate),
            "total_posts_count": self.total_posts_count,
            "recently_modified_count": self.recently_modified_count,
        }


class DateProviderRegistry:
    """Select a detection strategy by its type name."""

    def __init__(
        self,
        *,
        content_repository: ContentRepository,
        partition_repository: SitemapPartitionRepository,
        state: GenerationStateRepository,
    ) -> None:
        self._content_repository = content_repository
        self._state = state
        self.missing = MissingSitemapDateProvider(
            content_repository=content_repository,
            partition_repository=partition_repository,
        )
        self.stale = StaleSitemapDateProvider(
            content_repository=content_repository,
            partition_repository=partition_repository,
        )
        self.all = AllDatesWithContentProvider(content_repository=content_repository)

    def get(self, provider_type: str) -> SitemapDateProvider:
        providers: dict[str, SitemapDateProvider] = {
            "missing": self.missing,
            "stale": self.stale,
            "all": self.all,
        }
        try:
            return providers[provider_type]
        except KeyError as error:
            raise ValueError(f"Unknown date provider type: {provider_type!r}") from error

    def list_providers(self) -> list[SitemapDateProvider]:
        return [self.missing, self.stale, self.all]

    async def get_missing_summary(self) -> MissingContentSummary:
        missing = await self.missing.get_dates()
        stale = await self.stale.get_dates()
        to_generate = sorted(set(missing) | set(stale))

        total_posts = await self._content_repository.count_items_for_dates(
            date.fromisoformat(day) for day in to_generate
        )
        recently_modified = 0
        last_run = await self._state.get_timestamp(UPDATE_LAST_RUN_OPTION)
        if last_run is not None:
            recently_modified = await self._content_repository.count_modified_since(
                last_run
            )

        return MissingContentSummary(
            missing_dates=missing,
            stale_dates=stale,
            all_dates_to_generate=to_generate,
            total_posts_count=total_posts,
            recently_modified_count=recently_modified,
        )


__all__ = [
    "AllDatesWithContentProvider",
    "DateProviderRegistry",
    "DateProviderType",
    "MissingContentSummary",
    "MissingSitemapDateProvider",
    "SitemapDateProvider",
    "StaleSitemapDateProvider",
]
