"""Read-only statistics over built partitions."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta

from sitemap_builder.domain import SitemapDate
from sitemap_builder.services.partition_repository import SitemapPartitionRepository

MAX_RECENT_DAYS = 366


class SitemapStatsService:
    def __init__(
        self,
        *,
        partition_repository: SitemapPartitionRepository,
        timezone: str = "UTC",
        today: Callable[[], date] | None = None,
    ) -> None:
        self._partition_repository = partition_repository
        self._today = today or (lambda: SitemapDate.today(timezone).to_date())

    async def get_recent_url_counts(self, days: int = 7) -> dict[str, int]:
        """URL count per day for the last ``days`` days, newest first.

        Days without a built partition report zero.
        """

        if not 1 <= days <= MAX_RECENT_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_RECENT_DAYS}: {days}")

        today = self._today()
        window = [today - timedelta(days=offset) for offset in range(days)]
        counts = await self._partition_repository.get_url_counts(window)
        return {day.isoformat(): counts.get(day, 0) for day in window}


__all__ = ["MAX_RECENT_DAYS", "SitemapStatsService"]
