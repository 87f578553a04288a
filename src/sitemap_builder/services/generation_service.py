"""Full and incremental generation entry points used by the API and jobs."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from sitemap_builder.services.date_providers import (
    AllDatesWithContentProvider,
    DateProviderRegistry,
)
from sitemap_builder.services.generation_scheduler import (
    ALREADY_RUNNING_MESSAGE,
    BackgroundGenerationScheduler,
)

GenerationMethod = Literal["background", "direct", "none"]

_service_logger = logging.getLogger("sitemap_builder.generation_service")


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


@dataclass(slots=True, frozen=True)
class GenerationServiceResult:
    success: bool
    method: GenerationMethod
    message: str
    counts: list[str] = field(default_factory=list)
    scheduled_count: int | None = None
    generated_count: int | None = None
    already_running: bool = False

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "success": self.success,
            "method": self.method,
            "message": self.message,
            "counts": list(self.counts),
        }
        if self.scheduled_count is not None:
            payload["scheduled_count"] = self.scheduled_count
        if self.generated_count is not None:
            payload["generated_count"] = self.generated_count
        return payload


def _already_running(
    method: GenerationMethod,
    *,
    scheduled_count: int | None = None,
    generated_count: int | None = None,
) -> GenerationServiceResult:
    return GenerationServiceResult(
        success=False,
        method=method,
        message=ALREADY_RUNNING_MESSAGE,
        scheduled_count=scheduled_count,
        generated_count=generated_count,
        already_running=True,
    )


class FullGenerationService:
    """Rebuild every date with content, always in the background."""

    def __init__(
        self,
        *,
        scheduler: BackgroundGenerationScheduler,
        all_dates_provider: AllDatesWithContentProvider,
    ) -> None:
        self._scheduler = scheduler
        self._all_dates_provider = all_dates_provider

    async def start(self) -> GenerationServiceResult:
        if not self._scheduler.is_cron_available():
            return GenerationServiceResult(
                success=False,
                method="background",
                message="Full generation requires cron to be enabled.",
                scheduled_count=0,
            )
        if await self._scheduler.is_run_active():
            return _already_running("background", scheduled_count=0)

        all_dates = await self._all_dates_provider.get_dates()
        if not all_dates:
            return GenerationServiceResult(
                success=True,
                method="none",
                message="No dates with posts found.",
                scheduled_count=0,
            )

        result = await self._scheduler.schedule(all_dates)
        if not result.success:
            return GenerationServiceResult(
                success=False,
                method="background",
                message=result.message,
                scheduled_count=0,
                already_running=result.already_running,
            )

        _service_logger.info(
            "full_generation_started",
            extra={"scheduled_count": result.scheduled_count},
        )
        return GenerationServiceResult(
            success=True,
            method="background",
            message=(
                "Started full generation: "
                f"{_plural(result.scheduled_count, 'sitemap', 'sitemaps')} scheduled."
            ),
            scheduled_count=result.scheduled_count,
        )


class IncrementalGenerationService:
    """Build only missing and stale partitions."""

    def __init__(
        self,
        *,
        scheduler: BackgroundGenerationScheduler,
        date_providers: DateProviderRegistry,
    ) -> None:
        self._scheduler = scheduler
        self._date_providers = date_providers

    async def generate(self) -> GenerationServiceResult:
        """Detect work and build it inline."""

        if await self._scheduler.is_run_active():
            return _already_running("direct", generated_count=0)

        summary = await self._date_providers.get_missing_summary()
        counts = summary.message_parts()
        if not counts:
            return GenerationServiceResult(
                success=True,
                method="none",
                message="All sitemaps are up to date.",
                generated_count=0,
            )

        result = await self._scheduler.generate_now(summary.all_dates_to_generate)
        return GenerationServiceResult(
            success=result.success,
            method="direct",
            message=result.message,
            counts=counts,
            generated_count=result.generated_count,
            already_running=result.already_running,
        )

    async def schedule(
        self,
        dates: Sequence[str] | None = None,
    ) -> GenerationServiceResult:
        """Schedule background generation of ``dates``, or of detected work when omitted."""

        if not self._scheduler.is_cron_available():
            return GenerationServiceResult(
                success=False,
                method="background",
                message="Background generation requires cron to be enabled.",
                scheduled_count=0,
            )

        if await self._scheduler.is_run_active():
            return _already_running("background", scheduled_count=0)

        if dates:
            dates_to_generate = list(dates)
            counts = [_plural(len(dates_to_generate), "sitemap", "sitemaps")]
        else:
            summary = await self._date_providers.get_missing_summary()
            dates_to_generate = summary.all_dates_to_generate
            counts = summary.message_parts()

        if not dates_to_generate:
            return GenerationServiceResult(
                success=True,
                method="none",
                message="All sitemaps are up to date.",
                scheduled_count=0,
            )

        result = await self._scheduler.schedule(dates_to_generate)
        if not result.success:
            return GenerationServiceResult(
                success=False,
                method="background",
                message=result.message,
                counts=counts,
                scheduled_count=0,
                already_running=result.already_running,
            )

        return GenerationServiceResult(
            success=True,
            method="background",
            message=f"Scheduled background generation of {' and '.join(counts)}.",
            counts=counts,
            scheduled_count=result.scheduled_count,
        )


__all__ = [
    "FullGenerationService",
    "GenerationMethod",
    "GenerationServiceResult",
    "IncrementalGenerationService",
]
