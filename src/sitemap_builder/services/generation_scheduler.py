"""Background generation scheduler for date-partitioned sitemaps.

``schedule`` only writes the persisted counters and enqueues one deferred
task per date on a single dispatcher lane, staggered by a fixed interval.
Each task builds one partition through ``generate_for_date`` and advances
the shared progress record. ``generate_now`` runs the same per-date unit of
work inline for small date sets.

Every unit of work runs under one lane lock, so partition builds never
overlap within a process and the read-modify-write of the progress counters
is serialized. A new run is refused while another one is active.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sitemap_builder.domain import (
    GenerationProgress,
    SitemapDate,
    UrlSet,
)
from sitemap_builder.services.cleanup import SitemapCleanupService
from sitemap_builder.services.generation_state import (
    CURRENT_DATE_OPTION,
    LAST_GENERATION_OPTION,
    UPDATE_LAST_RUN_OPTION,
    GenerationStateRepository,
)
from sitemap_builder.services.partition_repository import SitemapPartitionRepository
from sitemap_builder.services.site_eligibility import SiteEligibility
from sitemap_builder.services.sitemap_generator import SitemapGenerator
from sitemap_builder.services.sitemap_xml import format_url_set
from sitemap_builder.services.task_dispatcher import TaskDispatcher

GENERATE_FOR_DATE_ACTION = "generate_sitemap_for_date"
DEFAULT_INTERVAL_BETWEEN_TASKS_SECONDS = 5
ALREADY_RUNNING_MESSAGE = "Generation is already in progress."

Clock = Callable[[], datetime]

_generation_logger = logging.getLogger("sitemap_builder.generation")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def normalize_dates(dates: Sequence[str | SitemapDate]) -> list[SitemapDate]:
    """Validate dates, dropping repeats while keeping the caller's order.

    Raises ``InvalidSitemapDateError`` on the first malformed value.
    """

    normalized: list[SitemapDate] = []
    seen: set[SitemapDate] = set()
    for value in dates:
        parsed = value if isinstance(value, SitemapDate) else SitemapDate.from_string(value)
        if parsed in seen:
            continue
        seen.add(parsed)
        normalized.append(parsed)
    return normalized


@dataclass(slots=True, frozen=True)
class ScheduleResult:
    success: bool
    message: str
    scheduled_count: int = 0
    dates: list[str] = field(default_factory=list)
    already_running: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "scheduled_count": self.scheduled_count,
            "dates": list(self.dates),
        }


@dataclass(slots=True, frozen=True)
class GenerationRunResult:
    """Outcome of a synchronous run.

    ``partitions`` maps every processed date to its URLs, empty dates
    included; ``generated_count`` counts only partitions actually written.
    """

    success: bool
    message: str
    generated_count: int = 0
    failed_dates: list[str] = field(default_factory=list)
    stopped: bool = False
    partitions: dict[str, UrlSet] = field(default_factory=dict)
    already_running: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "generated_count": self.generated_count,
            "failed_dates": list(self.failed_dates),
            "stopped": self.stopped,
            "url_counts": {
                day: url_set.count() for day, url_set in self.partitions.items()
            },
        }


@dataclass(slots=True, frozen=True)
class StateRepair:
    """Consistency repairs applied between the progress flag and pending tasks."""

    cleared_stale_flag: bool = False
    cancelled_tasks: int = 0

    @property
    def repaired(self) -> bool:
        return self.cleared_stale_flag or self.cancelled_tasks > 0


class BackgroundGenerationScheduler:
    """Own the generation progress lifecycle and the per-date unit of work."""

    def __init__(
        self,
        *,
        state: GenerationStateRepository,
        dispatcher: TaskDispatcher,
        generator: SitemapGenerator,
        partition_repository: SitemapPartitionRepository,
        cleanup_service: SitemapCleanupService,
        eligibility: SiteEligibility,
        interval_seconds: float = DEFAULT_INTERVAL_BETWEEN_TASKS_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._state = state
        self._dispatcher = dispatcher
        self._generator = generator
        self._partition_repository = partition_repository
        self._cleanup_service = cleanup_service
        self._eligibility = eligibility
        self._interval_seconds = interval_seconds
        self._clock = clock or _utc_now
        self._lane_lock = asyncio.Lock()

    @property
    def state(self) -> GenerationStateRepository:
        return self._state

    @property
    def lane_lock(self) -> asyncio.Lock:
        """Held by whichever unit of work is building a partition."""

        return self._lane_lock

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def is_cron_available(self) -> bool:
        return self._dispatcher.enabled

    async def is_site_eligible(self) -> bool:
        return await self._eligibility.is_eligible()

    def _has_pending_tasks(self) -> bool:
        if not self._dispatcher.enabled:
            return False
        return self._dispatcher.next_scheduled(GENERATE_FOR_DATE_ACTION) is not None

    async def _has_queued_run(self) -> bool:
        if not await self._state.is_in_progress():
            return False
        return self._has_pending_tasks()

    async def is_run_active(self) -> bool:
        """True while a unit of work holds the lane or a flagged run has tasks queued.

        An in-progress flag with neither is stale and does not block a new run.
        """

        if self._lane_lock.locked():
            return True
        return await self._has_queued_run()

    def _schedule_rejected(self, date_count: int) -> ScheduleResult:
        _generation_logger.warning(
            "generation_schedule_rejected",
            extra={"reason": "already_running", "dates": date_count},
        )
        return ScheduleResult(
            success=False,
            message=ALREADY_RUNNING_MESSAGE,
            already_running=True,
        )

    def _generate_now_rejected(self, date_count: int) -> GenerationRunResult:
        _generation_logger.warning(
            "generation_now_rejected",
            extra={"reason": "already_running", "dates": date_count},
        )
        return GenerationRunResult(
            success=False,
            message=ALREADY_RUNNING_MESSAGE,
            already_running=True,
        )

    async def schedule(self, dates: Sequence[str | SitemapDate]) -> ScheduleResult:
        """Start a background run with one staggered task per date.

        Refused while another run is active; a stale in-progress flag is
        repaired first.
        """

        sitemap_dates = normalize_dates(dates)
        if not sitemap_dates:
            return ScheduleResult(success=False, message="No dates to process.")

        if not await self._eligibility.is_eligible():
            _generation_logger.warning(
                "generation_schedule_rejected",
                extra={"reason": "site_not_public", "dates": len(sitemap_dates)},
            )
            return ScheduleResult(
                success=False,
                message="Site is not public; sitemaps cannot be generated.",
            )

        if not self.is_cron_available():
            _generation_logger.warning(
                "generation_schedule_rejected",
                extra={"reason": "cron_unavailable", "dates": len(sitemap_dates)},
            )
            return ScheduleResult(
                success=False,
                message="Background generation is unavailable because cron is disabled.",
            )

        if self._lane_lock.locked():
            return self._schedule_rejected(len(sitemap_dates))

        async with self._lane_lock:
            if await self._has_queued_run():
                return self._schedule_rejected(len(sitemap_dates))

            await self.repair_state()
            self._dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)
            await self._state.clear_stop()
            await self._state.save_progress(
                GenerationProgress(
                    in_progress=True,
                    total=len(sitemap_dates),
                    remaining=len(sitemap_dates),
                    current_date=sitemap_dates[0],
                )
            )

            for index, sitemap_date in enumerate(sitemap_dates):
                self._dispatcher.enqueue(
                    GENERATE_FOR_DATE_ACTION,
                    {"date": str(sitemap_date)},
                    delay=index * self._interval_seconds,
                )

        formatted = [str(sitemap_date) for sitemap_date in sitemap_dates]
        _generation_logger.info(
            "generation_scheduled",
            extra={
                "scheduled_count": len(formatted),
                "first_date": formatted[0],
                "last_date": formatted[-1],
                "interval_seconds": self._interval_seconds,
            },
        )
        return ScheduleResult(
            success=True,
            message=(
                f"Scheduled {_plural(len(formatted), 'sitemap', 'sitemaps')} "
                "for background generation."
            ),
            scheduled_count=len(formatted),
            dates=formatted,
        )

    async def generate_now(self, dates: Sequence[str | SitemapDate]) -> GenerationRunResult:
        """Build every date inline, in order, blocking until all are done.

        Holds the lane for the whole run and is refused while a background
        run still has work in flight or queued.
        """

        sitemap_dates = normalize_dates(dates)
        if not sitemap_dates:
            return GenerationRunResult(success=True, message="No dates to generate.")

        if not await self._eligibility.is_eligible():
            return GenerationRunResult(
                success=False,
                message="Site is not public; sitemaps cannot be generated.",
            )

        if self._lane_lock.locked():
            return self._generate_now_rejected(len(sitemap_dates))

        async with self._lane_lock:
            if await self._has_queued_run():
                return self._generate_now_rejected(len(sitemap_dates))
            return await self._generate_inline(sitemap_dates)

    async def _generate_inline(self, sitemap_dates: list[SitemapDate]) -> GenerationRunResult:
        await self._state.clear_stop()
        await self._state.save_progress(
            GenerationProgress(
                in_progress=True,
                total=len(sitemap_dates),
                remaining=len(sitemap_dates),
                current_date=sitemap_dates[0],
            )
        )

        partitions: dict[str, UrlSet] = {}
        failed: list[str] = []
        stopped = False
        for index, sitemap_date in enumerate(sitemap_dates):
            if not await self.should_continue():
                stopped = True
                break
            next_date = (
                sitemap_dates[index + 1] if index + 1 < len(sitemap_dates) else None
            )
            url_set = await self.generate_for_date(sitemap_date, next_date=next_date)
            if url_set is None:
                failed.append(str(sitemap_date))
                continue
            partitions[str(sitemap_date)] = url_set

        if stopped:
            await self._state.clear_stop()
            progress = await self._state.load_progress()
            await self._state.save_progress(progress.with_cancelled())

        generated = sum(1 for url_set in partitions.values() if not url_set.is_empty())
        message = f"Generated {_plural(generated, 'sitemap', 'sitemaps')} successfully."
        if failed:
            message += f" {_plural(len(failed), 'date', 'dates')} failed."
        if stopped:
            message += " Generation was stopped before finishing."

        return GenerationRunResult(
            success=not failed,
            message=message,
            generated_count=generated,
            failed_dates=failed,
            stopped=stopped,
            partitions=partitions,
        )

    async def generate_for_date(
        self,
        sitemap_date: str | SitemapDate,
        *,
        next_date: str | SitemapDate | None = None,
    ) -> UrlSet | None:
        """Build one partition and advance progress.

        A malformed date raises before any work is done. A build failure is
        logged and reported as ``None``; progress advances either way so the
        rest of the run is not blocked. Callers hold ``lane_lock``.
        """

        parsed = (
            sitemap_date
            if isinstance(sitemap_date, SitemapDate)
            else SitemapDate.from_string(sitemap_date)
        )
        parsed_next = (
            SitemapDate.from_string(next_date) if isinstance(next_date, str) else next_date
        )

        if await self._state.is_in_progress():
            await self._state.store.set(CURRENT_DATE_OPTION, str(parsed), autoload=False)

        try:
            return await self.build_partition(parsed)
        except Exception:
            _generation_logger.exception(
                "sitemap_partition_failed",
                extra={"date": str(parsed)},
            )
            return None
        finally:
            await self.record_date_completion(parsed_next)

    async def build_partition(self, sitemap_date: SitemapDate) -> UrlSet:
        """Build and persist one date; rebuilding the same content is idempotent.

        A date without content yields an empty set and removes any partition
        previously built for it.
        """

        content = await self._generator.generate_content(sitemap_date)
        url_set = content.to_url_set()
        partition_date = sitemap_date.to_date()

        if url_set.is_empty():
            removed = await self._partition_repository.delete_by_date(partition_date)
            _generation_logger.info(
                "sitemap_partition_empty",
                extra={"date": str(sitemap_date), "removed_existing": removed},
            )
            return url_set

        await self._partition_repository.save(
            partition_date,
            format_url_set(url_set),
            url_set.count(),
            built_at=self._clock(),
        )
        _generation_logger.info(
            "sitemap_partition_built",
            extra={"date": str(sitemap_date), "url_count": url_set.count()},
        )
        return url_set

    async def record_date_completion(
        self,
        next_date: SitemapDate | None = None,
    ) -> GenerationProgress:
        """Decrement the remaining counter and finish the run when it reaches zero."""

        progress = await self._state.load_progress()
        if progress.remaining == 0:
            return progress

        updated = progress.with_date_completed(next_date)
        await self._state.save_progress(updated)

        if updated.remaining == 0:
            await self._finish_run(updated)
        return updated

    async def _finish_run(self, progress: GenerationProgress) -> None:
        deleted = await self._cleanup_service.cleanup_all_orphaned_sitemaps()
        finished_at = self._clock()
        await self._state.record_timestamp(UPDATE_LAST_RUN_OPTION, finished_at)
        await self._state.record_timestamp(LAST_GENERATION_OPTION, finished_at)
        indexed_urls = await self._partition_repository.total_url_count()
        await self._state.set_indexed_url_count(indexed_urls)
        _generation_logger.info(
            "generation_completed",
            extra={
                "total": progress.total,
                "orphans_deleted": deleted,
                "indexed_url_count": indexed_urls,
            },
        )

    async def is_in_progress(self) -> bool:
        return await self._state.is_in_progress()

    async def get_progress_snapshot(self) -> GenerationProgress:
        return await self._state.load_progress()

    async def get_progress(self) -> dict[str, bool | int]:
        """Return ``{in_progress, total, remaining, completed}``."""

        return (await self._state.load_progress()).to_dict()

    async def cancel(self) -> int:
        """Stop the run; counters stay so operators can see how far it got.

        Returns the number of pending tasks removed. An in-flight task
        finishes its partition and the stop flag halts whatever runs next.
        """

        cancelled = 0
        if self._dispatcher.enabled:
            cancelled = self._dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)
        progress = await self._state.load_progress()
        await self._state.save_progress(progress.with_cancelled())
        await self._state.request_stop()
        _generation_logger.info(
            "generation_cancelled",
            extra={
                "cancelled_tasks": cancelled,
                "total": progress.total,
                "remaining": progress.remaining,
            },
        )
        return cancelled

    async def halt(self, reason: str) -> None:
        """Stop a run without a stop request, leaving built partitions intact."""

        if self._dispatcher.enabled:
            self._dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)
        progress = await self._state.load_progress()
        await self._state.save_progress(progress.with_cancelled())
        _generation_logger.warning(
            "generation_halted",
            extra={"reason": reason, "remaining": progress.remaining},
        )

    async def should_continue(self) -> bool:
        """Polled once per unit of work: no stop request and the site is public."""

        if await self._state.stop_requested():
            return False
        return await self._eligibility.is_eligible()

    async def repair_state(self) -> StateRepair:
        """Reconcile the in-progress flag with the tasks actually pending."""

        if not self._dispatcher.enabled:
            return StateRepair()

        in_progress = await self._state.is_in_progress()
        has_pending = self._dispatcher.next_scheduled(GENERATE_FOR_DATE_ACTION) is not None

        if in_progress and not has_pending:
            progress = await self._state.load_progress()
            await self._state.save_progress(progress.with_cancelled())
            _generation_logger.warning(
                "generation_state_repaired",
                extra={"repair": "cleared_stale_flag", "remaining": progress.remaining},
            )
            return StateRepair(cleared_stale_flag=True)

        if not in_progress and has_pending:
            cancelled = self._dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)
            _generation_logger.warning(
                "generation_state_repaired",
                extra={"repair": "cancelled_stray_tasks", "cancelled_tasks": cancelled},
            )
            return StateRepair(cancelled_tasks=cancelled)

        return StateRepair()


__all__ = [
    "ALREADY_RUNNING_MESSAGE",
    "BackgroundGenerationScheduler",
    "DEFAULT_INTERVAL_BETWEEN_TASKS_SECONDS",
    "GENERATE_FOR_DATE_ACTION",
    "GenerationRunResult",
    "ScheduleResult",
    "StateRepair",
    "normalize_dates",
]
