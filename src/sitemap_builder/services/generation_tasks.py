"""Deferred-task and recurring-job entry points for sitemap generation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from time import perf_counter

from sitemap_builder.domain import InvalidSitemapDateError
from sitemap_builder.services.cleanup import SitemapCleanupService
from sitemap_builder.services.generation_scheduler import (
    GENERATE_FOR_DATE_ACTION,
    BackgroundGenerationScheduler,
)
from sitemap_builder.services.generation_service import IncrementalGenerationService
from sitemap_builder.services.generation_state import LAST_CHECK_OPTION
from sitemap_builder.services.scheduler import SchedulerService
from sitemap_builder.services.task_dispatcher import TaskDispatcher

AUTOMATIC_UPDATE_JOB_ID = "sitemap-automatic-update-job"

_task_logger = logging.getLogger("sitemap_builder.generation_tasks")

_automatic_update_service: AutomaticUpdateService | None = None


@dataclass(slots=True)
class TaskExecutionMetrics:
    """In-memory runtime metrics for one kind of generation work."""

    job_id: str
    name: str
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    skipped_runs: int = 0
    overlap_skips: int = 0
    running: bool = False
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_duration_ms: float | None = None
    last_error: str | None = None


class TaskMetricsRecorder:
    """Per-job counters shared between the task handler and recurring jobs."""

    def __init__(self) -> None:
        self._metrics: dict[str, TaskExecutionMetrics] = {}

    def register(self, *, job_id: str, name: str) -> TaskExecutionMetrics:
        return self._metrics.setdefault(
            job_id, TaskExecutionMetrics(job_id=job_id, name=name)
        )

    def get(self, job_id: str) -> TaskExecutionMetrics:
        return self._metrics[job_id]

    def snapshot(self) -> list[TaskExecutionMetrics]:
        return [
            TaskExecutionMetrics(
                job_id=metrics.job_id,
                name=metrics.name,
                total_runs=metrics.total_runs,
                successful_runs=metrics.successful_runs,
                failed_runs=metrics.failed_runs,
                skipped_runs=metrics.skipped_runs,
                overlap_skips=metrics.overlap_skips,
                running=metrics.running,
                last_started_at=metrics.last_started_at,
                last_finished_at=metrics.last_finished_at,
                last_duration_ms=metrics.last_duration_ms,
                last_error=metrics.last_error,
            )
            for metrics in self._metrics.values()
        ]


class GenerationTaskHandler:
    """Run one deferred per-date task and keep the lane consistent.

    Before building, the handler honours a pending stop request, ignores
    tasks that outlived their run, and halts the run when the site is no
    longer public. A build failure still advances progress.
    """

    def __init__(
        self,
        *,
        scheduler: BackgroundGenerationScheduler,
        metrics: TaskMetricsRecorder | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._metrics = metrics or TaskMetricsRecorder()
        self._metrics.register(job_id=GENERATE_FOR_DATE_ACTION, name="Generate sitemap for date")

    def register(self, dispatcher: TaskDispatcher) -> None:
        dispatcher.register_handler(GENERATE_FOR_DATE_ACTION, self.handle)

    def monitoring_snapshot(self) -> list[TaskExecutionMetrics]:
        return self._metrics.snapshot()

    async def handle(self, payload: Mapping[str, str]) -> None:
        # Overdue date jobs can fire together; builds still run one at a time.
        async with self._scheduler.lane_lock:
            await self._handle_in_lane(payload)

    async def _handle_in_lane(self, payload: Mapping[str, str]) -> None:
        metrics = self._metrics.get(GENERATE_FOR_DATE_ACTION)
        sitemap_date = payload.get("date", "")
        state = self._scheduler.state

        if await state.stop_requested():
            await self._scheduler.cancel()
            await state.clear_stop()
            metrics.skipped_runs += 1
            _task_logger.info(
                "generation_task_stopped",
                extra={"date": sitemap_date},
            )
            return

        if not await self._scheduler.is_in_progress():
            metrics.skipped_runs += 1
            _task_logger.warning(
                "generation_task_stale",
                extra={"date": sitemap_date},
            )
            return

        if not await self._scheduler.should_continue():
            await self._scheduler.halt("site_not_public")
            metrics.skipped_runs += 1
            return

        metrics.total_runs += 1
        metrics.running = True
        metrics.last_started_at = datetime.now(UTC)
        started_at = perf_counter()
        try:
            url_set = await self._scheduler.generate_for_date(sitemap_date)
        except InvalidSitemapDateError as error:
            metrics.failed_runs += 1
            metrics.last_error = str(error)
            _task_logger.error(
                "generation_task_invalid_date",
                extra={"date": sitemap_date, "reason": str(error)},
            )
            await self._scheduler.record_date_completion()
        else:
            if url_set is None:
                metrics.failed_runs += 1
                metrics.last_error = f"Generation failed for {sitemap_date}"
            else:
                metrics.successful_runs += 1
                metrics.last_error = None
        finally:
            metrics.running = False
            metrics.last_finished_at = datetime.now(UTC)
            metrics.last_duration_ms = round((perf_counter() - started_at) * 1000, 2)


class AutomaticUpdateService:
    """Recurring incremental update: schedule missing or stale dates, then prune orphans."""

    def __init__(
        self,
        *,
        scheduler: BackgroundGenerationScheduler,
        incremental_service: IncrementalGenerationService,
        cleanup_service: SitemapCleanupService,
        metrics: TaskMetricsRecorder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._incremental_service = incremental_service
        self._cleanup_service = cleanup_service
        self._metrics = metrics or TaskMetricsRecorder()
        self._metrics.register(job_id=AUTOMATIC_UPDATE_JOB_ID, name="Automatic sitemap update")
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()

    def register_job(self, scheduler_service: SchedulerService, *, seconds: int) -> None:
        if not scheduler_service.enabled:
            return
        scheduler_service.add_interval_job(
            job_id=AUTOMATIC_UPDATE_JOB_ID,
            func=run_scheduled_automatic_update_job,
            seconds=seconds,
            name="Scheduled sitemap update",
        )

    def monitoring_snapshot(self) -> list[TaskExecutionMetrics]:
        return self._metrics.snapshot()

    async def run(self) -> None:
        metrics = self._metrics.get(AUTOMATIC_UPDATE_JOB_ID)
        if self._lock.locked():
            metrics.overlap_skips += 1
            _task_logger.warning(
                "automatic_update_overlap_skipped",
                extra={"job_id": AUTOMATIC_UPDATE_JOB_ID},
            )
            return

        async with self._lock:
            if not self._scheduler.is_cron_available():
                metrics.skipped_runs += 1
                return
            if await self._scheduler.is_in_progress():
                metrics.skipped_runs += 1
                _task_logger.info("automatic_update_skipped_in_progress")
                return

            metrics.total_runs += 1
            metrics.running = True
            metrics.last_started_at = datetime.now(UTC)
            started_at = perf_counter()
            try:
                await self._scheduler.state.record_timestamp(
                    LAST_CHECK_OPTION, self._clock()
                )
                result = await self._incremental_service.schedule()
                deleted = await self._cleanup_service.cleanup_all_orphaned_sitemaps()
                metrics.successful_runs += 1
                metrics.last_error = None
                _task_logger.info(
                    "automatic_update_completed",
                    extra={
                        "method": result.method,
                        "scheduled_count": result.scheduled_count or 0,
                        "orphans_deleted": deleted,
                    },
                )
            except Exception as error:
                metrics.failed_runs += 1
                metrics.last_error = str(error)
                _task_logger.exception(
                    "automatic_update_failed",
                    extra={"job_id": AUTOMATIC_UPDATE_JOB_ID},
                )
            finally:
                metrics.running = False
                metrics.last_finished_at = datetime.now(UTC)
                metrics.last_duration_ms = round(
                    (perf_counter() - started_at) * 1000, 2
                )


def set_automatic_update_service(service: AutomaticUpdateService | None) -> None:
    global _automatic_update_service
    _automatic_update_service = service


def _require_automatic_update_service() -> AutomaticUpdateService:
    if _automatic_update_service is None:
        raise RuntimeError("Automatic sitemap update service is not initialized")

    return _automatic_update_service


async def run_scheduled_automatic_update_job() -> None:
    await _require_automatic_update_service().run()


__all__ = [
    "AUTOMATIC_UPDATE_JOB_ID",
    "AutomaticUpdateService",
    "GenerationTaskHandler",
    "TaskExecutionMetrics",
    "TaskMetricsRecorder",
    "run_scheduled_automatic_update_job",
    "set_automatic_update_service",
]
