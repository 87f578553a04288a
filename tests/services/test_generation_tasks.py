"""Tests for the per-date task handler, automatic updates and recovery."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from apscheduler.jobstores.memory import MemoryJobStore  # type: ignore[import-untyped]
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
import pytest

from sitemap_builder.domain import SitemapDate
from sitemap_builder.services.container import SitemapServices, build_sitemap_services
from sitemap_builder.services.generation_scheduler import GENERATE_FOR_DATE_ACTION
from sitemap_builder.services.generation_state import LAST_CHECK_OPTION
from sitemap_builder.services.generation_tasks import (
    AUTOMATIC_UPDATE_JOB_ID,
    run_scheduled_automatic_update_job,
    set_automatic_update_service,
)
from sitemap_builder.services.option_store import InMemoryOptionStore
from sitemap_builder.services.scheduler import SchedulerService
from sitemap_builder.services.site_eligibility import StaticSiteEligibility
from sitemap_builder.services.task_dispatcher import (
    InMemoryTaskDispatcher,
    SchedulerTaskDispatcher,
    clear_registered_handlers,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _build_services(
    settings,
    session_factory,
    *,
    dispatcher: InMemoryTaskDispatcher,
    eligibility: StaticSiteEligibility | None = None,
) -> SitemapServices:
    return build_sitemap_services(
        settings,
        dispatcher=dispatcher,
        session_factory=session_factory,
        store=InMemoryOptionStore(),
        eligibility=eligibility or StaticSiteEligibility(True),
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_task_failure_is_recorded_and_progress_advances(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/b", datetime(2024, 3, 2, 9, tzinfo=UTC))
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    original_build = services.scheduler.build_partition

    async def flaky_build(sitemap_date: SitemapDate):
        if sitemap_date == SitemapDate(2024, 3, 1):
            raise RuntimeError("provider exploded")
        return await original_build(sitemap_date)

    services.scheduler.build_partition = flaky_build  # type: ignore[method-assign]
    await services.scheduler.schedule(["2024-03-01", "2024-03-02"])

    await dispatcher.run_pending()

    progress = await services.scheduler.get_progress()
    assert progress["remaining"] == 0
    assert progress["in_progress"] is False
    assert await services.partition_repository.get_all_dates() == [date(2024, 3, 2)]

    [metrics] = [
        item
        for item in services.task_handler.monitoring_snapshot()
        if item.job_id == GENERATE_FOR_DATE_ACTION
    ]
    assert metrics.total_runs == 2
    assert metrics.failed_runs == 1
    assert metrics.successful_runs == 1


@pytest.mark.asyncio
async def test_invalid_task_payload_still_counts_as_completed(
    settings,
    session_factory,
) -> None:
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    await services.scheduler.schedule(["2024-03-01", "2024-03-02"])
    dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)

    await services.task_handler.handle({"date": "2024-02-30"})

    assert (await services.scheduler.get_progress())["remaining"] == 1


@pytest.mark.asyncio
async def test_task_halts_run_when_site_goes_private(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/a", datetime(2024, 3, 1, 9, tzinfo=UTC))
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    eligibility = StaticSiteEligibility(True)
    services = _build_services(
        settings, session_factory, dispatcher=dispatcher, eligibility=eligibility
    )
    await services.scheduler.schedule(["2024-03-01", "2024-03-02"])

    eligibility.eligible = False
    await dispatcher.run_pending()

    assert await services.partition_repository.count() == 0
    assert dispatcher.pending == []
    progress = await services.scheduler.get_progress()
    assert progress["in_progress"] is False
    assert progress["remaining"] == 2


@pytest.mark.asyncio
async def test_stop_request_cancels_remaining_tasks(
    settings,
    session_factory,
) -> None:
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    await services.scheduler.schedule(["2024-03-01", "2024-03-02", "2024-03-03"])
    await services.state.request_stop()

    executed = await dispatcher.run_pending()

    assert executed == 1
    assert dispatcher.pending == []
    assert await services.state.stop_requested() is False
    assert (await services.scheduler.get_progress())["in_progress"] is False


@pytest.mark.asyncio
async def test_redelivered_task_after_completion_is_ignored(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/a", datetime(2024, 3, 1, 9, tzinfo=UTC))
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    await services.scheduler.schedule(["2024-03-01"])
    await dispatcher.run_pending()

    await dispatcher.redeliver(dispatcher.executed[0])

    assert await services.scheduler.get_progress() == {
        "in_progress": False,
        "total": 1,
        "remaining": 0,
        "completed": 1,
    }
    assert await services.partition_repository.count() == 1


@pytest.mark.asyncio
async def test_automatic_update_schedules_detected_work(
    settings,
    session_factory,
    add_content,
) -> None:
    await add_content("https://blog.example/a", datetime(2024, 3, 1, 9, tzinfo=UTC))
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    set_automatic_update_service(services.automatic_update)

    try:
        await run_scheduled_automatic_update_job()
    finally:
        set_automatic_update_service(None)

    assert [task.payload["date"] for task in dispatcher.pending] == ["2024-03-01"]
    assert await services.state.get_timestamp(LAST_CHECK_OPTION) == NOW

    await services.automatic_update.run()
    [metrics] = [
        item
        for item in services.automatic_update.monitoring_snapshot()
        if item.job_id == AUTOMATIC_UPDATE_JOB_ID
    ]
    assert metrics.successful_runs == 1
    assert metrics.skipped_runs == 1


@pytest.mark.asyncio
async def test_automatic_update_job_requires_registered_service() -> None:
    set_automatic_update_service(None)

    with pytest.raises(RuntimeError, match="not initialized"):
        await run_scheduled_automatic_update_job()


@pytest.mark.asyncio
async def test_automatic_update_registers_interval_job(
    settings,
    session_factory,
    tmp_path: Path,
) -> None:
    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'automatic-update.sqlite'}",
    )
    services = _build_services(
        settings, session_factory, dispatcher=InMemoryTaskDispatcher()
    )

    services.automatic_update.register_job(scheduler, seconds=900)
    await scheduler.start()
    try:
        [job] = scheduler.list_jobs()
        assert job.job_id == AUTOMATIC_UPDATE_JOB_ID
        assert "interval" in job.trigger.lower()
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_startup_recovery_clears_interrupted_run(
    settings,
    session_factory,
) -> None:
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    await services.scheduler.schedule(["2024-03-01", "2024-03-02"])
    # Tasks lost with the previous process.
    dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)

    result = await services.recovery.handle_startup_recovery()

    assert result.interrupted is True
    assert result.progress.in_progress is False
    assert result.progress.remaining == 2

    resumed = await services.scheduler.schedule(["2024-03-01"])
    assert resumed.success is True
    healthy = await services.recovery.handle_startup_recovery()
    assert healthy.interrupted is False
    assert healthy.progress.in_progress is True
    assert (await services.recovery.summarize_shutdown()).total == 1


@pytest.mark.asyncio
async def test_overdue_date_jobs_build_one_partition_at_a_time(
    settings,
    session_factory,
    add_content,
) -> None:
    for day in (1, 2, 3):
        await add_content(
            f"https://blog.example/post-{day}", datetime(2024, 3, day, 9, tzinfo=UTC)
        )

    scheduler_service = SchedulerService(
        enabled=True,
        jobstore_url="sqlite://",
        scheduler=AsyncIOScheduler(jobstores={"default": MemoryJobStore()}),
    )
    # Run dates in the past, as after a restart with a backlog of overdue tasks.
    dispatcher = SchedulerTaskDispatcher(
        scheduler=scheduler_service,
        clock=lambda: datetime.now(UTC) - timedelta(minutes=5),
    )
    services = build_sitemap_services(
        settings,
        dispatcher=dispatcher,
        session_factory=session_factory,
        store=InMemoryOptionStore(),
        eligibility=StaticSiteEligibility(True),
    )
    original_build = services.scheduler.build_partition
    active_builds = 0
    peak_builds = 0

    async def slow_build(sitemap_date: SitemapDate):
        nonlocal active_builds, peak_builds
        active_builds += 1
        peak_builds = max(peak_builds, active_builds)
        try:
            await asyncio.sleep(0.2)
            return await original_build(sitemap_date)
        finally:
            active_builds -= 1

    services.scheduler.build_partition = slow_build  # type: ignore[method-assign]
    scheduled = await services.scheduler.schedule(
        ["2024-03-01", "2024-03-02", "2024-03-03"]
    )
    assert scheduled.success is True

    await scheduler_service.start()
    try:
        for _ in range(200):
            progress = await services.scheduler.get_progress()
            if progress["remaining"] == 0 and not services.scheduler.lane_lock.locked():
                break
            await asyncio.sleep(0.05)
    finally:
        await scheduler_service.shutdown()
        clear_registered_handlers()

    assert peak_builds == 1
    assert await services.scheduler.get_progress() == {
        "in_progress": False,
        "total": 3,
        "remaining": 0,
        "completed": 3,
    }
    assert await services.partition_repository.count() == 3


@pytest.mark.asyncio
async def test_task_waits_for_the_lane_held_by_inline_generation(
    settings,
    session_factory,
) -> None:
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)
    services = _build_services(settings, session_factory, dispatcher=dispatcher)
    await services.scheduler.schedule(["2024-03-01", "2024-03-02"])
    [first_task, _] = dispatcher.pending
    dispatcher.cancel_all(GENERATE_FOR_DATE_ACTION)

    await services.scheduler.lane_lock.acquire()
    handled = asyncio.create_task(services.task_handler.handle(first_task.payload))
    await asyncio.sleep(0.05)

    assert handled.done() is False
    assert (await services.scheduler.get_progress())["remaining"] == 2

    services.scheduler.lane_lock.release()
    await handled

    assert (await services.scheduler.get_progress())["remaining"] == 1
