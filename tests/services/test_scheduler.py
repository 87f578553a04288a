"""Tests for scheduler service lifecycle and the deferred task dispatchers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from sitemap_builder.services.scheduler import SchedulerService
from sitemap_builder.services.task_dispatcher import (
    InMemoryTaskDispatcher,
    SchedulerTaskDispatcher,
    build_task_id,
    clear_registered_handlers,
    run_deferred_task,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


async def _noop_job() -> None:
    return None


@pytest.mark.asyncio
async def test_scheduler_service_supports_interval_and_date_jobs(
    tmp_path: Path,
) -> None:
    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'scheduler-jobs.sqlite'}",
    )
    run_date = datetime.now(UTC).replace(microsecond=0) + timedelta(hours=1)

    scheduler.add_interval_job(job_id="interval-job", func=_noop_job, seconds=60)
    scheduler.add_date_job(job_id="task:date=2024-03-01", func=_noop_job, run_date=run_date)
    scheduler.add_date_job(
        job_id="task:date=2024-03-02",
        func=_noop_job,
        run_date=run_date + timedelta(seconds=5),
    )

    assert scheduler.next_run_time("task:") is not None

    await scheduler.start()
    try:
        jobs = scheduler.list_jobs()
        assert {job.job_id for job in jobs} == {
            "interval-job",
            "task:date=2024-03-01",
            "task:date=2024-03-02",
        }
        assert scheduler.has_job("task:date=2024-03-01") is True
        assert scheduler.next_run_time("task:") == run_date

        scheduler.pause()
        assert scheduler.paused is True
        scheduler.resume()
        assert scheduler.paused is False

        assert scheduler.remove_jobs("task:") == 2
        assert scheduler.next_run_time("task:") is None
        assert {job.job_id for job in scheduler.list_jobs()} == {"interval-job"}
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_scheduler_service_rejects_operations_when_disabled(
    tmp_path: Path,
) -> None:
    scheduler = SchedulerService(
        enabled=False,
        jobstore_url=f"sqlite:///{tmp_path / 'scheduler-disabled.sqlite'}",
    )

    await scheduler.start()

    assert scheduler.running is False
    assert scheduler.has_job("anything") is False
    assert scheduler.next_run_time("task:") is None
    with pytest.raises(RuntimeError, match="disabled"):
        scheduler.pause()
    with pytest.raises(RuntimeError, match="disabled"):
        scheduler.add_date_job(job_id="job", func=_noop_job, run_date=NOW)


@pytest.mark.asyncio
async def test_scheduler_dispatcher_enqueues_replaceable_date_jobs(
    tmp_path: Path,
) -> None:
    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'dispatcher.sqlite'}",
    )
    now = datetime.now(UTC).replace(microsecond=0)
    dispatcher = SchedulerTaskDispatcher(scheduler=scheduler, clock=lambda: now)

    await scheduler.start()
    try:
        first_id = dispatcher.enqueue("build", {"date": "2024-03-01"}, delay=3600)
        dispatcher.enqueue("build", {"date": "2024-03-01"}, delay=7200)
        dispatcher.enqueue("build", {"date": "2024-03-02"}, delay=5400)

        assert first_id == "build:date=2024-03-01"
        assert len(scheduler.list_jobs()) == 2
        assert dispatcher.next_scheduled("build") == now + timedelta(seconds=5400)
        assert dispatcher.next_scheduled(
            "build", {"date": "2024-03-01"}
        ) == now + timedelta(seconds=7200)
        assert dispatcher.next_scheduled("build", {"date": "2024-03-09"}) is None
        assert dispatcher.cancel_all("build") == 2
        assert dispatcher.next_scheduled("build") is None
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_run_deferred_task_routes_to_registered_handler(
    tmp_path: Path,
) -> None:
    received: list[dict[str, str]] = []

    async def handler(payload: dict[str, str]) -> None:
        received.append(payload)

    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'routing.sqlite'}",
    )
    SchedulerTaskDispatcher(scheduler=scheduler).register_handler("build", handler)
    try:
        await run_deferred_task("build", {"date": "2024-03-01"})
        await run_deferred_task("unknown", {"date": "2024-03-01"})
    finally:
        clear_registered_handlers()

    assert received == [{"date": "2024-03-01"}]
    await run_deferred_task("build", {"date": "2024-03-02"})
    assert len(received) == 1


@pytest.mark.asyncio
async def test_in_memory_dispatcher_runs_due_tasks_in_order() -> None:
    order: list[str] = []
    dispatcher = InMemoryTaskDispatcher(clock=lambda: NOW)

    async def handler(payload: dict[str, str]) -> None:
        order.append(payload["date"])
        if payload["date"] == "2024-03-01":
            dispatcher.enqueue("build", {"date": "2024-03-03"}, delay=1)

    dispatcher.register_handler("build", handler)
    dispatcher.enqueue("build", {"date": "2024-03-02"}, delay=10)
    dispatcher.enqueue("build", {"date": "2024-03-01"}, delay=0)

    assert await dispatcher.run_pending(until=NOW + timedelta(seconds=5)) == 2
    assert order == ["2024-03-01", "2024-03-03"]
    assert dispatcher.next_scheduled("build") == NOW + timedelta(seconds=10)

    assert await dispatcher.run_pending() == 1
    assert order[-1] == "2024-03-02"


def test_build_task_id_is_deterministic() -> None:
    assert build_task_id("build", {"b": "2", "a": "1"}) == "build:a=1&b=2"
    assert build_task_id("build") == "build:"


def test_disabled_in_memory_dispatcher_rejects_tasks() -> None:
    dispatcher = InMemoryTaskDispatcher(enabled=False)

    with pytest.raises(RuntimeError, match="disabled"):
        dispatcher.enqueue("build", {"date": "2024-03-01"}, delay=0)
