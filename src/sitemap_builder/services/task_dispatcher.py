"""Deferred task dispatchers for staggered background generation.

A dispatcher runs named actions with a small string payload after a delay.
Delivery is at-least-once: handlers must tolerate redelivery. Tasks that
share an action name form one lane that ``cancel_all`` clears in one call.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from sitemap_builder.services.scheduler import SchedulerService

TaskHandler = Callable[[dict[str, str]], Awaitable[None]]
Clock = Callable[[], datetime]

_dispatcher_logger = logging.getLogger("sitemap_builder.dispatcher")

_registered_handlers: dict[str, TaskHandler] = {}


def _utc_now() -> datetime:
    return datetime.now(UTC)


def build_task_id(action: str, payload: Mapping[str, str] | None = None) -> str:
    """Return a deterministic id so re-enqueueing the same work replaces it."""

    if not payload:
        return f"{action}:"
    encoded = "&".join(f"{key}={payload[key]}" for key in sorted(payload))
    return f"{action}:{encoded}"


class TaskDispatcher(Protocol):
    """Deferred-task dispatcher contract."""

    @property
    def enabled(self) -> bool: ...

    def register_handler(self, action: str, handler: TaskHandler) -> None: ...

    def enqueue(
        self,
        action: str,
        payload: Mapping[str, str],
        delay: float,
    ) -> str: ...

    def cancel_all(self, action: str) -> int: ...

    def next_scheduled(
        self,
        action: str,
        payload: Mapping[str, str] | None = None,
    ) -> datetime | None: ...


async def run_deferred_task(action: str, payload: dict[str, str]) -> None:
    """APScheduler entry point; routes a stored job to its registered handler."""

    handler = _registered_handlers.get(action)
    if handler is None:
        _dispatcher_logger.error(
            "deferred_task_handler_missing",
            extra={"action": action, "payload": payload},
        )
        return
    await handler(payload)


def clear_registered_handlers() -> None:
    _registered_handlers.clear()


class SchedulerTaskDispatcher:
    """Dispatch deferred tasks as one-shot APScheduler date jobs."""

    def __init__(
        self,
        *,
        scheduler: SchedulerService,
        clock: Clock | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._clock = clock or _utc_now

    @property
    def enabled(self) -> bool:
        return self._scheduler.enabled

    def register_handler(self, action: str, handler: TaskHandler) -> None:
        _registered_handlers[action] = handler

    def enqueue(
        self,
        action: str,
        payload: Mapping[str, str],
        delay: float,
    ) -> str:
        task_id = build_task_id(action, payload)
        run_date = self._clock() + timedelta(seconds=max(0.0, delay))
        self._scheduler.add_date_job(
            job_id=task_id,
            func=run_deferred_task,
            run_date=run_date,
            args=(action, dict(payload)),
            name=action,
        )
        _dispatcher_logger.debug(
            "deferred_task_enqueued",
            extra={"task_id": task_id, "run_date": run_date.isoformat()},
        )
        return task_id

    def cancel_all(self, action: str) -> int:
        if not self._scheduler.enabled:
            return 0
        return self._scheduler.remove_jobs(build_task_id(action))

    def next_scheduled(
        self,
        action: str,
        payload: Mapping[str, str] | None = None,
    ) -> datetime | None:
        if payload:
            task_id = build_task_id(action, payload)
            if not self._scheduler.has_job(task_id):
                return None
            return self._scheduler.next_run_time(task_id)
        return self._scheduler.next_run_time(build_task_id(action))


@dataclass(slots=True, frozen=True)
class PendingTask:
    """Task waiting in the in-memory dispatcher."""

    task_id: str
    action: str
    payload: dict[str, str]
    run_at: datetime


class InMemoryTaskDispatcher:
    """Process-local dispatcher whose tasks run only when ``run_pending`` is awaited."""

    def __init__(self, *, enabled: bool = True, clock: Clock | None = None) -> None:
        self._enabled = enabled
        self._clock = clock or _utc_now
        self._handlers: dict[str, TaskHandler] = {}
        self._tasks: dict[str, PendingTask] = {}
        self.executed: list[PendingTask] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def pending(self) -> list[PendingTask]:
        return sorted(self._tasks.values(), key=lambda task: task.run_at)

    def register_handler(self, action: str, handler: TaskHandler) -> None:
        self._handlers[action] = handler

    def enqueue(
        self,
        action: str,
        payload: Mapping[str, str],
        delay: float,
    ) -> str:
        if not self._enabled:
            raise RuntimeError("Task dispatcher is disabled")
        task_id = build_task_id(action, payload)
        self._tasks[task_id] = PendingTask(
            task_id=task_id,
            action=action,
            payload=dict(payload),
            run_at=self._clock() + timedelta(seconds=max(0.0, delay)),
        )
        return task_id

    def cancel_all(self, action: str) -> int:
        matching = [
            task_id for task_id, task in self._tasks.items() if task.action == action
        ]
        for task_id in matching:
            del self._tasks[task_id]
        return len(matching)

    def next_scheduled(
        self,
        action: str,
        payload: Mapping[str, str] | None = None,
    ) -> datetime | None:
        if payload:
            task = self._tasks.get(build_task_id(action, payload))
            return task.run_at if task is not None else None

        run_times = [task.run_at for task in self._tasks.values() if task.action == action]
        if not run_times:
            return None
        return min(run_times)

    async def run_pending(self, *, until: datetime | None = None) -> int:
        """Run tasks in run-time order, including ones enqueued while running.

        With ``until`` set, only tasks due at or before it run; otherwise
        every pending task runs regardless of its delay.
        """

        executed = 0
        while True:
            due = [
                task
                for task in self.pending
                if until is None or task.run_at <= until
            ]
            if not due:
                return executed

            task = due[0]
            del self._tasks[task.task_id]
            handler = self._handlers.get(task.action)
            if handler is None:
                raise LookupError(f"No handler registered for action '{task.action}'")
            self.executed.append(task)
            await handler(task.payload)
            executed += 1

    async def redeliver(self, task: PendingTask) -> None:
        """Run an already executed task again, as an at-least-once dispatcher may."""

        handler = self._handlers[task.action]
        await handler(task.payload)


__all__ = [
    "InMemoryTaskDispatcher",
    "PendingTask",
    "SchedulerTaskDispatcher",
    "TaskDispatcher",
    "TaskHandler",
    "build_task_id",
    "clear_registered_handlers",
    "run_deferred_task",
]
