"""Application entry point for the sitemap builder service."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
import logging
import signal
from typing import Any

from fastapi import FastAPI, Request
from starlette.responses import Response
import uvicorn

from sitemap_builder import __version__
from sitemap_builder.api import generation_router, scheduler_router, sitemaps_router
from sitemap_builder.config import get_settings
from sitemap_builder.database import (
    close_database,
    initialize_database,
    run_startup_database_health_check,
)
from sitemap_builder.services.container import build_sitemap_services
from sitemap_builder.services.generation_tasks import set_automatic_update_service
from sitemap_builder.services.scheduler import SchedulerService
from sitemap_builder.services.task_dispatcher import (
    SchedulerTaskDispatcher,
    clear_registered_handlers,
)
from sitemap_builder.utils.logging import (
    add_request_logging_middleware,
    setup_logging,
)

__all__ = ["app", "create_app", "main"]

_lifecycle_logger = logging.getLogger("sitemap_builder.lifecycle")


def _initialize_lifecycle_state(app: FastAPI) -> None:
    app.state.inflight_requests = 0
    app.state.requests_drained = asyncio.Event()
    app.state.requests_drained.set()
    app.state.shutdown_requested = asyncio.Event()
    app.state.shutdown_signal = None
    app.state.session_started_at = datetime.now(UTC)


def _handle_shutdown_signal(app: FastAPI, signum: int) -> None:
    if app.state.shutdown_requested.is_set():
        return

    app.state.shutdown_signal = signal.Signals(signum).name
    app.state.shutdown_requested.set()
    _lifecycle_logger.warning(
        "shutdown_signal_received",
        extra={"signal": app.state.shutdown_signal},
    )


async def _wait_for_inflight_requests(app: FastAPI, *, timeout_seconds: int) -> bool:
    if app.state.inflight_requests <= 0:
        return True

    try:
        await asyncio.wait_for(
            app.state.requests_drained.wait(), timeout=timeout_seconds
        )
    except TimeoutError:
        return False

    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    _initialize_lifecycle_state(app)

    scheduler_service = SchedulerService.from_settings(settings)
    dispatcher = SchedulerTaskDispatcher(scheduler=scheduler_service)
    services = build_sitemap_services(settings, dispatcher=dispatcher)
    set_automatic_update_service(services.automatic_update)
    app.state.scheduler_service = scheduler_service
    app.state.sitemap_services = services

    previous_handlers: dict[signal.Signals, Any] = {}
    for handled_signal in (signal.SIGTERM, signal.SIGINT):
        previous_handlers[handled_signal] = signal.getsignal(handled_signal)

        def _signal_handler(signum: int, frame: object | None) -> None:
            _handle_shutdown_signal(app, signum)
            previous_handler = previous_handlers[signal.Signals(signum)]
            if callable(previous_handler):
                previous_handler(signum, frame)

        signal.signal(handled_signal, _signal_handler)

    await initialize_database()
    await run_startup_database_health_check()
    if settings.SITEMAP_AUTOMATIC_UPDATE_ENABLED:
        services.automatic_update.register_job(
            scheduler_service,
            seconds=settings.SITEMAP_AUTOMATIC_UPDATE_INTERVAL_SECONDS,
        )
    await scheduler_service.start()
    recovery_result = await services.recovery.handle_startup_recovery()
    _lifecycle_logger.info(
        "startup_recovery_summary",
        extra={
            "generation_in_progress": recovery_result.progress.in_progress,
            "generation_interrupted": recovery_result.interrupted,
            "stray_tasks_cancelled": recovery_result.repair.cancelled_tasks,
            "partitions_built": await services.partition_repository.count(),
            "cron_available": services.scheduler.is_cron_available(),
        },
    )

    try:
        yield
    finally:
        graceful_shutdown = await _wait_for_inflight_requests(
            app,
            timeout_seconds=settings.SHUTDOWN_GRACE_PERIOD_SECONDS,
        )
        await scheduler_service.shutdown()
        progress = await services.recovery.summarize_shutdown()
        _lifecycle_logger.info(
            "shutdown_summary",
            extra={
                "generation_in_progress": progress.in_progress,
                "generation_remaining": progress.remaining,
                "graceful_shutdown": graceful_shutdown,
                "forced_timeout": not graceful_shutdown,
                "inflight_requests": app.state.inflight_requests,
                "signal": app.state.shutdown_signal,
            },
        )
        for handled_signal, previous_handler in previous_handlers.items():
            signal.signal(handled_signal, previous_handler)
        set_automatic_update_service(None)
        clear_registered_handlers()
        await close_database()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(title="Sitemap Builder", version=__version__, lifespan=lifespan)
    _initialize_lifecycle_state(app)

    @app.middleware("http")
    async def track_inflight_requests(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        app.state.inflight_requests = (
            int(getattr(app.state, "inflight_requests", 0)) + 1
        )
        requests_drained = getattr(app.state, "requests_drained", None)
        if requests_drained is None:
            requests_drained = asyncio.Event()
            app.state.requests_drained = requests_drained
        requests_drained.clear()
        try:
            response = await call_next(request)
        finally:
            app.state.inflight_requests = max(0, app.state.inflight_requests - 1)
            if app.state.inflight_requests == 0:
                requests_drained.set()
        return response

    app.state.settings = settings
    add_request_logging_middleware(app)
    app.include_router(generation_router)
    app.include_router(scheduler_router)
    app.include_router(sitemaps_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "sitemap_builder.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )
