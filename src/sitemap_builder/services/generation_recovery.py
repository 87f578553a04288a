"""Startup and shutdown recovery for interrupted generation runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sitemap_builder.domain import GenerationProgress
from sitemap_builder.services.generation_scheduler import (
    BackgroundGenerationScheduler,
    StateRepair,
)

_recovery_logger = logging.getLogger("sitemap_builder.recovery")


@dataclass(slots=True, frozen=True)
class StartupRecoveryResult:
    """Startup recovery outcome details used by boot logs."""

    progress: GenerationProgress
    repair: StateRepair

    @property
    def interrupted(self) -> bool:
        return self.repair.cleared_stale_flag


class GenerationStateRecoveryService:
    """Reconcile persisted progress with the job store after a restart.

    Pending APScheduler jobs survive a restart in the job store, so a run
    with tasks still queued simply resumes. A run whose flag is set but
    whose tasks are gone is marked stopped; the next detection pass picks
    up whatever dates it left unbuilt.
    """

    def __init__(self, *, scheduler: BackgroundGenerationScheduler) -> None:
        self._scheduler = scheduler

    async def handle_startup_recovery(self) -> StartupRecoveryResult:
        repair = await self._scheduler.repair_state()
        progress = await self._scheduler.get_progress_snapshot()
        if repair.repaired:
            _recovery_logger.warning(
                "startup_generation_state_repaired",
                extra={
                    "cleared_stale_flag": repair.cleared_stale_flag,
                    "cancelled_tasks": repair.cancelled_tasks,
                    "total": progress.total,
                    "remaining": progress.remaining,
                },
            )
        elif progress.in_progress:
            _recovery_logger.info(
                "startup_generation_resumed",
                extra={"total": progress.total, "remaining": progress.remaining},
            )
        else:
            _recovery_logger.info("startup_generation_state_consistent")

        return StartupRecoveryResult(progress=progress, repair=repair)

    async def summarize_shutdown(self) -> GenerationProgress:
        progress = await self._scheduler.get_progress_snapshot()
        _recovery_logger.info(
            "shutdown_generation_summary",
            extra=progress.to_dict(),
        )
        return progress


__all__ = ["GenerationStateRecoveryService", "StartupRecoveryResult"]
