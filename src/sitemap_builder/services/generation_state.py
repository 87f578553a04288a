"""Persisted generation progress and run bookkeeping over a key-value store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sitemap_builder.domain import GenerationProgress, SitemapDate
from sitemap_builder.services.option_store import KeyValueStore

IN_PROGRESS_OPTION = "sitemap_generation_in_progress"
TOTAL_OPTION = "sitemap_generation_total"
REMAINING_OPTION = "sitemap_generation_remaining"
CURRENT_DATE_OPTION = "sitemap_generation_current_date"
STOP_GENERATION_OPTION = "sitemap_stop_generation"
UPDATE_LAST_RUN_OPTION = "sitemap_update_last_run"
LAST_GENERATION_OPTION = "sitemap_last_generation"
LAST_CHECK_OPTION = "sitemap_last_check"
INDEXED_URL_COUNT_OPTION = "sitemap_indexed_url_count"

_state_logger = logging.getLogger("sitemap_builder.generation_state")


def _as_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=UTC)
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        _state_logger.warning("generation_state_invalid_timestamp", extra={"value": value})
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


class GenerationStateRepository:
    """Read and write the progress counters shared by every unit of work.

    Counters are written with ``autoload=False``; they change on every
    partition and are polled by status endpoints.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    async def load_progress(self) -> GenerationProgress:
        in_progress = bool(await self._store.get(IN_PROGRESS_OPTION, False))
        total = _as_int(await self._store.get(TOTAL_OPTION, 0))
        remaining = _as_int(await self._store.get(REMAINING_OPTION, 0))
        current_date: SitemapDate | None = None
        raw_date = await self._store.get(CURRENT_DATE_OPTION)
        if raw_date:
            try:
                current_date = SitemapDate.from_string(str(raw_date))
            except ValueError:
                current_date = None
        return GenerationProgress(
            in_progress=in_progress,
            total=total,
            remaining=remaining,
            current_date=current_date,
        )

    async def save_progress(self, progress: GenerationProgress) -> None:
        await self._store.set(IN_PROGRESS_OPTION, progress.in_progress, autoload=False)
        await self._store.set(TOTAL_OPTION, progress.total, autoload=False)
        await self._store.set(REMAINING_OPTION, progress.remaining, autoload=False)
        if progress.current_date is None:
            await self._store.delete(CURRENT_DATE_OPTION)
        else:
            await self._store.set(
                CURRENT_DATE_OPTION, str(progress.current_date), autoload=False
            )

    async def is_in_progress(self) -> bool:
        return bool(await self._store.get(IN_PROGRESS_OPTION, False))

    async def request_stop(self) -> None:
        await self._store.set(STOP_GENERATION_OPTION, True, autoload=False)

    async def stop_requested(self) -> bool:
        return bool(await self._store.get(STOP_GENERATION_OPTION, False))

    async def clear_stop(self) -> bool:
        return await self._store.delete(STOP_GENERATION_OPTION)

    async def record_timestamp(self, key: str, moment: datetime) -> None:
        await self._store.set(key, moment.astimezone(UTC).isoformat())

    async def get_timestamp(self, key: str) -> datetime | None:
        return _parse_timestamp(await self._store.get(key))

    async def set_indexed_url_count(self, count: int) -> None:
        await self._store.set(INDEXED_URL_COUNT_OPTION, count)

    async def get_indexed_url_count(self) -> int:
        return _as_int(await self._store.get(INDEXED_URL_COUNT_OPTION, 0))


__all__ = [
    "CURRENT_DATE_OPTION",
    "GenerationStateRepository",
    "INDEXED_URL_COUNT_OPTION",
    "IN_PROGRESS_OPTION",
    "LAST_CHECK_OPTION",
    "LAST_GENERATION_OPTION",
    "REMAINING_OPTION",
    "STOP_GENERATION_OPTION",
    "TOTAL_OPTION",
    "UPDATE_LAST_RUN_OPTION",
]
