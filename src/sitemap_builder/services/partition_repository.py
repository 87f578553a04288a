"""Storage for built sitemap partitions keyed by date."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitemap_builder.models import SitemapPartition
from sitemap_builder.services.content_repository import as_utc

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_partition_logger = logging.getLogger("sitemap_builder.partitions")


@dataclass(slots=True, frozen=True)
class StoredPartition:
    """Serialized partition content and build metadata."""

    partition_date: date
    xml_content: str
    url_count: int
    built_at: datetime


class SitemapPartitionRepository:
    """Persist one serialized URL set per calendar date.

    ``save`` overwrites any existing row for the date in a single
    transaction, so redelivered generation tasks are idempotent.
    """

    def __init__(self, *, session_factory: SessionScopeFactory | None = None) -> None:
        if session_factory is None:
            from sitemap_builder.database import session_scope

            session_factory = session_scope

        self._session_factory = session_factory

    async def save(
        self,
        partition_date: date,
        xml_content: str,
        url_count: int,
        *,
        built_at: datetime | None = None,
    ) -> StoredPartition:
        built_at = built_at or datetime.now(UTC)
        async with self._session_factory() as session:
            partition = await session.scalar(
                select(SitemapPartition).where(
                    SitemapPartition.partition_date == partition_date
                )
            )
            if partition is None:
                partition = SitemapPartition(partition_date=partition_date)
                session.add(partition)
            partition.xml_content = xml_content
            partition.url_count = url_count
            partition.built_at = built_at

        _partition_logger.info(
            "sitemap_partition_saved",
            extra={"date": partition_date.isoformat(), "url_count": url_count},
        )
        return StoredPartition(
            partition_date=partition_date,
            xml_content=xml_content,
            url_count=url_count,
            built_at=as_utc(built_at),
        )

    async def find_by_date(self, partition_date: date) -> StoredPartition | None:
        async with self._session_factory() as session:
            partition = await session.scalar(
                select(SitemapPartition).where(
                    SitemapPartition.partition_date == partition_date
                )
            )
            if partition is None:
                return None
            return StoredPartition(
                partition_date=partition.partition_date,
                xml_content=partition.xml_content,
                url_count=partition.url_count,
                built_at=as_utc(partition.built_at),
            )

    async def delete_by_date(self, partition_date: date) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(SitemapPartition).where(
                    SitemapPartition.partition_date == partition_date
                )
            )
        deleted = bool(result.rowcount)
        if deleted:
            _partition_logger.info(
                "sitemap_partition_deleted",
                extra={"date": partition_date.isoformat()},
            )
        return deleted

    async def delete_for_dates(self, partition_dates: Iterable[date]) -> int:
        date_list = list(partition_dates)
        if not date_list:
            return 0
        async with self._session_factory() as session:
            result = await session.execute(
                delete(SitemapPartition).where(
                    SitemapPartition.partition_date.in_(date_list)
                )
            )
        return int(result.rowcount or 0)

    async def get_all_dates(self) -> list[date]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(SitemapPartition.partition_date).order_by(
                        SitemapPartition.partition_date.asc()
                    )
                )
            ).scalars()
            return list(rows)

    async def get_url_counts(self, partition_dates: Iterable[date]) -> dict[date, int]:
        date_list = list(partition_dates)
        if not date_list:
            return {}
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(SitemapPartition.partition_date, SitemapPartition.url_count)
                    .where(SitemapPartition.partition_date.in_(date_list))
                )
            ).all()
        return {partition_date: int(url_count) for partition_date, url_count in rows}

    async def get_build_times(self) -> dict[date, datetime]:
        async with self._session_factory() as session:
            rows = (
                await session.execute(
                    select(SitemapPartition.partition_date, SitemapPartition.built_at)
                )
            ).all()
        return {partition_date: as_utc(built_at) for partition_date, built_at in rows}

    async def count(self) -> int:
        async with self._session_factory() as session:
            return int(
                (await session.scalar(select(func.count(SitemapPartition.id)))) or 0
            )

    async def total_url_count(self) -> int:
        async with self._session_factory() as session:
            return int(
                (
                    await session.scalar(
                        select(func.coalesce(func.sum(SitemapPartition.url_count), 0))
                    )
                )
                or 0
            )


__all__ = ["SitemapPartitionRepository", "StoredPartition"]
