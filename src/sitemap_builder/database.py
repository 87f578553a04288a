"""Database engine, session scope and startup consistency checks."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import Select, event, func, select, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from sitemap_builder.config import Settings, get_settings
from sitemap_builder.domain.collections import DEFAULT_MAX_ENTRIES
from sitemap_builder.models import (
    Author,
    Base,
    ContentImage,
    ContentItem,
    SitemapPartition,
    Term,
    content_item_terms,
)

DEFAULT_POOL_SIZE = 5
DEFAULT_MAX_OVERFLOW = 10
SQLITE_BUSY_TIMEOUT_SECONDS = 30

_database_health_logger = logging.getLogger("sitemap_builder.database.health")


@dataclass(slots=True, frozen=True)
class DatabaseHealthCheckResult:
    """What the startup check found: SQLite integrity plus dangling content rows."""

    integrity_ok: bool
    orphan_counts: dict[str, int] = field(default_factory=dict)
    oversized_partitions: int = 0

    @property
    def orphaned_rows(self) -> int:
        return sum(self.orphan_counts.values())

    @property
    def is_healthy(self) -> bool:
        return (
            self.integrity_ok
            and self.orphaned_rows == 0
            and self.oversized_partitions == 0
        )


def _is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def _sqlite_file_path(url: URL) -> Path | None:
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return None
    path = Path(database)
    return path if path.is_absolute() else Path.cwd() / path


def _build_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    connect_args: dict[str, int] = {}
    if _is_sqlite(url):
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS
        sqlite_path = _sqlite_file_path(url)
        if sqlite_path is not None:
            sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            sqlite_path.touch(exist_ok=True)

    built = create_async_engine(
        database_url,
        poolclass=AsyncAdaptedQueuePool,
        pool_pre_ping=True,
        pool_size=DEFAULT_POOL_SIZE,
        max_overflow=DEFAULT_MAX_OVERFLOW,
        connect_args=connect_args,
    )

    if _is_sqlite(url):

        @event.listens_for(built.sync_engine, "connect")
        def apply_sqlite_pragmas(dbapi_connection: Any, _: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return built


settings: Settings = get_settings()
engine = _build_engine(settings.DATABASE_URL)

AsyncSessionFactory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error."""

    session = AsyncSessionFactory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def initialize_database() -> None:
    """Create the content, option and partition tables; require WAL on SQLite."""

    async with engine.connect() as connection:
        await connection.run_sync(Base.metadata.create_all)
        if not _is_sqlite(connection.engine.url):
            return

        journal_mode = (await connection.execute(text("PRAGMA journal_mode;"))).scalar_one()
        if str(journal_mode).lower() != "wal":
            raise RuntimeError(
                f"SQLite WAL mode was not enabled. Current mode: {journal_mode}"
            )


def _orphan_count_queries() -> dict[str, Select[tuple[int]]]:
    return {
        "images_without_item": select(func.count())
        .select_from(ContentImage)
        .outerjoin(ContentItem, ContentItem.id == ContentImage.item_id)
        .where(ContentItem.id.is_(None)),
        "items_without_author": select(func.count())
        .select_from(ContentItem)
        .outerjoin(Author, Author.id == ContentItem.author_id)
        .where(ContentItem.author_id.is_not(None), Author.id.is_(None)),
        "term_links_without_item": select(func.count())
        .select_from(content_item_terms)
        .outerjoin(ContentItem, ContentItem.id == content_item_terms.c.content_item_id)
        .where(ContentItem.id.is_(None)),
        "term_links_without_term": select(func.count())
        .select_from(content_item_terms)
        .outerjoin(Term, Term.id == content_item_terms.c.term_id)
        .where(Term.id.is_(None)),
    }


async def _sqlite_integrity_ok(connection: AsyncConnection) -> bool:
    rows = (await connection.execute(text("PRAGMA integrity_check;"))).scalars().all()
    if len(rows) == 1 and rows[0] == "ok":
        return True
    _database_health_logger.error(
        "database_integrity_check_failed",
        extra={"integrity_rows": list(rows)},
    )
    return False


async def run_startup_database_health_check(
    *,
    target_engine: AsyncEngine | None = None,
    fail_fast_on_integrity_error: bool = True,
) -> DatabaseHealthCheckResult:
    """Check integrity, dangling content links and over-capacity partitions.

    Orphans and oversized partitions are reported, not repaired: the next
    rebuild of the affected dates rewrites those partitions anyway.
    """

    checked_engine = target_engine or engine
    async with checked_engine.connect() as connection:
        integrity_ok = True
        if _is_sqlite(connection.engine.url):
            integrity_ok = await _sqlite_integrity_ok(connection)

        orphan_counts = {
            name: int((await connection.execute(query)).scalar_one())
            for name, query in _orphan_count_queries().items()
        }
        oversized = int(
            (
                await connection.execute(
                    select(func.count())
                    .select_from(SitemapPartition)
                    .where(SitemapPartition.url_count > DEFAULT_MAX_ENTRIES)
                )
            ).scalar_one()
        )

    result = DatabaseHealthCheckResult(
        integrity_ok=integrity_ok,
        orphan_counts=orphan_counts,
        oversized_partitions=oversized,
    )
    if result.orphaned_rows or oversized:
        _database_health_logger.warning(
            "database_consistency_issues_detected",
            extra={
                "orphan_counts": orphan_counts,
                "oversized_partitions": oversized,
            },
        )
    _database_health_logger.info(
        "database_startup_health_check_completed",
        extra={
            "integrity_ok": result.integrity_ok,
            "orphaned_rows": result.orphaned_rows,
            "healthy": result.is_healthy,
        },
    )

    if fail_fast_on_integrity_error and not result.integrity_ok:
        raise RuntimeError(
            "Database integrity check failed. Review logs before restarting."
        )

    return result


async def close_database() -> None:
    await engine.dispose()


__all__ = [
    "AsyncSessionFactory",
    "DatabaseHealthCheckResult",
    "close_database",
    "engine",
    "initialize_database",
    "run_startup_database_health_check",
    "session_scope",
]
