"""Read-only queries over published content used by sitemap generation."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import Select, distinct, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitemap_builder.models import (
    Author,
    ContentImage,
    ContentItem,
    Term,
    content_item_terms,
)

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

DEFAULT_POST_TYPES: tuple[str, ...] = ("post",)
DEFAULT_POST_STATUS = "publish"
PAGE_CONTENT_TYPE = "page"


def as_utc(value: datetime) -> datetime:
    """Treat naive values read back from SQLite as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(slots=True, frozen=True)
class ContentRecord:
    """Published item as seen by content providers."""

    id: UUID
    content_type: str
    url: str
    title: str
    published_at: datetime
    modified_at: datetime
    author_id: UUID | None = None


@dataclass(slots=True, frozen=True)
class ImageRecord:
    """Image metadata attached to a published item."""

    url: str
    is_featured: bool
    title: str | None = None
    caption: str | None = None
    geo_location: str | None = None
    license: str | None = None


@dataclass(slots=True, frozen=True)
class ArchiveRecord:
    """Term or author archive with its published item count."""

    id: UUID
    slug: str
    name: str
    url: str
    item_count: int
    last_modified: datetime | None


def _content_record(item: ContentItem) -> ContentRecord:
    return ContentRecord(
        id=item.id,
        content_type=item.content_type,
        url=item.url,
        title=item.title,
        published_at=as_utc(item.published_at),
        modified_at=as_utc(item.modified_at),
        author_id=item.author_id,
    )


class ContentRepository:
    """Query published content partitioned by publication date."""

    def __init__(
        self,
        *,
        session_factory: SessionScopeFactory | None = None,
        post_types: Sequence[str] = DEFAULT_POST_TYPES,
        post_status: str = DEFAULT_POST_STATUS,
    ) -> None:
        if session_factory is None:
            from sitemap_builder.database import session_scope

            session_factory = session_scope

        self._session_factory = session_factory
        self._post_types = tuple(post_types)
        self._post_status = post_status

    @property
    def post_types(self) -> tuple[str, ...]:
        return self._post_types

    def _published(self, statement: Select) -> Select:  # type: ignore[type-arg]
        return statement.where(
            ContentItem.content_type.in_(self._post_types),
            ContentItem.status == self._post_status,
        )

    async def get_dates_with_content(self) -> list[date]:
        statement = self._published(
            select(distinct(ContentItem.published_on))
        ).order_by(ContentItem.published_on.asc())
        async with self._session_factory() as session:
            rows = (await session.execute(statement)).scalars().all()
        return [_to_date(row) for row in rows]

    async def get_dates_for_year(self, year: int) -> list[date]:
        statement = (
            self._published(select(distinct(ContentItem.published_on)))
            .where(extract("year", ContentItem.published_on) == year)
            .order_by(ContentItem.published_on.asc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(statement)).scalars().all()
        return [_to_date(row) for row in rows]

    async def get_years_with_content(self) -> list[int]:
        return sorted({day.year for day in await self.get_dates_with_content()})

    async def get_items_for_date(
        self,
        day: date,
        *,
        limit: int,
    ) -> list[ContentRecord]:
        statement = (
            self._published(select(ContentItem))
            .where(ContentItem.published_on == day)
            .order_by(ContentItem.published_at.asc(), ContentItem.id.asc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            items = (await session.execute(statement)).scalars().all()
        return [_content_record(item) for item in items]

    async def date_has_content(self, day: date) -> bool:
        statement = (
            self._published(select(ContentItem.id))
            .where(ContentItem.published_on == day)
            .limit(1)
        )
        async with self._session_factory() as session:
            found = await session.scalar(statement)
        return found is not None

    async def count_items_for_dates(self, days: Iterable[date]) -> int:
        day_list = list(days)
        if not day_list:
            return 0
        statement = self._published(select(func.count(ContentItem.id))).where(
            ContentItem.published_on.in_(day_list)
        )
        async with self._session_factory() as session:
            return int((await session.scalar(statement)) or 0)

    async def count_modified_since(self, since: datetime) -> int:
        statement = self._published(select(func.count(ContentItem.id))).where(
            ContentItem.modified_at > as_utc(since)
        )
        async with self._session_factory() as session:
            return int((await session.scalar(statement)) or 0)

    async def get_max_modified_by_date(
        self,
        days: Iterable[date] | None = None,
    ) -> dict[date, datetime]:
        statement = self._published(
            select(ContentItem.published_on, func.max(ContentItem.modified_at))
        ).group_by(ContentItem.published_on)
        if days is not None:
            day_list = list(days)
            if not day_list:
                return {}
            statement = statement.where(ContentItem.published_on.in_(day_list))

        async with self._session_factory() as session:
            rows = (await session.execute(statement)).all()

        result: dict[date, datetime] = {}
        for published_on, max_modified in rows:
            if max_modified is None:
                continue
            if isinstance(max_modified, str):
                max_modified = datetime.fromisoformat(max_modified)
            result[_to_date(published_on)] = as_utc(max_modified)
        return result

    async def get_images_for_urls(
        self,
        urls: Sequence[str],
        *,
        include_featured: bool = True,
        include_content: bool = True,
    ) -> dict[str, list[ImageRecord]]:
        if not urls or not (include_featured or include_content):
            return {}

        statement = (
            select(ContentItem.url, ContentImage)
            .join(ContentImage, ContentImage.item_id == ContentItem.id)
            .where(
                ContentItem.url.in_(list(urls)),
                ContentItem.status == self._post_status,
            )
            .order_by(
                ContentItem.url.asc(),
                ContentImage.is_featured.desc(),
                ContentImage.url.asc(),
            )
        )
        if not include_featured:
            statement = statement.where(ContentImage.is_featured.is_(False))
        if not include_content:
            statement = statement.where(ContentImage.is_featured.is_(True))

        async with self._session_factory() as session:
            rows = (await session.execute(statement)).all()

        images_by_url: dict[str, list[ImageRecord]] = {}
        for item_url, image in rows:
            images_by_url.setdefault(item_url, []).append(
                ImageRecord(
                    url=image.url,
                    is_featured=image.is_featured,
                    title=image.title,
                    caption=image.caption,
                    geo_location=image.geo_location,
                    license=image.license,
                )
            )
        return images_by_url

    def _term_archive_statement(self, taxonomy: str) -> Select:  # type: ignore[type-arg]
        return (
            select(
                Term,
                func.count(ContentItem.id).label("item_count"),
                func.max(ContentItem.modified_at).label("last_modified"),
            )
            .join(content_item_terms, content_item_terms.c.term_id == Term.id)
            .join(ContentItem, ContentItem.id == content_item_terms.c.content_item_id)
            .where(
                Term.taxonomy == taxonomy,
                ContentItem.content_type.in_(self._post_types),
                ContentItem.status == self._post_status,
            )
            .group_by(Term.id)
        )

    async def count_terms(self, taxonomy: str) -> int:
        statement = select(func.count()).select_from(
            self._term_archive_statement(taxonomy).subquery()
        )
        async with self._session_factory() as session:
            return int((await session.scalar(statement)) or 0)

    async def get_terms(
        self,
        taxonomy: str,
        *,
        offset: int,
        limit: int,
    ) -> list[ArchiveRecord]:
        statement = (
            self._term_archive_statement(taxonomy)
            .order_by(Term.name.asc(), Term.id.asc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(statement)).all()

        return [
            ArchiveRecord(
                id=term.id,
                slug=term.slug,
                name=term.name,
                url=term.url,
                item_count=int(item_count),
                last_modified=_optional_utc(last_modified),
            )
            for term, item_count, last_modified in rows
        ]

    def _author_archive_statement(self) -> Select:  # type: ignore[type-arg]
        return (
            select(
                Author,
                func.count(ContentItem.id).label("item_count"),
                func.max(ContentItem.modified_at).label("last_modified"),
            )
            .join(ContentItem, ContentItem.author_id == Author.id)
            .where(
                ContentItem.content_type.in_(self._post_types),
                ContentItem.status == self._post_status,
            )
            .group_by(Author.id)
        )

    async def count_authors(self) -> int:
        statement = select(func.count()).select_from(
            self._author_archive_statement().subquery()
        )
        async with self._session_factory() as session:
            return int((await session.scalar(statement)) or 0)

    async def get_authors(self, *, offset: int, limit: int) -> list[ArchiveRecord]:
        statement = (
            self._author_archive_statement()
            .order_by(Author.display_name.asc(), Author.id.asc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(statement)).all()

        return [
            ArchiveRecord(
                id=author.id,
                slug=author.slug,
                name=author.display_name,
                url=author.url,
                item_count=int(item_count),
                last_modified=_optional_utc(last_modified),
            )
            for author, item_count, last_modified in rows
        ]

    def _page_statement(self) -> Select:  # type: ignore[type-arg]
        return select(ContentItem).where(
            ContentItem.content_type == PAGE_CONTENT_TYPE,
            ContentItem.status == self._post_status,
        )

    async def count_pages(self) -> int:
        statement = select(func.count()).select_from(self._page_statement().subquery())
        async with self._session_factory() as session:
            return int((await session.scalar(statement)) or 0)

    async def get_pages(self, *, offset: int, limit: int) -> list[ContentRecord]:
        statement = (
            self._page_statement()
            .order_by(ContentItem.published_at.asc(), ContentItem.id.asc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_factory() as session:
            items = (await session.execute(statement)).scalars().all()
        return [_content_record(item) for item in items]


def _optional_utc(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return as_utc(value)


__all__ = [
    "ArchiveRecord",
    "ContentRecord",
    "ContentRepository",
    "DEFAULT_POST_STATUS",
    "DEFAULT_POST_TYPES",
    "ImageRecord",
    "PAGE_CONTENT_TYPE",
    "as_utc",
]
