"""Shared fixtures: an isolated SQLite database and content seeding helpers."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.sqlite")

from sitemap_builder.config import Settings
from sitemap_builder.models import Author, Base, ContentImage, ContentItem, Term
from sitemap_builder.services.content_repository import SessionScopeFactory

AddContent = Callable[..., Awaitable[UUID]]


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[SessionScopeFactory]:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'sitemaps.sqlite'}"
    engine = create_async_engine(database_url)
    sessionmaker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def scoped_session() -> AsyncIterator[AsyncSession]:
        session = sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield scoped_session

    await engine.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///./test.sqlite",
        SITE_URL="https://blog.example",
        SCHEDULER_ENABLED=False,
    )


@pytest.fixture
def add_content(session_factory: SessionScopeFactory) -> AddContent:
    """Insert one content item, creating its author and terms on demand."""

    async def _add_content(
        url: str,
        published_at: datetime,
        *,
        modified_at: datetime | None = None,
        content_type: str = "post",
        status: str = "publish",
        title: str = "",
        author: str | None = None,
        terms: Sequence[tuple[str, str]] = (),
        images: Sequence[tuple[str, bool]] = (),
    ) -> UUID:
        async with session_factory() as session:
            author_row: Author | None = None
            if author is not None:
                author_row = await session.scalar(
                    select(Author).where(Author.slug == author)
                )
                if author_row is None:
                    author_row = Author(
                        slug=author,
                        display_name=author.title(),
                        url=f"https://blog.example/author/{author}/",
                    )
                    session.add(author_row)

            term_rows: list[Term] = []
            for taxonomy, slug in terms:
                term = await session.scalar(
                    select(Term).where(Term.taxonomy == taxonomy, Term.slug == slug)
                )
                if term is None:
                    term = Term(
                        taxonomy=taxonomy,
                        slug=slug,
                        name=slug.title(),
                        url=f"https://blog.example/{taxonomy}/{slug}/",
                    )
                    session.add(term)
                term_rows.append(term)

            item = ContentItem(
                content_type=content_type,
                status=status,
                title=title or url,
                url=url,
                published_at=published_at,
                published_on=published_at.date(),
                modified_at=modified_at or published_at,
                author=author_row,
                terms=term_rows,
                images=[
                    ContentImage(url=image_url, is_featured=is_featured)
                    for image_url, is_featured in images
                ],
            )
            session.add(item)
            await session.flush()
            return item.id

    return _add_content
