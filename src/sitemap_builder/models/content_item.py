"""Published content ORM models."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sitemap_builder.models.base import Base
from sitemap_builder.models.term import content_item_terms

if TYPE_CHECKING:
    from sitemap_builder.models.author import Author
    from sitemap_builder.models.term import Term


def _published_on_default(context: Any) -> date | None:
    published_at = context.get_current_parameters().get("published_at")
    if published_at is None:
        return None
    return published_at.date()


class ContentItem(Base):
    """A post, page, or other publishable item."""

    __tablename__ = "content_items"
    __table_args__ = (
        Index(
            "ix_content_items_type_status_published_on",
            "content_type",
            "status",
            "published_on",
        ),
        Index("ix_content_items_modified_at", "modified_at"),
        Index("ix_content_items_url", "url"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    content_type: Mapped[str] = mapped_column(String(32), nullable=False, default="post")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="publish")
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    author_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("authors.id", ondelete="SET NULL"),
    )
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    published_on: Mapped[date] = mapped_column(
        Date, nullable=False, default=_published_on_default
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    author: Mapped[Author | None] = relationship(back_populates="items")
    images: Mapped[list[ContentImage]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
    )
    terms: Mapped[list[Term]] = relationship(
        secondary=content_item_terms, back_populates="items"
    )


class ContentImage(Base):
    """Image referenced by a content item, either featured or inline."""

    __tablename__ = "content_images"
    __table_args__ = (Index("ix_content_images_item_id", "item_id"),)

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    item_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    title: Mapped[str | None] = mapped_column(String(2048))
    caption: Mapped[str | None] = mapped_column(String(2048))
    geo_location: Mapped[str | None] = mapped_column(String(2048))
    license: Mapped[str | None] = mapped_column(String(2048))

    item: Mapped[ContentItem] = relationship(back_populates="images")


__all__ = ["ContentImage", "ContentItem"]
