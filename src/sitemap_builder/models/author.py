"""Author ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sitemap_builder.models.base import Base

if TYPE_CHECKING:
    from sitemap_builder.models.content_item import ContentItem


class Author(Base):
    """Content author with a public archive page."""

    __tablename__ = "authors"
    __table_args__ = (UniqueConstraint("slug", name="uq_authors_slug"),)

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    items: Mapped[list[ContentItem]] = relationship(back_populates="author")


__all__ = ["Author"]
