"""Taxonomy term ORM model and its association table."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Column, ForeignKey, Index, String, Table, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sitemap_builder.models.base import Base

if TYPE_CHECKING:
    from sitemap_builder.models.content_item import ContentItem

content_item_terms = Table(
    "content_item_terms",
    Base.metadata,
    Column(
        "content_item_id",
        Uuid(as_uuid=True),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "term_id",
        Uuid(as_uuid=True),
        ForeignKey("terms.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Term(Base):
    """A term in a taxonomy such as ``category`` or ``post_tag``."""

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("taxonomy", "slug", name="uq_terms_taxonomy_slug"),
        Index("ix_terms_taxonomy", "taxonomy"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    taxonomy: Mapped[str] = mapped_column(String(64), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)

    items: Mapped[list[ContentItem]] = relationship(
        secondary=content_item_terms, back_populates="terms"
    )


__all__ = ["Term", "content_item_terms"]
