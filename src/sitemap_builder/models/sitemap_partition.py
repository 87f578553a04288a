"""Built sitemap partition ORM model."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Integer, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from sitemap_builder.models.base import Base


class SitemapPartition(Base):
    """Serialized URL set for one calendar date, overwritten on rebuild."""

    __tablename__ = "sitemap_partitions"
    __table_args__ = (
        UniqueConstraint("partition_date", name="uq_sitemap_partitions_date"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    partition_date: Mapped[date] = mapped_column(Date, nullable=False)
    xml_content: Mapped[str] = mapped_column(Text, nullable=False)
    url_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    built_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


__all__ = ["SitemapPartition"]
