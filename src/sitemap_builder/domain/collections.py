"""Bounded URL and sitemap-index collections.

The sitemap protocol caps a single file at 50,000 entries. Constructors
truncate oversized input to the collection's capacity and log a warning;
explicit ``add()`` calls past capacity raise ``CollectionCapacityError``.
``SitemapContent`` is the immutable variant: ``add()`` returns a new
instance, or the same instance once full.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

from sitemap_builder.domain.entries import SitemapIndexEntry, UrlEntry
from sitemap_builder.domain.errors import CollectionCapacityError

DEFAULT_MAX_ENTRIES = 50_000

_collection_logger = logging.getLogger("sitemap_builder.domain.collections")

EntryT = TypeVar("EntryT", UrlEntry, SitemapIndexEntry)


def _validate_capacity(max_entries: int) -> int:
    if max_entries < 1:
        raise CollectionCapacityError("Collection capacity must be at least 1")
    if max_entries > DEFAULT_MAX_ENTRIES:
        raise CollectionCapacityError(
            f"Collection capacity cannot exceed {DEFAULT_MAX_ENTRIES}: {max_entries}"
        )
    return max_entries


def _bounded_entries(
    entries: Iterable[EntryT],
    *,
    entry_type: type[EntryT],
    max_entries: int,
    collection_name: str,
) -> list[EntryT]:
    materialized = list(entries)
    for entry in materialized:
        if not isinstance(entry, entry_type):
            raise TypeError(
                f"{collection_name} only accepts {entry_type.__name__} values"
            )

    if len(materialized) > max_entries:
        _collection_logger.warning(
            "collection_truncated",
            extra={
                "collection": collection_name,
                "received_entries": len(materialized),
                "max_entries": max_entries,
            },
        )
        del materialized[max_entries:]

    return materialized


class _BoundedCollection(Generic[EntryT]):
    """Ordered, capacity-limited list of entries."""

    _entry_type: type[EntryT]

    def __init__(
        self,
        entries: Iterable[EntryT] = (),
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._max_entries = _validate_capacity(max_entries)
        self._entries = _bounded_entries(
            entries,
            entry_type=self._entry_type,
            max_entries=self._max_entries,
            collection_name=type(self).__name__,
        )

    @property
    def entries(self) -> tuple[EntryT, ...]:
        return tuple(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def add(self, entry: EntryT) -> None:
        if not isinstance(entry, self._entry_type):
            raise TypeError(
                f"{type(self).__name__} only accepts {self._entry_type.__name__} values"
            )
        if self.is_full():
            raise CollectionCapacityError(
                f"{type(self).__name__} is full ({self._max_entries} entries)"
            )
        self._entries.append(entry)

    def remove(self, entry: EntryT) -> bool:
        try:
            self._entries.remove(entry)
        except ValueError:
            return False
        return True

    def contains(self, entry: EntryT) -> bool:
        return entry in self._entries

    def count(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def is_full(self) -> bool:
        return len(self._entries) >= self._max_entries

    def to_list(self) -> list[dict[str, object]]:
        return [entry.to_dict() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EntryT]:
        return iter(tuple(self._entries))

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._entries == other._entries  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(count={len(self._entries)})"


class UrlSet(_BoundedCollection[UrlEntry]):
    """Mutable collection of URL entries for one sitemap file."""

    _entry_type = UrlEntry


class SitemapIndexCollection(_BoundedCollection[SitemapIndexEntry]):
    """Mutable collection of sitemap references for a sitemap index."""

    _entry_type = SitemapIndexEntry


class SitemapContent:
    """Immutable aggregate of URL entries produced by the content providers."""

    __slots__ = ("_entries", "_max_entries")

    def __init__(
        self,
        entries: Iterable[UrlEntry] = (),
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._max_entries = _validate_capacity(max_entries)
        self._entries = tuple(
            _bounded_entries(
                entries,
                entry_type=UrlEntry,
                max_entries=self._max_entries,
                collection_name="SitemapContent",
            )
        )

    @property
    def entries(self) -> tuple[UrlEntry, ...]:
        return self._entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def add(self, entry: UrlEntry) -> SitemapContent:
        if self.is_full():
            return self
        return SitemapContent(
            (*self._entries, entry),
            max_entries=self._max_entries,
        )

    def count(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def is_full(self) -> bool:
        return len(self._entries) >= self._max_entries

    def to_url_set(self) -> UrlSet:
        return UrlSet(self._entries, max_entries=self._max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[UrlEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SitemapContent):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"SitemapContent(count={len(self._entries)})"


__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "SitemapContent",
    "SitemapIndexCollection",
    "UrlSet",
]
