"""Year, month, and day query expansion into partition dates."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from sitemap_builder.domain import InvalidSitemapDateError, SitemapDate


@dataclass(slots=True, frozen=True)
class DateQuery:
    """A year, a month of a year, or a single day."""

    year: int
    month: int | None = None
    day: int | None = None

    @classmethod
    def parse(cls, value: str) -> DateQuery:
        """Parse ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``."""

        parts = value.strip().split("-")
        if not 1 <= len(parts) <= 3 or not all(part.isdigit() for part in parts):
            raise InvalidSitemapDateError(f"Invalid date query: {value!r}")

        numbers = [int(part) for part in parts]
        query = cls(*numbers)
        if query.month is not None and not 1 <= query.month <= 12:
            raise InvalidSitemapDateError(f"Invalid month in date query: {value!r}")
        if query.day is not None:
            SitemapDate(query.year, query.month or 0, query.day)
        return query

    def expand(self, today: date) -> list[date]:
        """Return every calendar day the query covers, never past ``today``."""

        if self.day is not None and self.month is not None:
            try:
                return [date(self.year, self.month, self.day)]
            except ValueError:
                return []

        if self.month is not None:
            if not 1 <= self.month <= 12:
                return []
            months = [self.month]
        else:
            months = list(range(1, 13))

        days: list[date] = []
        for month in months:
            _, last_day = calendar.monthrange(self.year, month)
            for day in range(1, last_day + 1):
                candidate = date(self.year, month, day)
                if candidate > today:
                    return days
                days.append(candidate)
        return days

    def matches(self, value: date) -> bool:
        if value.year != self.year:
            return False
        if self.month is not None and value.month != self.month:
            return False
        if self.day is not None and value.day != self.day:
            return False
        return True


def expand_date_queries(queries: Iterable[DateQuery], today: date) -> list[date]:
    """Expand queries into a sorted, de-duplicated list of dates."""

    expanded: set[date] = set()
    for query in queries:
        expanded.update(query.expand(today))
    return sorted(expanded)


def filter_matching_dates(
    queries: Iterable[DateQuery],
    available: Iterable[date],
) -> list[date]:
    """Return the available dates selected by any of the queries."""

    query_list = list(queries)
    return sorted(
        {day for day in available if any(query.matches(day) for query in query_list)}
    )


__all__ = ["DateQuery", "expand_date_queries", "filter_matching_dates"]
