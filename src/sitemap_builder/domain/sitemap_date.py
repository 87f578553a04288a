"""Calendar date value object used as the sitemap partition key."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from sitemap_builder.domain.errors import InvalidSitemapDateError

_DATE_PATTERN = re.compile(
    r"^(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
    r"(?: [0-9]{2}:[0-9]{2}:[0-9]{2})?$"
)


@dataclass(slots=True, frozen=True, order=True)
class SitemapDate:
    """A validated calendar day; ordering follows (year, month, day)."""

    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        try:
            date(self.year, self.month, self.day)
        except (TypeError, ValueError) as error:
            raise InvalidSitemapDateError(
                f"Invalid calendar date: {self.year}-{self.month}-{self.day}"
            ) from error

    @classmethod
    def from_string(cls, value: str) -> SitemapDate:
        """Parse ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM:SS``."""

        match = _DATE_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            raise InvalidSitemapDateError(f"Invalid date format: {value!r}")

        return cls(
            year=int(match.group("year")),
            month=int(match.group("month")),
            day=int(match.group("day")),
        )

    @classmethod
    def from_date(cls, value: date) -> SitemapDate:
        return cls(year=value.year, month=value.month, day=value.day)

    @classmethod
    def today(cls, timezone: str | tzinfo = "UTC") -> SitemapDate:
        zone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        return cls.from_date(datetime.now(zone).date())

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def to_url_params(self) -> dict[str, str]:
        return {
            "yyyy": f"{self.year:04d}",
            "mm": f"{self.month:02d}",
            "dd": f"{self.day:02d}",
        }

    def is_before(self, other: SitemapDate) -> bool:
        return self < other

    def is_after(self, other: SitemapDate) -> bool:
        return self > other

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


__all__ = ["SitemapDate"]
