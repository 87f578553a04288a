"""Immutable progress snapshot for a generation run."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from sitemap_builder.domain.sitemap_date import SitemapDate


@dataclass(slots=True, frozen=True)
class GenerationProgress:
    """Total/remaining/in-progress record describing a generation run.

    Counts are clamped on construction: ``total`` never drops below zero and
    ``remaining`` always stays within ``[0, total]``. Every transition
    returns a new snapshot. Equality ignores ``current_date``. Completing a
    date never re-opens a run that was already cancelled.
    """

    in_progress: bool = False
    total: int = 0
    remaining: int = 0
    current_date: SitemapDate | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        total = max(0, int(self.total))
        remaining = min(max(0, int(self.remaining)), total)
        object.__setattr__(self, "total", total)
        object.__setattr__(self, "remaining", remaining)

    @classmethod
    def not_started(cls) -> GenerationProgress:
        return cls()

    @classmethod
    def started(cls, total: int) -> GenerationProgress:
        return cls(in_progress=True, total=total, remaining=total)

    @property
    def completed(self) -> int:
        return self.total - self.remaining

    def with_date_completed(
        self, next_date: SitemapDate | None = None
    ) -> GenerationProgress:
        remaining = max(0, self.remaining - 1)
        return replace(
            self,
            in_progress=self.in_progress and remaining > 0,
            remaining=remaining,
            current_date=next_date,
        )

    def with_cancelled(self) -> GenerationProgress:
        return replace(self, in_progress=False, current_date=None)

    def percent_complete(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.completed / self.total * 100, 1)

    def is_complete(self) -> bool:
        return not self.in_progress and self.total > 0 and self.remaining == 0

    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> dict[str, bool | int]:
        return {
            "in_progress": self.in_progress,
            "total": self.total,
            "remaining": self.remaining,
            "completed": self.completed,
        }


__all__ = ["GenerationProgress"]
