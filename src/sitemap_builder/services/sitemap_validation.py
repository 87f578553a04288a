"""Re-check stored partitions against the sitemap protocol limits."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from lxml import etree  # type: ignore[import-untyped]

from sitemap_builder.domain import SitemapDate
from sitemap_builder.domain.collections import DEFAULT_MAX_ENTRIES
from sitemap_builder.services.date_queries import DateQuery, expand_date_queries
from sitemap_builder.services.generation_state import GenerationStateRepository
from sitemap_builder.services.partition_repository import (
    SitemapPartitionRepository,
    StoredPartition,
)
from sitemap_builder.services.sitemap_xml import (
    SITEMAP_NAMESPACE,
    SitemapXMLParseError,
    parse_url_set,
)

_validation_logger = logging.getLogger("sitemap_builder.sitemap_validation")

_URLSET_TAG = f"{{{SITEMAP_NAMESPACE}}}urlset"
_URL_TAG = f"{{{SITEMAP_NAMESPACE}}}url"


@dataclass(slots=True, frozen=True)
class PartitionValidation:
    """Findings for one stored partition."""

    partition_date: str
    url_count: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.partition_date,
            "valid": self.valid,
            "url_count": self.url_count,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(slots=True, frozen=True)
class SitemapValidationResult:
    success: bool
    message: str
    error_code: str | None = None
    partitions: list[PartitionValidation] = field(default_factory=list)

    @property
    def valid_count(self) -> int:
        return sum(1 for partition in self.partitions if partition.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.partitions) - self.valid_count

    @property
    def error_count(self) -> int:
        return sum(len(partition.errors) for partition in self.partitions)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "message": self.message,
            "error_code": self.error_code,
            "total": len(self.partitions),
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "error_count": self.error_count,
            "partitions": [partition.to_dict() for partition in self.partitions],
        }


def _url_element_count(xml_bytes: bytes) -> tuple[str, int]:
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    root = etree.fromstring(xml_bytes, parser=parser)
    return root.tag, sum(1 for _ in root.iter(_URL_TAG))


def validate_partition(partition: StoredPartition) -> PartitionValidation:
    """Parse one stored document and report protocol violations."""

    day = partition.partition_date.isoformat()
    xml_bytes = partition.xml_content.encode("utf-8")
    if not xml_bytes.strip():
        return PartitionValidation(
            partition_date=day, url_count=0, errors=["Sitemap has no XML data."]
        )

    try:
        entries = parse_url_set(xml_bytes)
        root_tag, element_count = _url_element_count(xml_bytes)
    except (SitemapXMLParseError, etree.XMLSyntaxError) as error:
        return PartitionValidation(
            partition_date=day, url_count=0, errors=[str(error)]
        )

    errors: list[str] = []
    warnings: list[str] = []
    if root_tag != _URLSET_TAG:
        errors.append(f"Root element must be <urlset> in {SITEMAP_NAMESPACE}")
    if element_count == 0:
        errors.append("Sitemap must contain at least one <url> entry")
    if element_count > DEFAULT_MAX_ENTRIES:
        errors.append(
            f"Sitemap holds {element_count} URLs; the limit is {DEFAULT_MAX_ENTRIES}"
        )
    invalid_entries = element_count - len(entries)
    if invalid_entries > 0:
        errors.append(f"{invalid_entries} of {element_count} URL entries are invalid")
    if partition.url_count != len(entries):
        warnings.append(
            f"Stored URL count {partition.url_count} does not match "
            f"{len(entries)} parsed entries"
        )

    return PartitionValidation(
        partition_date=day,
        url_count=len(entries),
        errors=errors,
        warnings=warnings,
    )


def _not_found(day: date) -> PartitionValidation:
    return PartitionValidation(
        partition_date=day.isoformat(),
        url_count=0,
        errors=[f"Sitemap for date {day.isoformat()} not found."],
    )


class SitemapValidationService:
    """Re-parse stored partitions, optionally limited to year, month or day queries."""

    def __init__(
        self,
        *,
        partition_repository: SitemapPartitionRepository,
        state: GenerationStateRepository,
        timezone: str = "UTC",
        today: Callable[[], date] | None = None,
    ) -> None:
        self._partition_repository = partition_repository
        self._state = state
        self._today = today or (lambda: SitemapDate.today(timezone).to_date())

    async def _select_dates(
        self, queries: list[DateQuery]
    ) -> tuple[list[date], list[date]]:
        stored = await self._partition_repository.get_all_dates()
        if not queries:
            return stored, []

        stored_set = set(stored)
        requested = expand_date_queries(queries, self._today())
        selected = [day for day in requested if day in stored_set]
        # A query naming a single day is expected to have a partition.
        missing = [
            day
            for day in requested
            if day not in stored_set
            and any(query.day is not None and query.matches(day) for query in queries)
        ]
        return selected, missing

    async def validate_sitemaps(
        self,
        date_queries: Iterable[DateQuery | str] | None = None,
    ) -> SitemapValidationResult:
        queries = [
            query if isinstance(query, DateQuery) else DateQuery.parse(query)
            for query in date_queries or ()
        ]

        if await self._state.stop_requested():
            return SitemapValidationResult(
                success=False,
                message="Sitemap validation was stopped by user request.",
                error_code="stopped",
            )

        selected, missing = await self._select_dates(queries)
        results = [_not_found(day) for day in missing]
        for day in selected:
            partition = await self._partition_repository.find_by_date(day)
            results.append(
                _not_found(day) if partition is None else validate_partition(partition)
            )

        if not results:
            return SitemapValidationResult(
                success=False,
                message="No sitemaps found to validate.",
                error_code="no_sitemaps_found",
            )

        results.sort(key=lambda partition: partition.partition_date)
        valid = sum(1 for partition in results if partition.valid)
        errors = sum(len(partition.errors) for partition in results)
        _validation_logger.info(
            "sitemap_validation_finished",
            extra={
                "total": len(results),
                "valid": valid,
                "invalid": len(results) - valid,
                "errors": errors,
            },
        )
        return SitemapValidationResult(
            success=True,
            message=(
                f"Validated {len(results)} sitemaps: {valid} valid, "
                f"{len(results) - valid} invalid with {errors} total errors"
            ),
            partitions=results,
        )


__all__ = [
    "PartitionValidation",
    "SitemapValidationResult",
    "SitemapValidationService",
    "validate_partition",
]
