"""Generation control API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from sitemap_builder.domain import SitemapValidationError
from sitemap_builder.schemas import (
    CancelGenerationRead,
    CleanupRead,
    ContentProviderRead,
    DateProviderRead,
    GenerateNowRead,
    GenerateNowRequest,
    GenerationProgressRead,
    GenerationServiceRead,
    GenerationStatusRead,
    MissingSummaryRead,
    RecentUrlCountsRead,
    SitemapValidationRead,
)
from sitemap_builder.services.container import SitemapServices
from sitemap_builder.services.generation_scheduler import GENERATE_FOR_DATE_ACTION
from sitemap_builder.services.generation_state import (
    LAST_CHECK_OPTION,
    LAST_GENERATION_OPTION,
)
from sitemap_builder.services.sitemap_stats import MAX_RECENT_DAYS

router = APIRouter(prefix="/api/generation", tags=["generation"])


def _get_sitemap_services(request: Request) -> SitemapServices:
    services = getattr(request.app.state, "sitemap_services", None)
    if isinstance(services, SitemapServices):
        return services

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Sitemap generation services are unavailable",
    )


def _validation_error(error: SitemapValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(error),
    )


@router.get(
    "/progress",
    response_model=GenerationProgressRead,
    status_code=status.HTTP_200_OK,
)
async def get_generation_progress(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> GenerationProgressRead:
    return GenerationProgressRead(**await services.scheduler.get_progress())


@router.get(
    "/status",
    response_model=GenerationStatusRead,
    status_code=status.HTTP_200_OK,
)
async def get_generation_status(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> GenerationStatusRead:
    progress = await services.scheduler.get_progress_snapshot()
    next_task_at = None
    if services.scheduler.is_cron_available():
        next_task_at = services.dispatcher.next_scheduled(GENERATE_FOR_DATE_ACTION)

    return GenerationStatusRead(
        **progress.to_dict(),
        percent_complete=progress.percent_complete(),
        current_date=str(progress.current_date) if progress.current_date else None,
        cron_available=services.scheduler.is_cron_available(),
        next_task_at=next_task_at,
        last_generation=await services.state.get_timestamp(LAST_GENERATION_OPTION),
        last_check=await services.state.get_timestamp(LAST_CHECK_OPTION),
        indexed_url_count=await services.state.get_indexed_url_count(),
    )


@router.post(
    "/full",
    response_model=GenerationServiceRead,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_full_generation(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> GenerationServiceRead:
    result = await services.full_generation.start()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    return GenerationServiceRead(**result.to_dict())


@router.post(
    "/incremental",
    response_model=GenerationServiceRead,
    status_code=status.HTTP_200_OK,
)
async def start_incremental_generation(
    background: bool = True,
    services: SitemapServices = Depends(_get_sitemap_services),
) -> GenerationServiceRead:
    if background:
        result = await services.incremental_generation.schedule()
    else:
        result = await services.incremental_generation.generate()
    refused = not result.success and result.method == "background"
    if result.already_running or refused:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    return GenerationServiceRead(**result.to_dict())


@router.post(
    "/generate-now",
    response_model=GenerateNowRead,
    status_code=status.HTTP_200_OK,
)
async def generate_now(
    payload: GenerateNowRequest,
    services: SitemapServices = Depends(_get_sitemap_services),
) -> GenerateNowRead:
    max_dates = services.settings.SITEMAP_GENERATE_NOW_MAX_DATES
    if len(payload.dates) > max_dates:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"At most {max_dates} dates can be generated synchronously",
        )

    try:
        result = await services.scheduler.generate_now(payload.dates)
    except SitemapValidationError as error:
        raise _validation_error(error) from error

    if result.already_running:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)

    return GenerateNowRead(**result.to_dict())


@router.post(
    "/cancel",
    response_model=CancelGenerationRead,
    status_code=status.HTTP_200_OK,
)
async def cancel_generation(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> CancelGenerationRead:
    cancelled = await services.scheduler.cancel()
    return CancelGenerationRead(
        cancelled_tasks=cancelled,
        progress=GenerationProgressRead(**await services.scheduler.get_progress()),
    )


@router.get(
    "/dates/{provider_type}",
    response_model=DateProviderRead,
    status_code=status.HTTP_200_OK,
)
async def list_dates_for_provider(
    provider_type: str,
    services: SitemapServices = Depends(_get_sitemap_services),
) -> DateProviderRead:
    try:
        provider = services.date_providers.get(provider_type)
    except ValueError as error:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(error),
        ) from error

    dates = await provider.get_dates()
    return DateProviderRead(
        provider_type=provider.get_type(),
        description=provider.get_description(),
        count=len(dates),
        dates=dates,
    )


@router.get(
    "/missing-summary",
    response_model=MissingSummaryRead,
    status_code=status.HTTP_200_OK,
)
async def get_missing_summary(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> MissingSummaryRead:
    summary = await services.date_providers.get_missing_summary()
    return MissingSummaryRead(**summary.to_dict())


@router.post(
    "/cleanup",
    response_model=CleanupRead,
    status_code=status.HTTP_200_OK,
)
async def cleanup_orphaned_sitemaps(
    date_queries: list[str] | None = Query(default=None, alias="date"),
    services: SitemapServices = Depends(_get_sitemap_services),
) -> CleanupRead:
    if not date_queries:
        return CleanupRead(
            deleted_count=await services.cleanup.cleanup_all_orphaned_sitemaps()
        )

    try:
        deleted = await services.cleanup.cleanup_orphaned_sitemaps(date_queries)
    except SitemapValidationError as error:
        raise _validation_error(error) from error
    return CleanupRead(deleted_count=deleted)


@router.get(
    "/providers",
    response_model=list[ContentProviderRead],
    status_code=status.HTTP_200_OK,
)
async def list_content_providers(
    services: SitemapServices = Depends(_get_sitemap_services),
) -> list[ContentProviderRead]:
    return [
        ContentProviderRead(**provider_status.to_dict())
        for provider_status in services.providers.list_statuses()
    ]


@router.post(
    "/validate",
    response_model=SitemapValidationRead,
    status_code=status.HTTP_200_OK,
)
async def validate_sitemaps(
    date_queries: list[str] | None = Query(default=None, alias="date"),
    services: SitemapServices = Depends(_get_sitemap_services),
) -> SitemapValidationRead:
    try:
        result = await services.validation.validate_sitemaps(date_queries)
    except SitemapValidationError as error:
        raise _validation_error(error) from error

    if result.error_code == "stopped":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    if result.error_code == "no_sitemaps_found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return SitemapValidationRead(**result.to_dict())


@router.get(
    "/stats/recent",
    response_model=RecentUrlCountsRead,
    status_code=status.HTTP_200_OK,
)
async def get_recent_url_counts(
    days: int = Query(default=7, ge=1, le=MAX_RECENT_DAYS),
    services: SitemapServices = Depends(_get_sitemap_services),
) -> RecentUrlCountsRead:
    url_counts = await services.stats.get_recent_url_counts(days)
    return RecentUrlCountsRead(
        days=days,
        total_urls=sum(url_counts.values()),
        url_counts=url_counts,
    )
