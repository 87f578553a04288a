"""Assemble the sitemap generation object graph from settings."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sitemap_builder.config import Settings
from sitemap_builder.services.cleanup import SitemapCleanupService
from sitemap_builder.services.content_providers import ContentProviderRegistry
from sitemap_builder.services.content_repository import (
    ContentRepository,
    SessionScopeFactory,
)
from sitemap_builder.services.date_providers import DateProviderRegistry
from sitemap_builder.services.generation_recovery import GenerationStateRecoveryService
from sitemap_builder.services.generation_scheduler import BackgroundGenerationScheduler
from sitemap_builder.services.generation_service import (
    FullGenerationService,
    IncrementalGenerationService,
)
from sitemap_builder.services.generation_state import GenerationStateRepository
from sitemap_builder.services.generation_tasks import (
    AutomaticUpdateService,
    GenerationTaskHandler,
    TaskMetricsRecorder,
)
from sitemap_builder.services.option_store import KeyValueStore, SQLAlchemyOptionStore
from sitemap_builder.services.partition_repository import SitemapPartitionRepository
from sitemap_builder.services.site_eligibility import (
    OptionSiteEligibility,
    SiteEligibility,
)
from sitemap_builder.services.sitemap_generator import SitemapGenerator
from sitemap_builder.services.sitemap_index import SitemapIndexBuilder
from sitemap_builder.services.sitemap_stats import SitemapStatsService
from sitemap_builder.services.sitemap_validation import SitemapValidationService
from sitemap_builder.services.task_dispatcher import TaskDispatcher


@dataclass(slots=True)
class SitemapServices:
    """Every collaborator the API, jobs and lifespan hooks need."""

    settings: Settings
    store: KeyValueStore
    state: GenerationStateRepository
    dispatcher: TaskDispatcher
    content_repository: ContentRepository
    partition_repository: SitemapPartitionRepository
    providers: ContentProviderRegistry
    date_providers: DateProviderRegistry
    cleanup: SitemapCleanupService
    generator: SitemapGenerator
    scheduler: BackgroundGenerationScheduler
    task_handler: GenerationTaskHandler
    full_generation: FullGenerationService
    incremental_generation: IncrementalGenerationService
    automatic_update: AutomaticUpdateService
    recovery: GenerationStateRecoveryService
    index_builder: SitemapIndexBuilder
    validation: SitemapValidationService
    stats: SitemapStatsService
    metrics: TaskMetricsRecorder


def build_sitemap_services(
    settings: Settings,
    *,
    dispatcher: TaskDispatcher,
    session_factory: SessionScopeFactory | None = None,
    store: KeyValueStore | None = None,
    eligibility: SiteEligibility | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SitemapServices:
    store = store or SQLAlchemyOptionStore(session_factory=session_factory)
    state = GenerationStateRepository(store)
    content_repository = ContentRepository(
        session_factory=session_factory,
        post_types=settings.SITEMAP_POST_TYPES,
    )
    partition_repository = SitemapPartitionRepository(session_factory=session_factory)
    providers = ContentProviderRegistry.from_settings(
        settings, repository=content_repository
    )
    date_providers = DateProviderRegistry(
        content_repository=content_repository,
        partition_repository=partition_repository,
        state=state,
    )
    cleanup = SitemapCleanupService(
        content_repository=content_repository,
        partition_repository=partition_repository,
    )
    generator = SitemapGenerator(registry=providers)
    scheduler = BackgroundGenerationScheduler(
        state=state,
        dispatcher=dispatcher,
        generator=generator,
        partition_repository=partition_repository,
        cleanup_service=cleanup,
        eligibility=eligibility
        or OptionSiteEligibility(store=store, default=settings.SITE_PUBLIC),
        interval_seconds=settings.SITEMAP_GENERATION_INTERVAL_SECONDS,
        clock=clock,
    )
    metrics = TaskMetricsRecorder()
    task_handler = GenerationTaskHandler(scheduler=scheduler, metrics=metrics)
    task_handler.register(dispatcher)
    incremental = IncrementalGenerationService(
        scheduler=scheduler, date_providers=date_providers
    )

    return SitemapServices(
        settings=settings,
        store=store,
        state=state,
        dispatcher=dispatcher,
        content_repository=content_repository,
        partition_repository=partition_repository,
        providers=providers,
        date_providers=date_providers,
        cleanup=cleanup,
        generator=generator,
        scheduler=scheduler,
        task_handler=task_handler,
        full_generation=FullGenerationService(
            scheduler=scheduler, all_dates_provider=date_providers.all
        ),
        incremental_generation=incremental,
        automatic_update=AutomaticUpdateService(
            scheduler=scheduler,
            incremental_service=incremental,
            cleanup_service=cleanup,
            metrics=metrics,
            clock=clock,
        ),
        recovery=GenerationStateRecoveryService(scheduler=scheduler),
        index_builder=SitemapIndexBuilder(
            site_url=settings.SITE_URL,
            partition_repository=partition_repository,
            registry=providers,
        ),
        validation=SitemapValidationService(
            partition_repository=partition_repository,
            state=state,
            timezone=settings.SITE_TIMEZONE,
        ),
        stats=SitemapStatsService(
            partition_repository=partition_repository,
            timezone=settings.SITE_TIMEZONE,
        ),
        metrics=metrics,
    )


__all__ = ["SitemapServices", "build_sitemap_services"]
