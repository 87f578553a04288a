"""Service layer exports."""

from sitemap_builder.services.cleanup import SitemapCleanupService
from sitemap_builder.services.container import SitemapServices, build_sitemap_services
from sitemap_builder.services.content_repository import (
    ArchiveRecord,
    ContentRecord,
    ContentRepository,
    ImageRecord,
)
from sitemap_builder.services.date_providers import (
    AllDatesWithContentProvider,
    DateProviderRegistry,
    MissingContentSummary,
    MissingSitemapDateProvider,
    SitemapDateProvider,
    StaleSitemapDateProvider,
)
from sitemap_builder.services.date_queries import DateQuery, expand_date_queries
from sitemap_builder.services.generation_recovery import (
    GenerationStateRecoveryService,
    StartupRecoveryResult,
)
from sitemap_builder.services.generation_scheduler import (
    GENERATE_FOR_DATE_ACTION,
    BackgroundGenerationScheduler,
    GenerationRunResult,
    ScheduleResult,
    StateRepair,
)
from sitemap_builder.services.generation_service import (
    FullGenerationService,
    GenerationServiceResult,
    IncrementalGenerationService,
)
from sitemap_builder.services.generation_state import GenerationStateRepository
from sitemap_builder.services.generation_tasks import (
    AutomaticUpdateService,
    GenerationTaskHandler,
    TaskExecutionMetrics,
    TaskMetricsRecorder,
    run_scheduled_automatic_update_job,
    set_automatic_update_service,
)
from sitemap_builder.services.option_store import (
    InMemoryOptionStore,
    KeyValueStore,
    SQLAlchemyOptionStore,
)
from sitemap_builder.services.partition_repository import (
    SitemapPartitionRepository,
    StoredPartition,
)
from sitemap_builder.services.scheduler import SchedulerJobState, SchedulerService
from sitemap_builder.services.site_eligibility import (
    OptionSiteEligibility,
    SiteEligibility,
    StaticSiteEligibility,
)
from sitemap_builder.services.sitemap_generator import SitemapGenerator
from sitemap_builder.services.sitemap_index import SitemapIndexBuilder
from sitemap_builder.services.sitemap_stats import SitemapStatsService
from sitemap_builder.services.sitemap_validation import (
    PartitionValidation,
    SitemapValidationResult,
    SitemapValidationService,
)
from sitemap_builder.services.sitemap_xml import (
    SitemapXMLError,
    SitemapXMLParseError,
    format_sitemap_index,
    format_url_set,
    parse_url_set,
)
from sitemap_builder.services.task_dispatcher import (
    InMemoryTaskDispatcher,
    SchedulerTaskDispatcher,
    TaskDispatcher,
)

__all__ = [
    "AllDatesWithContentProvider",
    "ArchiveRecord",
    "AutomaticUpdateService",
    "BackgroundGenerationScheduler",
    "ContentRecord",
    "ContentRepository",
    "DateProviderRegistry",
    "DateQuery",
    "FullGenerationService",
    "GENERATE_FOR_DATE_ACTION",
    "GenerationRunResult",
    "GenerationServiceResult",
    "GenerationStateRecoveryService",
    "GenerationStateRepository",
    "GenerationTaskHandler",
    "ImageRecord",
    "InMemoryOptionStore",
    "InMemoryTaskDispatcher",
    "IncrementalGenerationService",
    "KeyValueStore",
    "MissingContentSummary",
    "MissingSitemapDateProvider",
    "OptionSiteEligibility",
    "PartitionValidation",
    "SQLAlchemyOptionStore",
    "ScheduleResult",
    "SchedulerJobState",
    "SchedulerService",
    "SchedulerTaskDispatcher",
    "SiteEligibility",
    "SitemapCleanupService",
    "SitemapDateProvider",
    "SitemapGenerator",
    "SitemapIndexBuilder",
    "SitemapPartitionRepository",
    "SitemapServices",
    "SitemapStatsService",
    "SitemapValidationResult",
    "SitemapValidationService",
    "SitemapXMLError",
    "SitemapXMLParseError",
    "StaleSitemapDateProvider",
    "StartupRecoveryResult",
    "StateRepair",
    "StaticSiteEligibility",
    "StoredPartition",
    "TaskDispatcher",
    "TaskExecutionMetrics",
    "TaskMetricsRecorder",
    "build_sitemap_services",
    "expand_date_queries",
    "format_sitemap_index",
    "format_url_set",
    "parse_url_set",
    "run_scheduled_automatic_update_job",
    "set_automatic_update_service",
]
