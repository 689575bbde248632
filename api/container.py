"""
Service Container

Every collaborator the routers need, built once per application and kept on
`app.state.container`. Services receive their collaborators through their
constructors; nothing is looked up from module globals.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from auditflow.analysis import ContentFetcher, HttpContentFetcher, TechnicalSEOEngine
from auditflow.audit import AuditOrchestrator
from auditflow.auth import AuthConfig, get_auth_config
from auditflow.cache import CacheConfig, CacheStore, create_cache_store
from auditflow.competitors import CompetitorService
from auditflow.database import Database
from auditflow.llm import ClaudeClient, LLMClient, UnconfiguredLLMClient
from auditflow.persistence import StorageBackend, create_storage
from auditflow.reporter import ReportRenderer
from auditflow.rewriter import ContentRewriter
from auditflow.tasks import SingleFlight, TaskQueue
from auditflow.utils.config import Settings
from auditflow.utils.retry import RetryConfig

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    auth_config: AuthConfig
    db: Database
    cache: CacheStore
    fetcher: ContentFetcher
    llm: LLMClient
    storage: StorageBackend
    queue: TaskQueue
    singleflight: SingleFlight
    engine: TechnicalSEOEngine
    orchestrator: AuditOrchestrator
    rewriter: ContentRewriter
    competitors: CompetitorService
    renderer: ReportRenderer

    async def startup(self) -> None:
        """Create tables, connect the cache, start workers, recover stale reports."""
        if self.auth_config.auth_enabled and not self.auth_config.is_configured:
            logger.warning("Auth enabled but SUPABASE_JWT_SECRET / SUPABASE_URL unset - every request will be rejected")
        self.db.init()
        await self.cache.initialize()
        await self.queue.start()
        await self.orchestrator.recover_stale_reports()

    async def shutdown(self) -> None:
        await self.queue.stop()
        await self.fetcher.close()
        await self.cache.close()
        self.db.dispose()


def build_llm_client(settings: Settings) -> LLMClient:
    if not settings.ANTHROPIC_API_KEY:
        logger.warning("ANTHROPIC_API_KEY not set - rewrites will fail with GenerationError")
        return UnconfiguredLLMClient()
    return ClaudeClient(api_key=settings.ANTHROPIC_API_KEY, model=settings.CLAUDE_MODEL)


def build_container(
    settings: Settings,
    auth_config: Optional[AuthConfig] = None,
    db: Optional[Database] = None,
    cache: Optional[CacheStore] = None,
    fetcher: Optional[ContentFetcher] = None,
    llm: Optional[LLMClient] = None,
    storage: Optional[StorageBackend] = None,
) -> ServiceContainer:
    """
    Wire the services from settings.

    Any collaborator can be passed in explicitly (tests use in-memory ones).
    """
    db = db or Database(settings.DATABASE_URL)
    cache = cache or create_cache_store(CacheConfig.from_settings(settings))
    fetcher = fetcher or HttpContentFetcher(timeout=settings.FETCH_TIMEOUT)
    llm = llm or build_llm_client(settings)
    storage = storage or create_storage(settings)

    retry_config = RetryConfig(
        max_retries=settings.MAX_RETRIES,
        initial_delay=settings.RETRY_INITIAL_DELAY,
    )
    timeout = settings.EXTERNAL_CALL_TIMEOUT
    queue = TaskQueue(concurrency=settings.WORKER_CONCURRENCY)
    singleflight = SingleFlight()

    engine = TechnicalSEOEngine(
        cache=cache,
        fetcher=fetcher,
        ttl=timedelta(hours=settings.ANALYSIS_CACHE_TTL_HOURS),
        call_timeout=timeout,
    )

    return ServiceContainer(
        settings=settings,
        auth_config=auth_config or get_auth_config(),
        db=db,
        cache=cache,
        fetcher=fetcher,
        llm=llm,
        storage=storage,
        queue=queue,
        singleflight=singleflight,
        engine=engine,
        orchestrator=AuditOrchestrator(
            db=db,
            engine=engine,
            queue=queue,
            singleflight=singleflight,
            retry_config=retry_config,
            call_timeout=timeout,
            storage=storage,
        ),
        rewriter=ContentRewriter(db=db, llm=llm, call_timeout=timeout, retry_config=retry_config),
        competitors=CompetitorService(db=db, fetcher=fetcher, call_timeout=timeout, retry_config=retry_config),
        renderer=ReportRenderer(
            db=db,
            storage=storage,
            engine=engine,
            singleflight=singleflight,
            call_timeout=timeout,
        ),
    )
