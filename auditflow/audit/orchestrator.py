"""
Audit Orchestrator

Creates audit reports and drives them through their lifecycle.

Flow:
    create_report  -> validate, check ownership
                   -> active report for (project, url)? return it
                   -> insert pending report, enqueue "audit" work
    run_report     -> running -> technical analysis (timeout + retries)
                   -> completed with scores | failed with the last error

At most one active report exists per (project, url): SingleFlight covers
concurrent callers in this process and a partial unique index covers the
rest.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from auditflow.analysis import TechnicalSEOEngine
from auditflow.analysis.grading import (
    CATEGORY_WEIGHTS,
    build_categories,
    build_recommendations,
    calculate_overall_score,
    get_grade,
)
from auditflow.database import Database, ReportStatus, repository
from auditflow.errors import FetchError, PipelineError, ValidationError
from auditflow.persistence import StorageBackend
from auditflow.tasks import SingleFlight, TaskQueue
from auditflow.utils.clock import utcnow
from auditflow.utils.retry import RetryConfig, retry_async, with_timeout
from auditflow.utils.urls import normalize_domain, validate_absolute_url
from .lifecycle import check_transition, is_terminal

logger = logging.getLogger(__name__)

AUDIT_TASK = "audit"
INTERRUPTED_MESSAGE = "Analysis interrupted by a service restart"


def normalize_options(options: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
    """
    Validate category toggles.

    `options` maps category names to booleans; categories not mentioned are
    enabled. At least one category must stay enabled.

    Raises:
        ValidationError: unknown category, non-boolean toggle, or all disabled
    """
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise ValidationError("options must be an object of category toggles")

    toggles = {}
    for name, enabled in options.items():
        if name not in CATEGORY_WEIGHTS:
            raise ValidationError(f"Unknown category in options: {name}", {"field": "options"})
        if not isinstance(enabled, bool):
            raise ValidationError(f"Category toggle {name} must be true or false", {"field": "options"})
        toggles[name] = enabled

    if not any(toggles.get(name, True) for name in CATEGORY_WEIGHTS):
        raise ValidationError("At least one category must be enabled", {"field": "options"})
    return toggles


def enabled_categories(options: Optional[Mapping[str, bool]]) -> Tuple[str, ...]:
    options = options or {}
    return tuple(name for name in CATEGORY_WEIGHTS if options.get(name, True))


class AuditOrchestrator:
    """
    Usage:
        orchestrator = AuditOrchestrator(db=database, engine=engine, queue=queue)
        report = await orchestrator.create_report(principal, project_id, url, "Homepage")
        report = await orchestrator.get_report(principal, report["id"])
    """

    def __init__(
        self,
        db: Database,
        engine: TechnicalSEOEngine,
        queue: TaskQueue,
        singleflight: Optional[SingleFlight] = None,
        retry_config: Optional[RetryConfig] = None,
        call_timeout: Optional[float] = 60.0,
        storage: Optional[StorageBackend] = None,
    ):
        self.db = db
        self.engine = engine
        self.queue = queue
        self.singleflight = singleflight or SingleFlight()
        self.retry_config = retry_config or RetryConfig()
        self.call_timeout = call_timeout
        self.storage = storage

    def _to_dict(self, report) -> Dict[str, Any]:
        pdf_url = self.storage.get_url(report.pdf_ref) if self.storage and report.pdf_ref else None
        return repository.report_to_dict(report, pdf_url=pdf_url)

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_report(
        self,
        principal,
        project_id,
        url: str,
        name: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a pending report and schedule its analysis.

        Returns the already active report for the same (project, url) when
        there is one; nothing new is scheduled in that case.

        Raises:
            ValidationError: malformed project id, URL or options
            NotFoundError: project missing or not owned by the caller
        """
        pid = repository.parse_uuid(project_id, "projectId")
        url = validate_absolute_url(url)
        toggles = normalize_options(options)
        name = (name or "").strip() or url

        with self.db.session() as session:
            repository.get_owned_project(session, pid, principal.user_id)

        report, created = await self.singleflight.do(
            ("create_report", pid, url),
            lambda: self._create_or_join(principal.user_id, pid, url, name, toggles),
        )

        if created:
            report_id = UUID(report["id"])
            logger.info(f"Created report {report_id} for {url}")
            if not self.queue.enqueue(AUDIT_TASK, report["id"], lambda: self.run_report(report_id)):
                logger.warning(f"Report {report_id} was already scheduled")
        else:
            logger.info(f"Joined active report {report['id']} for {url}")
        return report

    async def _create_or_join(
        self,
        user_id: str,
        project_id: UUID,
        url: str,
        name: str,
        options: Dict[str, bool],
    ) -> Tuple[Dict[str, Any], bool]:
        with self.db.session() as session:
            existing = repository.find_active_report(session, project_id, url)
            if existing:
                return self._to_dict(existing), False

        try:
            with self.db.session() as session:
                report = repository.insert_report(session, project_id, user_id, name, url, options)
                return self._to_dict(report), True
        except IntegrityError:
            # Another process inserted the active report first
            with self.db.session() as session:
                existing = repository.find_active_report(session, project_id, url)
                if existing is None:
                    raise
                return self._to_dict(existing), False

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_report(self, principal, report_id) -> Dict[str, Any]:
        """Current snapshot of a report. Never waits for analysis."""
        rid = repository.parse_uuid(report_id, "reportId")
        with self.db.session() as session:
            return self._to_dict(repository.get_report(session, rid, principal.user_id))

    async def list_reports(self, principal, project_id) -> list:
        """All reports of a project, newest first."""
        pid = repository.parse_uuid(project_id, "projectId")
        with self.db.session() as session:
            repository.get_owned_project(session, pid, principal.user_id)
            return [self._to_dict(r) for r in repository.list_reports(session, pid)]

    # =========================================================================
    # Worker body
    # =========================================================================

    async def run_report(self, report_id: UUID) -> None:
        """
        Analyze one report and write its terminal state.

        Whatever happens, the report ends completed or failed.
        """
        with self.db.session() as session:
            report = repository.get_report(session, report_id)
            if is_terminal(report.status):
                logger.info(f"Report {report_id} already {report.status.value}, skipping")
                return
            check_transition(report.status, ReportStatus.RUNNING)
            repository.update_report(session, report, status=ReportStatus.RUNNING, started_at=utcnow())
            url = report.url
            options = dict(report.options or {})

        logger.info(f"[{report_id}] Running technical analysis for {url}")

        try:
            analysis = await retry_async(
                lambda: with_timeout(
                    self.engine.analyze_technical_seo(str(report_id), normalize_domain(url), url),
                    self.call_timeout,
                    FetchError,
                    f"Technical analysis of {url}",
                ),
                self.retry_config,
                description=f"[{report_id}] Technical analysis",
            )
        except asyncio.CancelledError:
            self._mark_failed(report_id, "Analysis cancelled")
            raise
        except PipelineError as e:
            logger.error(f"[{report_id}] Analysis failed: {e.message}")
            self._mark_failed(report_id, e.message)
            return
        except Exception as e:
            logger.exception(f"[{report_id}] Analysis failed unexpectedly: {e}")
            self._mark_failed(report_id, "Internal error during analysis")
            return

        enabled = enabled_categories(options)
        scores = {name: score for name, score in analysis.scores.items() if name in enabled}
        issues = [issue for issue in analysis.issues if issue.get("category") in enabled]
        categories = build_categories(scores)
        overall = calculate_overall_score(scores)

        with self.db.session() as session:
            report = repository.get_report(session, report_id)
            check_transition(report.status, ReportStatus.COMPLETED)
            repository.update_report(
                session,
                report,
                status=ReportStatus.COMPLETED,
                overall_score=overall,
                overall_grade=get_grade(overall),
                categories=categories,
                issues=issues,
                recommendations=build_recommendations(categories, issues),
                analysis_computed_at=analysis.computed_at,
                completed_at=utcnow(),
            )

        logger.info(f"[{report_id}] Completed with score {overall} ({get_grade(overall)})")

    def _mark_failed(self, report_id: UUID, message: str) -> None:
        with self.db.session() as session:
            report = repository.get_report(session, report_id)
            if is_terminal(report.status):
                return
            check_transition(report.status, ReportStatus.FAILED)
            repository.update_report(
                session,
                report,
                status=ReportStatus.FAILED,
                error_message=message,
                completed_at=utcnow(),
            )

    async def recover_stale_reports(self) -> int:
        """
        Fail reports left pending or running by a previous process.

        Returns:
            Number of reports marked failed
        """
        with self.db.session() as session:
            stale = repository.list_active_reports(session)
            for report in stale:
                repository.update_report(
                    session,
                    report,
                    status=ReportStatus.FAILED,
                    error_message=INTERRUPTED_MESSAGE,
                    completed_at=utcnow(),
                )
            count = len(stale)

        if count:
            logger.warning(f"Marked {count} interrupted reports as failed")
        return count
