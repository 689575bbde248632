"""
Report Renderer - PDF generation for completed audit reports.

A report is rendered at most once: the stored artifact reference makes the
operation idempotent, and concurrent requests for the same report share
one render.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from weasyprint import HTML

from auditflow.analysis import TechnicalSEOEngine
from auditflow.database import Database, ReportStatus, repository
from auditflow.errors import PipelineError, StateError, StorageTimeoutError
from auditflow.persistence import StorageBackend
from auditflow.tasks import SingleFlight
from auditflow.utils.retry import with_timeout
from auditflow.utils.urls import normalize_domain

logger = logging.getLogger(__name__)


def artifact_key(report_id: UUID) -> str:
    return f"reports/{report_id}.pdf"


class ReportRenderer:
    """
    Usage:
        renderer = ReportRenderer(db=database, storage=FileStorage(), engine=engine)
        result = await renderer.generate_pdf(principal, report_id)
        result["pdfUrl"]
    """

    def __init__(
        self,
        db: Database,
        storage: StorageBackend,
        engine: Optional[TechnicalSEOEngine] = None,
        singleflight: Optional[SingleFlight] = None,
        call_timeout: Optional[float] = 60.0,
    ):
        self.db = db
        self.storage = storage
        self.engine = engine
        self.singleflight = singleflight or SingleFlight()
        self.call_timeout = call_timeout

    async def generate_pdf(self, principal, report_id) -> Dict[str, Any]:
        """
        Render the report to PDF, or return the existing artifact.

        Raises:
            NotFoundError: report missing or not owned by the caller
            StateError: report is not completed
            StorageTimeoutError: artifact store did not answer in time
        """
        rid = repository.parse_uuid(report_id, "reportId")
        with self.db.session() as session:
            report = repository.get_report(session, rid, principal.user_id)
            if report.status != ReportStatus.COMPLETED:
                raise StateError(
                    f"Report is {report.status.value}; only completed reports can be rendered",
                    {"status": report.status.value},
                )
            if report.pdf_ref:
                return {"pdfUrl": self.storage.get_url(report.pdf_ref)}

        return await self.singleflight.do(("pdf", rid), lambda: self._render(rid))

    async def _render(self, report_id: UUID) -> Dict[str, Any]:
        with self.db.session() as session:
            report = repository.get_report(session, report_id)
            if report.pdf_ref:
                return {"pdfUrl": self.storage.get_url(report.pdf_ref)}
            data = repository.report_to_dict(report)

        from .report import ReportBuilder

        history = await self._load_history(data["url"])
        html_content = ReportBuilder().build(data, history)
        pdf_bytes = self._html_to_pdf(html_content)

        key = await with_timeout(
            self.storage.save_bytes(artifact_key(report_id), pdf_bytes, "application/pdf"),
            self.call_timeout,
            StorageTimeoutError,
            f"Saving PDF for report {report_id}",
        )

        with self.db.session() as session:
            report = repository.get_report(session, report_id)
            if not report.pdf_ref:
                repository.update_report(session, report, pdf_ref=key)
            key = report.pdf_ref

        logger.info(f"Rendered report {report_id} to {key} ({len(pdf_bytes)} bytes)")
        return {"pdfUrl": self.storage.get_url(key)}

    async def _load_history(self, url: str) -> List[Tuple[datetime, int]]:
        """Domain score history for the trend chart; empty when unavailable."""
        if self.engine is None:
            return []
        try:
            return await with_timeout(
                self.engine.get_historical_scores(normalize_domain(url)).to_list(),
                self.call_timeout,
                StorageTimeoutError,
                f"Loading score history for {url}",
            )
        except PipelineError as e:
            logger.warning(f"Score history unavailable, rendering without trend: {e.message}")
            return []

    def _html_to_pdf(self, html_content: str) -> bytes:
        """
        Convert HTML to PDF using WeasyPrint.

        Args:
            html_content: Complete HTML document

        Returns:
            PDF as bytes
        """
        try:
            pdf_bytes = HTML(string=html_content).write_pdf()
            logger.info(f"Generated PDF: {len(pdf_bytes)} bytes")
            return pdf_bytes
        except Exception as e:
            logger.error(f"PDF generation failed: {e}")
            raise
