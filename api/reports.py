"""API Endpoint for PDF rendering of completed audit reports."""

import logging

from fastapi import APIRouter, Depends

from auditflow.auth import Principal, get_current_principal
from auditflow.reporter import ReportRenderer
from .deps import get_renderer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


@router.post("/{report_id}/pdf")
async def generate_report_pdf(
    report_id: str,
    principal: Principal = Depends(get_current_principal),
    renderer: ReportRenderer = Depends(get_renderer),
):
    """
    Render a completed report to PDF.

    Returns the same pdfUrl on every call once rendered; 409 while the
    report is not completed.
    """
    return await renderer.generate_pdf(principal, report_id)
