"""
API Endpoints for Audit Reports

Handles:
1. Create an audit report (analysis runs in the background)
2. Poll a report
3. List a project's reports
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from auditflow.audit import AuditOrchestrator
from auditflow.auth import Principal, get_current_principal
from .deps import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/audits",
    tags=["Audits"],
)


class CreateAuditRequest(BaseModel):
    """Request to create an audit report."""
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    report_name: Optional[str] = Field(None, alias="reportName")
    url: str
    options: Optional[Dict[str, Any]] = None


@router.post("", status_code=201)
async def create_audit(
    request: CreateAuditRequest,
    principal: Principal = Depends(get_current_principal),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    """
    Create an audit report.

    Returns immediately with the pending report. A second request for the
    same project and URL while one is active returns that report.
    """
    report = await orchestrator.create_report(
        principal,
        request.project_id,
        request.url,
        request.report_name,
        request.options,
    )
    return {"report": report}


@router.get("")
async def list_audits(
    project_id: str = Query(..., alias="projectId"),
    principal: Principal = Depends(get_current_principal),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    """All reports of a project, newest first."""
    return {"reports": await orchestrator.list_reports(principal, project_id)}


@router.get("/{report_id}")
async def get_audit(
    report_id: str,
    principal: Principal = Depends(get_current_principal),
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
):
    return {"report": await orchestrator.get_report(principal, report_id)}
