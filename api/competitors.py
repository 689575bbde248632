"""
API Endpoints for Competitor Content

Handles:
1. Track a competitor page for a project
2. List tracked pages with their analyses
3. Get a page with its latest analysis
4. Run a new analysis
5. Delete a page and its analyses
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from auditflow.auth import Principal, get_current_principal
from auditflow.competitors import CompetitorService
from .deps import get_competitor_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/competitors",
    tags=["Competitors"],
)


class AddCompetitorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    url: str


@router.get("")
async def list_competitors(
    project_id: str = Query(..., alias="projectId"),
    principal: Principal = Depends(get_current_principal),
    service: CompetitorService = Depends(get_competitor_service),
):
    return {"competitors": await service.list_competitors(principal, project_id)}


@router.post("", status_code=201)
async def add_competitor(
    request: AddCompetitorRequest,
    principal: Principal = Depends(get_current_principal),
    service: CompetitorService = Depends(get_competitor_service),
):
    return {"competitor": await service.add_competitor(principal, request.project_id, request.url)}


@router.get("/{competitor_id}")
async def get_competitor(
    competitor_id: str,
    principal: Principal = Depends(get_current_principal),
    service: CompetitorService = Depends(get_competitor_service),
):
    return await service.get_competitor_with_latest_analysis(principal, competitor_id)


@router.post("/{competitor_id}/analyze")
async def analyze_competitor(
    competitor_id: str,
    principal: Principal = Depends(get_current_principal),
    service: CompetitorService = Depends(get_competitor_service),
):
    """Fetch the page now and append a new analysis."""
    return {"analysis": await service.analyze_competitor(principal, competitor_id)}


@router.delete("/{competitor_id}")
async def delete_competitor(
    competitor_id: str,
    principal: Principal = Depends(get_current_principal),
    service: CompetitorService = Depends(get_competitor_service),
):
    return await service.delete_competitor(principal, competitor_id)
