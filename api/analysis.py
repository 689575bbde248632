"""API Endpoint for technical SEO score history."""

import logging

from fastapi import APIRouter, Depends

from auditflow.analysis import TechnicalSEOEngine
from auditflow.auth import Principal, get_current_principal
from auditflow.errors import ValidationError
from auditflow.utils.urls import normalize_domain
from .deps import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/technical-seo",
    tags=["Technical SEO"],
    dependencies=[Depends(get_current_principal)],
)


@router.get("/{domain}/history")
async def get_score_history(
    domain: str,
    engine: TechnicalSEOEngine = Depends(get_engine),
):
    """Overall score history of a domain, oldest first."""
    normalized = normalize_domain(domain)
    if not normalized:
        raise ValidationError(f"Invalid domain: {domain}")

    points = [
        {"timestamp": computed_at.isoformat(), "overallScore": score}
        async for computed_at, score in engine.get_historical_scores(normalized)
    ]
    return {"domain": normalized, "points": points}
