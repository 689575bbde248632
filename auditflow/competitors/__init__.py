"""Competitor content tracking and analysis."""

from .service import CompetitorService, analyze_text

__all__ = ["CompetitorService", "analyze_text"]
