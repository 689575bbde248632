"""
Competitor Content Analysis

Tracks competitor pages per project and keeps an append-only series of
deterministic content analyses for each: word count, reading level,
readability, structure and the density of the project's keywords.
"""

import logging
from typing import Any, Dict, List, Optional

from auditflow.analysis.fetcher import ContentFetcher
from auditflow.analysis.text import (
    content_structure,
    flesch_reading_ease,
    keyword_density,
    reading_level,
    top_terms,
    word_count,
)
from auditflow.database import Database, repository
from auditflow.errors import FetchError
from auditflow.rewriter.engine import clean_keywords
from auditflow.utils.retry import RetryConfig, retry_async, with_timeout
from auditflow.utils.urls import validate_absolute_url

logger = logging.getLogger(__name__)

# How many of the project's recent rewrites supply keywords for density
KEYWORD_SOURCE_REWRITES = 10


def analyze_text(text: str, project_keywords: List[str]) -> Dict[str, Any]:
    """
    Compute the metrics stored on a CompetitorAnalysis row.

    Density is measured against the project's keywords; a project without
    keywords falls back to the page's own top terms.
    """
    terms = top_terms(text, limit=10)
    density_terms = project_keywords or [t["term"] for t in terms[:5]]
    readability = flesch_reading_ease(text)
    return {
        "word_count": word_count(text),
        "reading_level": reading_level(readability),
        "keyword_density": keyword_density(text, density_terms),
        "top_terms": terms,
        "content_structure": content_structure(text),
        "readability_score": readability,
    }


class CompetitorService:
    """
    Usage:
        service = CompetitorService(db=database, fetcher=HttpContentFetcher())
        competitor = await service.add_competitor(principal, project_id, "https://rival.com/post")
        analysis = await service.analyze_competitor(principal, competitor["id"])
    """

    def __init__(
        self,
        db: Database,
        fetcher: ContentFetcher,
        call_timeout: Optional[float] = 60.0,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.db = db
        self.fetcher = fetcher
        self.call_timeout = call_timeout
        self.retry_config = retry_config or RetryConfig()

    async def add_competitor(self, principal, project_id, url: str) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: malformed URL
            NotFoundError: project missing or not owned by the caller
        """
        project_id = repository.parse_uuid(project_id, "projectId")
        url = validate_absolute_url(url)
        with self.db.session() as session:
            repository.get_owned_project(session, project_id, principal.user_id)
            competitor = repository.insert_competitor(session, project_id, url, principal.user_id)
            result = repository.competitor_to_dict(competitor)
        logger.info(f"Added competitor {url} to project {project_id}")
        return result

    async def list_competitors(self, principal, project_id) -> List[Dict[str, Any]]:
        """Competitor pages of a project with their analyses, newest first."""
        project_id = repository.parse_uuid(project_id, "projectId")
        with self.db.session() as session:
            repository.get_owned_project(session, project_id, principal.user_id)
            return [
                repository.competitor_to_dict(c)
                for c in repository.list_competitors(session, project_id)
            ]

    async def get_competitor_with_latest_analysis(self, principal, competitor_id) -> Dict[str, Any]:
        competitor_id = repository.parse_uuid(competitor_id, "competitorId")
        with self.db.session() as session:
            competitor = repository.get_competitor(session, competitor_id, principal.user_id)
            latest = repository.latest_competitor_analysis(session, competitor_id)
            return {
                "competitorContent": repository.competitor_to_dict(competitor, include_analyses=False),
                "latestAnalysis": repository.competitor_analysis_to_dict(latest) if latest else None,
            }

    async def analyze_competitor(self, principal, competitor_id) -> Dict[str, Any]:
        """
        Fetch the competitor page and append a new analysis.

        Raises:
            NotFoundError: competitor missing or not owned by the caller
            FetchError: page could not be fetched after retries
        """
        competitor_id = repository.parse_uuid(competitor_id, "competitorId")
        with self.db.session() as session:
            competitor = repository.get_competitor(session, competitor_id, principal.user_id)
            url = competitor.url
            recent = repository.list_project_rewrites(
                session, competitor.project_id, KEYWORD_SOURCE_REWRITES
            )
            project_keywords = clean_keywords(
                [keyword for rewrite in recent for keyword in (rewrite.target_keywords or [])]
            )

        page = await retry_async(
            lambda: with_timeout(self.fetcher.fetch(url), self.call_timeout, FetchError, f"Fetching {url}"),
            self.retry_config,
            description=f"Competitor fetch {url}",
        )
        metrics = analyze_text(page.text, project_keywords)

        with self.db.session() as session:
            analysis = repository.insert_competitor_analysis(
                session,
                competitor_id,
                analyzed_by=principal.user_id,
                **metrics,
            )
            result = repository.competitor_analysis_to_dict(analysis)

        logger.info(
            f"Analyzed competitor {url}: {metrics['word_count']} words, "
            f"{metrics['reading_level']} reading level"
        )
        return result

    async def delete_competitor(self, principal, competitor_id) -> Dict[str, Any]:
        """Delete competitor content and all of its analyses."""
        competitor_id = repository.parse_uuid(competitor_id, "competitorId")
        with self.db.session() as session:
            competitor = repository.get_competitor(session, competitor_id, principal.user_id)
            repository.delete_competitor(session, competitor)
        logger.info(f"Deleted competitor {competitor_id}")
        return {"success": True, "id": str(competitor_id)}
