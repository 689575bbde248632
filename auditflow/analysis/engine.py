"""
Technical SEO Analysis Engine

Scores a page across six weighted categories and keeps a per-domain history
of the results in the cache store.

Flow (cache-aside):
    latest entry for domain fresh?  -> return it, no fetch
    otherwise                       -> fetch, detect issues, score, append

Category scores apply the severity-weighted penalty model to the issues
detected in that category; the overall score is their weighted mean.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from auditflow.cache import CacheStore, TechnicalAnalysis
from auditflow.errors import FetchError, StorageTimeoutError
from auditflow.utils.clock import utcnow
from auditflow.utils.retry import with_timeout
from auditflow.utils.urls import normalize_domain
from .fetcher import ContentFetcher, FetchedPage
from .grading import (
    CATEGORY_WEIGHTS,
    calculate_overall_score,
    calculate_weighted_score,
    count_by_severity,
    get_grade,
)
from .text import flesch_reading_ease, word_count

logger = logging.getLogger(__name__)

# Thresholds
SLOW_RESPONSE_MS = 1000
VERY_SLOW_RESPONSE_MS = 3000
MIN_WORDS = 300
THIN_CONTENT_WORDS = 100
MAX_TITLE_LENGTH = 60
MIN_TITLE_LENGTH = 10
MAX_META_DESCRIPTION_LENGTH = 160
HARD_TO_READ_SCORE = 30
MAX_IMAGES = 40


def _issue(category: str, issue_type: str, severity: str, description: str, recommendation: str) -> Dict[str, Any]:
    return {
        "category": category,
        "type": issue_type,
        "severity": severity,
        "description": description,
        "recommendation": recommendation,
    }


# =============================================================================
# ISSUE DETECTION
# =============================================================================

def performance_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    issues = []
    if page.response_time_ms > VERY_SLOW_RESPONSE_MS:
        issues.append(_issue(
            "performance", "slow_page", "high",
            f"Page responded in {page.response_time_ms:.0f}ms",
            "Reduce server response time (TTFB) and enable caching for static resources",
        ))
    elif page.response_time_ms > SLOW_RESPONSE_MS:
        issues.append(_issue(
            "performance", "slow_response", "medium",
            f"Page responded in {page.response_time_ms:.0f}ms",
            "Reduce server response time and consider a CDN",
        ))
    if page.image_count > MAX_IMAGES:
        issues.append(_issue(
            "performance", "heavy_page", "low",
            f"Page loads {page.image_count} images",
            "Lazy-load images below the fold",
        ))
    return issues


def content_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    issues = []
    words = word_count(page.text)
    if words == 0:
        issues.append(_issue(
            "content", "no_content", "critical",
            "Page has no readable text",
            "Add indexable text content to the page",
        ))
        return issues

    if words < THIN_CONTENT_WORDS:
        issues.append(_issue(
            "content", "thin_content", "high",
            f"Page has only {words} words",
            f"Expand the page to at least {MIN_WORDS} words of useful content",
        ))
    elif words < MIN_WORDS:
        issues.append(_issue(
            "content", "low_content", "medium",
            f"Page has only {words} words, less than the recommended minimum of {MIN_WORDS}",
            f"Expand the page to at least {MIN_WORDS} words of useful content",
        ))

    readability = flesch_reading_ease(page.text)
    if readability < HARD_TO_READ_SCORE:
        issues.append(_issue(
            "content", "hard_to_read", "low",
            f"Reading ease score is {readability:.0f}",
            "Shorten sentences and prefer simpler words",
        ))
    return issues


def on_page_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    issues = []
    if 400 <= page.status_code < 500:
        issues.append(_issue(
            "on_page", "broken_page", "critical",
            f"Page answered with status code {page.status_code}",
            "Fix or redirect the URL (301 for permanent moves)",
        ))

    if not page.title:
        issues.append(_issue(
            "on_page", "missing_title", "high",
            "Page is missing a title tag",
            "Create a unique, descriptive title tag between 50-60 characters",
        ))
    elif len(page.title) > MAX_TITLE_LENGTH:
        issues.append(_issue(
            "on_page", "long_title", "low",
            f"Title is {len(page.title)} characters long",
            f"Keep titles under {MAX_TITLE_LENGTH} characters",
        ))
    elif len(page.title) < MIN_TITLE_LENGTH:
        issues.append(_issue(
            "on_page", "short_title", "low",
            f"Title is only {len(page.title)} characters long",
            "Include the main keyword and brand in the title",
        ))

    if not page.meta_description:
        issues.append(_issue(
            "on_page", "missing_meta_description", "medium",
            "Page is missing a meta description",
            "Write a compelling meta description between 120-158 characters",
        ))
    elif len(page.meta_description) > MAX_META_DESCRIPTION_LENGTH:
        issues.append(_issue(
            "on_page", "long_meta_description", "low",
            f"Meta description is {len(page.meta_description)} characters long",
            "Keep descriptions under 158 characters to avoid truncation",
        ))

    if not page.h1:
        issues.append(_issue(
            "on_page", "missing_h1", "medium",
            "Page is missing an H1 tag",
            "Ensure every page has exactly one descriptive H1",
        ))

    if not page.canonical:
        issues.append(_issue(
            "on_page", "missing_canonical", "medium",
            "Page is missing a canonical link tag",
            "Add an absolute canonical URL to every page",
        ))
    elif page.canonical.rstrip("/") != page.url.rstrip("/"):
        issues.append(_issue(
            "on_page", "canonical_mismatch", "low",
            f"Page canonicalizes to a different URL: {page.canonical}",
            "Make sure redirects and canonical tags are consistent",
        ))

    if page.images_missing_alt:
        severity = "medium" if page.images_missing_alt * 2 > page.image_count else "low"
        issues.append(_issue(
            "on_page", "missing_alt_text", severity,
            f"{page.images_missing_alt} of {page.image_count} images have no alt text",
            "Add descriptive alt text to every meaningful image",
        ))
    return issues


def mobile_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    if not page.has_viewport:
        return [_issue(
            "mobile_usability", "missing_viewport", "high",
            "Page is missing a viewport meta tag, which is required for mobile-friendly pages",
            "Add <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\">",
        )]
    if "width=device-width" not in (page.viewport_content or "").replace(" ", ""):
        return [_issue(
            "mobile_usability", "incorrect_viewport", "medium",
            "Viewport tag does not include width=device-width, which may cause mobile rendering issues",
            "Configure the viewport with width=device-width",
        )]
    return []


def security_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    if not page.is_https:
        return [_issue(
            "security", "no_https", "critical",
            "Page is not served over HTTPS",
            "Serve every page over HTTPS and redirect HTTP to HTTPS",
        )]
    return []


def structured_data_issues(page: FetchedPage) -> List[Dict[str, Any]]:
    if page.structured_data_count == 0:
        return [_issue(
            "structured_data", "missing_structured_data", "medium",
            "Page has no JSON-LD structured data",
            "Add schema.org markup (Organization, Article, Product...) as JSON-LD",
        )]
    return []


DETECTORS: Dict[str, Callable[[FetchedPage], List[Dict[str, Any]]]] = {
    "performance": performance_issues,
    "content": content_issues,
    "on_page": on_page_issues,
    "mobile_usability": mobile_issues,
    "security": security_issues,
    "structured_data": structured_data_issues,
}


def score_page(page: FetchedPage) -> Tuple[Dict[str, int], List[Dict[str, Any]]]:
    """Detect issues and score every category. Returns (scores, issues)."""
    scores: Dict[str, int] = {}
    issues: List[Dict[str, Any]] = []
    for category in CATEGORY_WEIGHTS:
        found = DETECTORS[category](page)
        scores[category] = calculate_weighted_score(count_by_severity(found))
        issues.extend(found)
    return scores, issues


# =============================================================================
# HISTORY
# =============================================================================

class ScoreHistory:
    """
    Lazy, finite, restartable view of a domain's score history.

    Every `async for` takes a fresh snapshot bounded by the clock at the
    moment iteration starts, yielding (computed_at, overall_score) pairs in
    ascending time order.
    """

    def __init__(self, cache: CacheStore, domain: str, clock: Callable[[], datetime] = utcnow):
        self.cache = cache
        self.domain = domain
        self._clock = clock

    def __aiter__(self) -> AsyncIterator[Tuple[datetime, int]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Tuple[datetime, int]]:
        until = self._clock()
        async for entry in self.cache.history(self.domain, until=until):
            yield entry.computed_at, entry.overall_score

    async def to_list(self) -> List[Tuple[datetime, int]]:
        return [point async for point in self]


# =============================================================================
# ENGINE
# =============================================================================

class TechnicalSEOEngine:
    """
    Cache-aside technical SEO analysis.

    Usage:
        engine = TechnicalSEOEngine(cache=store, fetcher=HttpContentFetcher())
        analysis = await engine.analyze_technical_seo(site_id, "example.com", "https://example.com/")
        async for computed_at, score in engine.get_historical_scores("example.com"):
            ...
    """

    def __init__(
        self,
        cache: CacheStore,
        fetcher: ContentFetcher,
        ttl: timedelta = timedelta(hours=24),
        call_timeout: Optional[float] = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.ttl = ttl
        self.call_timeout = call_timeout
        self._clock = clock

    def is_fresh(self, analysis: TechnicalAnalysis) -> bool:
        return analysis.computed_at is not None and self._clock() - analysis.computed_at < self.ttl

    async def analyze_technical_seo(
        self,
        site_id: str,
        domain: str,
        url: str,
        force: bool = False,
    ) -> TechnicalAnalysis:
        """
        Latest analysis for `domain`, recomputed from `url` when stale.

        Raises:
            FetchError: page could not be fetched in time
            StorageTimeoutError: cache did not answer in time
        """
        domain = normalize_domain(domain)

        if not force:
            latest = await with_timeout(
                self.cache.get_latest(domain), self.call_timeout,
                StorageTimeoutError, f"Cache lookup for {domain}",
            )
            if latest is not None and self.is_fresh(latest):
                logger.info(f"Cache hit for {domain} (computed {latest.computed_at.isoformat()})")
                return latest
            logger.info(f"Cache miss for {domain}, analyzing {url}")

        page = await with_timeout(
            self.fetcher.fetch(url), self.call_timeout, FetchError, f"Fetching {url}",
        )

        scores, issues = score_page(page)
        overall = calculate_overall_score(scores)
        analysis = TechnicalAnalysis(
            domain=domain,
            audit_id=str(site_id),
            url=url,
            scores=scores,
            overall_score=overall,
            overall_grade=get_grade(overall),
            issues=issues,
            computed_at=self._clock(),
        )

        await with_timeout(
            self.cache.append(analysis), self.call_timeout,
            StorageTimeoutError, f"Cache append for {domain}",
        )
        logger.info(
            f"Analyzed {url}: score {overall} ({analysis.overall_grade}), {len(issues)} issues"
        )
        return analysis

    def get_historical_scores(self, domain: str) -> ScoreHistory:
        """(computed_at, overall_score) pairs for `domain`, oldest first, none in the future."""
        return ScoreHistory(self.cache, normalize_domain(domain), clock=self._clock)
