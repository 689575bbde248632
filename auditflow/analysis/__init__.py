"""
Technical SEO Analysis

- TechnicalSEOEngine: cache-aside scoring of a page, history per domain
- ContentFetcher / HttpContentFetcher: page fetch collaborator
- grading: weights, penalty model, grade bands
- text: readability and keyword metrics
"""

from .engine import TechnicalSEOEngine, ScoreHistory, score_page
from .fetcher import ContentFetcher, HttpContentFetcher, FetchedPage, parse_page
from .grading import (
    CATEGORY_WEIGHTS,
    SEVERITY_WEIGHTS,
    get_grade,
    calculate_weighted_score,
    calculate_overall_score,
    build_categories,
    build_recommendations,
)

__all__ = [
    "TechnicalSEOEngine",
    "ScoreHistory",
    "score_page",
    "ContentFetcher",
    "HttpContentFetcher",
    "FetchedPage",
    "parse_page",
    "CATEGORY_WEIGHTS",
    "SEVERITY_WEIGHTS",
    "get_grade",
    "calculate_weighted_score",
    "calculate_overall_score",
    "build_categories",
    "build_recommendations",
]
