"""
Content Fetcher

Fetches a page and extracts the signals the analysis engine scores. Page
parsing is deliberately shallow: the engine only needs text, a handful of
head tags and a few counts.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from auditflow.errors import FetchError

logger = logging.getLogger(__name__)

# Cap on extracted text, enough for scoring and rewriting
MAX_TEXT_LENGTH = 50000


@dataclass
class FetchedPage:
    """Extracted view of a fetched page."""
    url: str
    text: str
    length: int
    title: Optional[str] = None
    meta_description: Optional[str] = None
    h1: Optional[str] = None
    status_code: int = 200
    response_time_ms: float = 0.0
    is_https: bool = False
    has_viewport: bool = False
    viewport_content: Optional[str] = None
    canonical: Optional[str] = None
    structured_data_count: int = 0
    image_count: int = 0
    images_missing_alt: int = 0


class ContentFetcher(ABC):
    """Fetch collaborator: url -> FetchedPage, or FetchError."""

    @abstractmethod
    async def fetch(self, url: str) -> FetchedPage:
        ...

    async def close(self):
        """Release resources, if any."""


def _first(pattern: str, html: str) -> Optional[str]:
    match = re.search(pattern, html, flags=re.DOTALL | re.IGNORECASE)
    if not match:
        return None
    value = re.sub(r"<[^>]+>", " ", match.group(1))
    value = re.sub(r"\s+", " ", value).strip()
    return value or None


def _meta_content(html: str, name: str) -> Optional[str]:
    """Content of <meta name=...>, with attributes in either order."""
    return (
        _first(rf'<meta[^>]+name=["\']{name}["\'][^>]*content=["\']([^"\']*)["\']', html)
        or _first(rf'<meta[^>]+content=["\']([^"\']*)["\'][^>]*name=["\']{name}["\']', html)
    )


def extract_text(html: str) -> str:
    """Extract readable text from HTML."""
    # Remove script and style elements
    html = re.sub(r'<script[^>]*>.*?</script>', '', html, flags=re.DOTALL | re.IGNORECASE)
    html = re.sub(r'<style[^>]*>.*?</style>', '', html, flags=re.DOTALL | re.IGNORECASE)
    html = re.sub(r'<noscript[^>]*>.*?</noscript>', '', html, flags=re.DOTALL | re.IGNORECASE)

    # Block-level tags become line breaks so structure survives
    html = re.sub(r'</?(p|div|h[1-6]|li|ul|ol|section|article|br)[^>]*>', '\n', html, flags=re.IGNORECASE)

    # Remove HTML tags
    text = re.sub(r'<[^>]+>', ' ', html)

    # Clean up whitespace
    text = re.sub(r'[ \t\r\f\v]+', ' ', text)
    text = re.sub(r'\n\s*\n+', '\n\n', text)
    return text.strip()


def parse_page(url: str, html: str, status_code: int = 200, response_time_ms: float = 0.0) -> FetchedPage:
    """Build a FetchedPage from raw HTML."""
    text = extract_text(html)[:MAX_TEXT_LENGTH]
    viewport = _meta_content(html, "viewport")
    images = re.findall(r"<img\b[^>]*>", html, flags=re.IGNORECASE)
    missing_alt = sum(
        1 for tag in images
        if not re.search(r'\balt=["\'][^"\']+["\']', tag, flags=re.IGNORECASE)
    )

    return FetchedPage(
        url=url,
        text=text,
        length=len(text),
        title=_first(r"<title[^>]*>(.*?)</title>", html),
        meta_description=_meta_content(html, "description"),
        h1=_first(r"<h1[^>]*>(.*?)</h1>", html),
        status_code=status_code,
        response_time_ms=response_time_ms,
        is_https=url.lower().startswith("https://"),
        has_viewport=viewport is not None,
        viewport_content=viewport,
        canonical=_first(r'<link[^>]+rel=["\']canonical["\'][^>]*href=["\']([^"\']+)["\']', html),
        structured_data_count=len(re.findall(
            r'<script[^>]+type=["\']application/ld\+json["\']', html, flags=re.IGNORECASE
        )),
        image_count=len(images),
        images_missing_alt=missing_alt,
    )


class HttpContentFetcher(ContentFetcher):
    """
    httpx-backed fetcher.

    Usage:
        fetcher = HttpContentFetcher(timeout=30.0)
        page = await fetcher.fetch("https://example.com/")
        await fetcher.close()
    """

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={
                "User-Agent": "Mozilla/5.0 (compatible; AuditflowBot/1.0)",
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch a page.

        Raises:
            FetchError: on timeout, transport error or a 5xx answer.
                4xx answers are returned as pages so the engine can score them.
        """
        start = time.monotonic()
        try:
            response = await self.client.get(url)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout fetching {url}: {e}")
            raise FetchError(f"Timed out fetching {url}", url=url)
        except httpx.RequestError as e:
            logger.warning(f"Request error fetching {url}: {e}")
            raise FetchError(f"Could not fetch {url}: {e}", url=url)

        elapsed_ms = (time.monotonic() - start) * 1000
        if response.status_code >= 500:
            logger.warning(f"HTTP error fetching {url}: {response.status_code}")
            raise FetchError(
                f"Server error {response.status_code} fetching {url}",
                url=url,
                status=response.status_code,
            )

        return parse_page(
            str(response.url),
            response.text,
            status_code=response.status_code,
            response_time_ms=elapsed_ms,
        )
