"""
Pytest Configuration and Shared Fixtures

In-memory collaborators for the pipeline: SQLite database, in-process cache
store, a fake page fetcher, a scripted LLM client and temp-dir file storage.
"""

import json
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

import pytest

from auditflow.analysis import ContentFetcher, FetchedPage, TechnicalSEOEngine, parse_page
from auditflow.auth import AuthConfig, Principal
from auditflow.cache import MemoryCacheStore
from auditflow.database import Database, repository
from auditflow.errors import FetchError
from auditflow.llm import LLMClient, LLMResponse, TokenUsage
from auditflow.persistence import FileStorage
from auditflow.tasks import SingleFlight, TaskQueue
from auditflow.utils.config import Settings
from auditflow.utils.retry import RetryConfig


# ============================================================================
# Pages
# ============================================================================

SITE_URL = "https://example.com/"

GOOD_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>Example Project Planning Tools for Small Teams</title>
    <meta name="description" content="Plan projects, track tasks and ship on time with simple planning tools built for small teams.">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <link rel="canonical" href="https://example.com/">
    <script type="application/ld+json">{"@type": "Organization", "name": "Example"}</script>
</head>
<body>
    <h1>Project planning for small teams</h1>
    <p>""" + "We help small teams plan their work. " * 50 + """</p>
    <img src="/team.png" alt="Our team">
</body>
</html>"""

BARE_HTML = """<html><head></head><body><p>Hello there.</p><img src="/x.png"></body></html>"""


class FakeFetcher(ContentFetcher):
    """Serves canned HTML per URL; an exception in `failures` is raised instead."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, default_html: str = GOOD_HTML):
        self.pages = pages or {}
        self.default_html = default_html
        self.failures: Dict[str, List[Exception]] = {}
        self.calls: List[str] = []

    def fail(self, url: str, *errors: Exception):
        self.failures.setdefault(url, []).extend(errors)

    async def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        pending = self.failures.get(url)
        if pending:
            raise pending.pop(0)
        return parse_page(url, self.pages.get(url, self.default_html))


class ScriptedLLM(LLMClient):
    """Returns queued responses in order and records every prompt."""

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self.responses = list(responses or [])
        self.prompts: List[str] = []

    def queue(self, *responses: Union[str, Exception]):
        self.responses.extend(responses)

    async def invoke(self, prompt: str, system: Optional[str] = None) -> LLMResponse:
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return LLMResponse(content=response, usage=TokenUsage(), model="scripted", stop_reason="end_turn")


class FakeClock:
    """Settable clock."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def rewrite_json(content: str, keywords: List[str]) -> str:
    return json.dumps({"rewritten_content": content, "keywords_incorporated": keywords})


EEAT_JSON = json.dumps({
    "experience": 70, "expertise": 80, "authoritativeness": 60,
    "trustworthiness": 90, "overall": 75,
})


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        CACHE_BACKEND="memory",
        STORAGE_PATH=str(tmp_path / "storage"),
        PUBLIC_BASE_URL="http://testserver/files",
        ANTHROPIC_API_KEY=None,
        EXTERNAL_CALL_TIMEOUT=5.0,
        MAX_RETRIES=2,
        RETRY_INITIAL_DELAY=0.0,
        WORKER_CONCURRENCY=2,
    )


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(
        supabase_url="https://test.supabase.co",
        supabase_jwt_secret="super-secret-jwt-key-for-testing-only",
        jwt_algorithm="HS256",
        jwt_audience="authenticated",
        auth_enabled=True,
    )


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id="user-1", email="owner@example.com")


@pytest.fixture
def other_principal() -> Principal:
    return Principal(user_id="user-2", email="other@example.com")


@pytest.fixture
def project(database, principal):
    with database.session() as session:
        return repository.create_project(session, principal.user_id, "Marketing site", "example.com")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_retries=2, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    return FileStorage(base_path=str(tmp_path / "storage"), public_base_url="http://testserver/files")


@pytest.fixture
def engine(cache, fetcher, clock) -> TechnicalSEOEngine:
    return TechnicalSEOEngine(cache=cache, fetcher=fetcher, ttl=timedelta(hours=24), call_timeout=5.0, clock=clock)


@pytest.fixture
def queue() -> TaskQueue:
    return TaskQueue(concurrency=2)


@pytest.fixture
def singleflight() -> SingleFlight:
    return SingleFlight()


@pytest.fixture
def fetch_error():
    def _make(url: str = SITE_URL) -> FetchError:
        return FetchError(f"Timed out fetching {url}", url=url)
    return _make
