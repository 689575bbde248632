"""
Content Rewrite Engine

LLM-backed SEO rewrite of a content blob, stored as an immutable version.

Guarantees:
- LLM output is parsed strictly; unparseable output is retried with a
  stricter prompt (bounded), then surfaces GenerationError; the request
  is still stored as a failed version carrying the error
- Every target keyword appears in the rewrite (case-insensitive), or the
  version is stored with keyword_coverage_incomplete=True after one repair
- The original content is stored verbatim next to every version
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from auditflow.analysis.text import (
    contains_keyword,
    flesch_reading_ease,
    keyword_usage,
    missing_keywords,
)
from auditflow.database import Database, repository
from auditflow.errors import GenerationError, ValidationError
from auditflow.llm import LLMClient
from auditflow.utils.retry import RetryConfig, retry_async, with_timeout
from .prompts import (
    REWRITE_SYSTEM,
    build_eeat_prompt,
    build_repair_prompt,
    build_rewrite_prompt,
    build_strict_reprompt,
)
from .schemas import EEATSignals, RewriteOutput, RewriteParams, parse_eeat_signals, parse_rewrite_output

logger = logging.getLogger(__name__)


def clean_keywords(keywords: List[str]) -> List[str]:
    """Strip, drop blanks and de-duplicate (case-insensitive), keeping order."""
    seen = set()
    cleaned = []
    for keyword in keywords or []:
        value = (keyword or "").strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            cleaned.append(value)
    return cleaned


class ContentRewriter:
    """
    Rewrites content for target keywords and keeps the version history.

    Usage:
        rewriter = ContentRewriter(db=database, llm=ClaudeClient(api_key=...))
        rewrite = await rewriter.rewrite_content(principal, RewriteParams(...))
    """

    MAX_PARSE_RETRIES = 2

    def __init__(
        self,
        db: Database,
        llm: LLMClient,
        call_timeout: Optional[float] = 60.0,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.db = db
        self.llm = llm
        self.call_timeout = call_timeout
        self.retry_config = retry_config or RetryConfig()

    # =========================================================================
    # LLM calls
    # =========================================================================

    async def _invoke(self, prompt: str, description: str) -> str:
        """One LLM call under the hard timeout, retried on transient failures."""
        async def call():
            response = await with_timeout(
                self.llm.invoke(prompt, system=REWRITE_SYSTEM),
                self.call_timeout,
                GenerationError,
                description,
            )
            return response.content

        return await retry_async(call, self.retry_config, description=description)

    async def _generate(self, prompt: str) -> Tuple[RewriteOutput, int]:
        """
        Call the LLM until its output parses, at most MAX_PARSE_RETRIES extra times.

        Returns:
            (parsed output, number of calls made)
        """
        current = prompt
        last_error: Optional[GenerationError] = None

        for attempt in range(self.MAX_PARSE_RETRIES + 1):
            text = await self._invoke(current, "LLM rewrite")
            try:
                return parse_rewrite_output(text), attempt + 1
            except GenerationError as e:
                last_error = e
                logger.warning(
                    f"Rewrite output failed to parse (attempt {attempt + 1}/"
                    f"{self.MAX_PARSE_RETRIES + 1}): {e.message}"
                )
                current = build_strict_reprompt(prompt, e.message)

        raise GenerationError(
            f"LLM output did not match the rewrite schema after "
            f"{self.MAX_PARSE_RETRIES + 1} attempts",
            last_error.details if last_error else None,
        )

    async def _assess_eeat(self, content: str) -> Dict[str, float]:
        """E-E-A-T scores of `content`; neutral 50s when the assessment fails."""
        try:
            text = await self._invoke(build_eeat_prompt(content), "LLM E-E-A-T assessment")
            return parse_eeat_signals(text).model_dump()
        except GenerationError as e:
            logger.warning(f"E-E-A-T assessment failed, using neutral scores: {e.message}")
            return EEATSignals.neutral().model_dump()

    def _record_failure(self, params: RewriteParams, keywords: List[str], error: GenerationError):
        with self.db.session() as session:
            rewrite = repository.insert_failed_rewrite(
                session,
                error.message,
                project_id=params.project_id,
                content_id=params.content_id,
                original_content=params.original_content,
                target_keywords=keywords,
                preserve_eeat=params.preserve_eeat,
                tone_style=params.tone_style,
                content_type=params.content_type,
            )
            logger.error(f"Rewrite {rewrite.id} for project {params.project_id} failed: {error.message}")

    # =========================================================================
    # Operations
    # =========================================================================

    async def rewrite_content(self, principal, params: RewriteParams) -> Dict[str, Any]:
        """
        Rewrite content and persist the new version.

        Raises:
            ValidationError: blank content or no keywords
            NotFoundError: project missing or not owned by the caller
            GenerationError: the LLM failed or never produced parseable output
                (a failed version with the error is stored first)
        """
        if not params.original_content or not params.original_content.strip():
            raise ValidationError("originalContent is required")
        keywords = clean_keywords(params.target_keywords)
        if not keywords:
            raise ValidationError("targetKeywords must contain at least one keyword")

        with self.db.session() as session:
            repository.get_owned_project(session, params.project_id, principal.user_id)

        prompt = build_rewrite_prompt(
            params.original_content,
            keywords,
            params.preserve_eeat,
            params.tone_style,
            params.content_type,
            params.max_length,
        )
        try:
            output, attempts = await self._generate(prompt)
        except GenerationError as e:
            self._record_failure(params, keywords, e)
            raise

        missing = missing_keywords(output.rewritten_content, keywords)
        if missing:
            logger.info(f"Rewrite missing keywords {missing}, requesting one repair")
            try:
                repaired, repair_attempts = await self._generate(
                    build_repair_prompt(output.rewritten_content, missing)
                )
            except GenerationError as e:
                logger.warning(f"Keyword repair failed, keeping first draft: {e.message}")
            else:
                attempts += repair_attempts
                if len(missing_keywords(repaired.rewritten_content, keywords)) <= len(missing):
                    output = repaired
                missing = missing_keywords(output.rewritten_content, keywords)

        content = output.rewritten_content
        if missing:
            logger.warning(f"Keyword coverage incomplete, missing {missing}")

        eeat = await self._assess_eeat(content) if params.preserve_eeat else {}

        with self.db.session() as session:
            rewrite = repository.insert_rewrite(
                session,
                project_id=params.project_id,
                content_id=params.content_id,
                original_content=params.original_content,
                rewritten_content=content,
                target_keywords=keywords,
                preserve_eeat=params.preserve_eeat,
                tone_style=params.tone_style,
                content_type=params.content_type,
                keywords_incorporated=[k for k in keywords if contains_keyword(content, k)],
                keyword_coverage_incomplete=bool(missing),
                keyword_usage=keyword_usage(params.original_content, content, keywords),
                eeat_signals=eeat,
                readability_score=flesch_reading_ease(content),
                content_length=len(content),
                generation_attempts=attempts,
            )
            result = repository.rewrite_to_dict(rewrite)

        logger.info(
            f"Stored rewrite {result['id']} for project {params.project_id} "
            f"({attempts} LLM calls, coverage {'incomplete' if missing else 'complete'})"
        )
        return result

    async def get_content_rewrites(self, principal, content_id) -> List[Dict[str, Any]]:
        """All versions of a content item the caller owns, newest first."""
        content_id = repository.parse_uuid(content_id, "contentId")
        with self.db.session() as session:
            rewrites = repository.list_content_rewrites(session, content_id, principal.user_id)
            return [repository.rewrite_to_dict(r) for r in rewrites]

    async def get_project_rewrites(self, principal, project_id, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent rewrites of a project, newest first."""
        project_id = repository.parse_uuid(project_id, "projectId")
        if limit < 1:
            raise ValidationError("limit must be positive")
        with self.db.session() as session:
            repository.get_owned_project(session, project_id, principal.user_id)
            rewrites = repository.list_project_rewrites(session, project_id, limit)
            return [repository.rewrite_to_dict(r) for r in rewrites]

    async def delete_rewrite(self, principal, rewrite_id) -> Dict[str, Any]:
        """Delete one version; other versions of the same content remain."""
        rewrite_id = repository.parse_uuid(rewrite_id, "rewriteId")
        with self.db.session() as session:
            rewrite = repository.get_rewrite(session, rewrite_id, principal.user_id)
            repository.delete_rewrite(session, rewrite)
        logger.info(f"Deleted rewrite {rewrite_id}")
        return {"success": True, "id": str(rewrite_id)}
