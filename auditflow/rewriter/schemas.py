"""
Rewriter Schemas

Pydantic models for the structured LLM output contract and the rewrite
request. LLM output is parsed strictly: unknown fields, missing fields and
wrong types are all parse failures.
"""

import json
import re
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, ValidationError as PydanticValidationError

from auditflow.errors import GenerationError

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


class RewriteOutput(BaseModel):
    """What the LLM must return for a rewrite."""
    model_config = ConfigDict(extra="forbid", strict=True)

    rewritten_content: str = Field(..., min_length=1)
    keywords_incorporated: List[str]


class EEATSignals(BaseModel):
    """What the LLM must return for an E-E-A-T assessment."""
    model_config = ConfigDict(extra="ignore")

    experience: float = Field(..., ge=0, le=100)
    expertise: float = Field(..., ge=0, le=100)
    authoritativeness: float = Field(..., ge=0, le=100)
    trustworthiness: float = Field(..., ge=0, le=100)
    overall: float = Field(..., ge=0, le=100)

    @classmethod
    def neutral(cls) -> "EEATSignals":
        return cls(experience=50, expertise=50, authoritativeness=50, trustworthiness=50, overall=50)


class RewriteParams(BaseModel):
    """Input of a rewrite request."""

    project_id: UUID
    content_id: Optional[UUID] = None
    original_content: str
    target_keywords: List[str]
    preserve_eeat: bool = True
    tone_style: str = "professional"
    content_type: str = "blog"
    max_length: Optional[int] = Field(None, gt=0)


def _extract_json(text: str) -> str:
    """The JSON object in a response: a fenced block if present, else the raw text."""
    match = _FENCED_JSON_RE.search(text)
    if match:
        return match.group(1)
    return text.strip()


def parse_rewrite_output(text: str) -> RewriteOutput:
    """
    Parse LLM text into RewriteOutput.

    Raises:
        GenerationError: if the text is not exactly the expected JSON object
    """
    try:
        return RewriteOutput.model_validate_json(_extract_json(text))
    except PydanticValidationError as e:
        raise GenerationError(
            "LLM output does not match the rewrite schema",
            {"errors": json.loads(e.json(include_url=False, include_input=False))},
        )


def parse_eeat_signals(text: str) -> EEATSignals:
    """
    Raises:
        GenerationError: if the text is not a valid E-E-A-T object
    """
    try:
        return EEATSignals.model_validate_json(_extract_json(text))
    except PydanticValidationError as e:
        raise GenerationError(f"LLM output does not match the E-E-A-T schema: {e.error_count()} errors")
