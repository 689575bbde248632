"""
Claude API Client

Async wrapper around the Anthropic SDK for the rewrite engine. Every failure,
including a response cut off at the token limit, surfaces as GenerationError
so callers retry it like any other transient collaborator failure.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

import anthropic

from auditflow.errors import GenerationError, LLMNotConfiguredError

logger = logging.getLogger(__name__)

# USD per million (input, output) tokens, matched on model-name prefix
MODEL_PRICING: Dict[str, Tuple[float, float]] = {
    "claude-opus": (15.0, 75.0),
    "claude-sonnet": (3.0, 15.0),
    "claude-3-5-haiku": (0.8, 4.0),
    "claude-haiku": (1.0, 5.0),
}


def price_per_million(model: str) -> Tuple[float, float]:
    for prefix, prices in MODEL_PRICING.items():
        if model.startswith(prefix):
            return prices
    return MODEL_PRICING["claude-sonnet"]


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: "TokenUsage"):
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens

    def cost(self, model: str) -> float:
        input_price, output_price = price_per_million(model)
        return (self.input_tokens * input_price + self.output_tokens * output_price) / 1_000_000


@dataclass
class LLMResponse:
    """Text of one completed LLM call."""
    content: str
    usage: TokenUsage
    model: str
    stop_reason: Optional[str] = None


class LLMClient(ABC):
    """LLM collaborator: prompt in, text out."""

    @abstractmethod
    async def invoke(self, prompt: str, system: Optional[str] = None) -> LLMResponse:
        """
        Raises:
            GenerationError: when the call fails
        """

    def usage_summary(self) -> Dict[str, Any]:
        return {}


class ClaudeClient(LLMClient):
    """
    Async client for the Claude API.

    Usage:
        client = ClaudeClient(api_key=settings.ANTHROPIC_API_KEY, model=settings.CLAUDE_MODEL)
        response = await client.invoke(prompt, system=SYSTEM_PROMPT)
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ):
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not provided")

        self.model = model or self.DEFAULT_MODEL
        self.max_tokens = max_tokens
        self.temperature = temperature
        # Retries and timeouts belong to retry_async / with_timeout
        self.async_client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

        self.usage = TokenUsage()
        self.calls = 0
        self.failures = 0

    async def invoke(self, prompt: str, system: Optional[str] = None) -> LLMResponse:
        request = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system

        try:
            response = await self.async_client.messages.create(**request)
        except anthropic.APIStatusError as e:
            self.failures += 1
            logger.error(f"Claude returned {e.status_code}: {e.message}")
            raise GenerationError(f"LLM call failed with status {e.status_code}")
        except anthropic.APIError as e:
            self.failures += 1
            logger.error(f"Claude API error: {e}")
            raise GenerationError(f"LLM call failed: {e}")

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        self.usage.add(usage)
        self.calls += 1
        logger.info(
            f"Claude {self.model}: {usage.input_tokens} in, {usage.output_tokens} out, "
            f"${usage.cost(self.model):.4f}, stop={response.stop_reason}"
        )

        if response.stop_reason == "max_tokens":
            raise GenerationError(f"LLM output truncated at {self.max_tokens} tokens")

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        return LLMResponse(content=text, usage=usage, model=self.model, stop_reason=response.stop_reason)

    def usage_summary(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "calls": self.calls,
            "failures": self.failures,
            "input_tokens": self.usage.input_tokens,
            "output_tokens": self.usage.output_tokens,
            "estimated_cost_usd": round(self.usage.cost(self.model), 4),
        }


class UnconfiguredLLMClient(LLMClient):
    """Used when no API key is configured; every call fails without retries."""

    async def invoke(self, prompt: str, system: Optional[str] = None) -> LLMResponse:
        raise LLMNotConfiguredError("LLM is not configured (ANTHROPIC_API_KEY missing)")

    def usage_summary(self) -> Dict[str, Any]:
        return {"configured": False}
