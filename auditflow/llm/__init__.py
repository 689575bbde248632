"""LLM collaborator (Anthropic Claude)."""

from .client import LLMClient, ClaudeClient, UnconfiguredLLMClient, LLMResponse, TokenUsage

__all__ = ["LLMClient", "ClaudeClient", "UnconfiguredLLMClient", "LLMResponse", "TokenUsage"]
