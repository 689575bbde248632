"""
Tests for the Claude client wrapper, with the Anthropic SDK mocked out.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import anthropic
import pytest

from auditflow.errors import GenerationError
from auditflow.llm import ClaudeClient, TokenUsage, UnconfiguredLLMClient
from auditflow.utils.retry import RetryConfig, retry_async


def sdk_response(text="{}", stop_reason="end_turn", input_tokens=1000, output_tokens=200):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason=stop_reason,
    )


@pytest.fixture
def client():
    claude = ClaudeClient(api_key="test-key", model="claude-sonnet-4-20250514")
    claude.async_client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock()))
    return claude


class TestClaudeClient:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ClaudeClient(api_key="")

    @pytest.mark.asyncio
    async def test_invoke_returns_text_and_tracks_usage(self, client):
        client.async_client.messages.create.return_value = sdk_response('{"ok": true}')

        response = await client.invoke("Rewrite this", system="Be strict")

        assert response.content == '{"ok": true}'
        kwargs = client.async_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Be strict"
        assert kwargs["messages"] == [{"role": "user", "content": "Rewrite this"}]
        summary = client.usage_summary()
        assert summary["calls"] == 1
        assert summary["input_tokens"] == 1000
        assert summary["estimated_cost_usd"] == pytest.approx(0.006)

    @pytest.mark.asyncio
    async def test_truncated_output_is_generation_error(self, client):
        client.async_client.messages.create.return_value = sdk_response('{"rewritten', stop_reason="max_tokens")

        with pytest.raises(GenerationError, match="truncated"):
            await client.invoke("Rewrite this")

    @pytest.mark.asyncio
    async def test_api_error_is_generation_error(self, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.async_client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        with pytest.raises(GenerationError):
            await client.invoke("Rewrite this")
        assert client.usage_summary()["failures"] == 1


class TestTokenUsage:

    def test_cost_by_model_family(self):
        usage = TokenUsage(input_tokens=1_000_000, output_tokens=1_000_000)
        assert usage.cost("claude-sonnet-4-20250514") == pytest.approx(18.0)
        assert usage.cost("claude-opus-4-20250514") == pytest.approx(90.0)
        assert usage.cost("unknown-model") == pytest.approx(18.0)


class TestUnconfiguredClient:

    @pytest.mark.asyncio
    async def test_missing_key_is_not_retried(self):
        client = UnconfiguredLLMClient()
        calls = []

        async def invoke():
            calls.append(1)
            return await client.invoke("Rewrite this")

        with pytest.raises(GenerationError, match="not configured"):
            await retry_async(invoke, RetryConfig(max_retries=3, initial_delay=0))
        assert calls == [1]
        assert client.usage_summary() == {"configured": False}
