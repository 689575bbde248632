"""
Tests for the error taxonomy and the retry/timeout helpers.
"""

import asyncio

import pytest

from auditflow.errors import (
    AuthError,
    FetchError,
    GenerationError,
    InternalError,
    LLMNotConfiguredError,
    NotFoundError,
    StateError,
    StorageTimeoutError,
    ValidationError,
    is_retryable,
)
from auditflow.utils.retry import RetryConfig, retry_async, with_timeout


class TestErrorTaxonomy:

    @pytest.mark.parametrize("error,status", [
        (ValidationError("bad"), 400),
        (AuthError("no"), 401),
        (AuthError("disabled", status_code=403), 403),
        (NotFoundError("gone"), 404),
        (StateError("not yet"), 409),
        (FetchError("down", url="https://example.com"), 502),
        (GenerationError("garbled"), 502),
        (StorageTimeoutError("slow"), 504),
        (InternalError(correlation_id="abc"), 500),
    ])
    def test_status_codes(self, error, status):
        assert error.status_code == status

    def test_only_transient_errors_are_retryable(self):
        assert is_retryable(FetchError("x"))
        assert is_retryable(GenerationError("x"))
        assert is_retryable(StorageTimeoutError("x"))
        assert not is_retryable(ValidationError("x"))
        assert not is_retryable(AuthError("x"))
        assert not is_retryable(NotFoundError("x"))
        assert not is_retryable(RuntimeError("x"))
        assert not is_retryable(LLMNotConfiguredError("x"))

    def test_to_dict(self):
        error = FetchError("Could not fetch", url="https://example.com", status=503)
        assert error.to_dict() == {
            "error": "FetchError",
            "detail": "Could not fetch",
            "details": {"url": "https://example.com", "status": 503},
        }
        assert InternalError(correlation_id="req-1").to_dict()["details"] == {"correlation_id": "req-1"}


class TestRetryConfig:

    def test_backoff_is_exponential_and_capped(self):
        config = RetryConfig(initial_delay=1.0, exponential_base=2.0, max_delay=5.0)
        assert [config.delay_for(i) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]


class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_retries_transient_errors_then_succeeds(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise FetchError("temporary")
            return "ok"

        result = await retry_async(flaky, RetryConfig(max_retries=2, initial_delay=0))
        assert result == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        attempts = []

        async def always_failing():
            attempts.append(1)
            raise GenerationError("still broken")

        with pytest.raises(GenerationError):
            await retry_async(always_failing, RetryConfig(max_retries=2, initial_delay=0))
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_validation_errors_are_not_retried(self):
        attempts = []

        async def invalid():
            attempts.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await retry_async(invalid, RetryConfig(max_retries=5, initial_delay=0))
        assert len(attempts) == 1


class TestWithTimeout:

    @pytest.mark.asyncio
    async def test_timeout_raises_given_error(self):
        with pytest.raises(StorageTimeoutError, match="Cache lookup timed out after 0.01s"):
            await with_timeout(asyncio.sleep(1), 0.01, StorageTimeoutError, "Cache lookup")

    @pytest.mark.asyncio
    async def test_result_passes_through(self):
        async def value():
            return 42

        assert await with_timeout(value(), 1.0, FetchError, "fetch") == 42
        assert await with_timeout(value(), None, FetchError, "fetch") == 42
