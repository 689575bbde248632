"""
Retry and Timeout Helpers

Bounded exponential backoff for transient collaborator failures and a
hard timeout wrapper for every external call.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Type, TypeVar

from auditflow.errors import PipelineError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before retry number `attempt` (0-based)."""
        return min(
            self.initial_delay * (self.exponential_base ** attempt),
            self.max_delay,
        )


async def with_timeout(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    error_cls: Type[PipelineError],
    what: str,
) -> T:
    """
    Await `awaitable` under a hard timeout.

    On timeout the awaitable is cancelled and `error_cls` is raised, so the
    caller sees the same error family as any other failure of that call.
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise error_cls(f"{what} timed out after {timeout:g}s")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    description: str = "operation",
) -> T:
    """
    Run `operation` and retry it while it raises retryable pipeline errors.

    Non-retryable errors (validation, auth, not-found, state) surface on the
    first attempt. After `max_retries` retries the last error is raised.
    """
    config = config or RetryConfig()
    last_error: Optional[BaseException] = None

    for attempt in range(config.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e

        if attempt < config.max_retries:
            delay = config.delay_for(attempt)
            logger.warning(
                f"{description} failed, retrying in {delay:.1f}s "
                f"(attempt {attempt + 1}/{config.max_retries + 1}): {last_error}"
            )
            await asyncio.sleep(delay)

    logger.error(f"{description} failed after {config.max_retries + 1} attempts: {last_error}")
    raise last_error
