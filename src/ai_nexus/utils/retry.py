"""Classification-aware retry with exponential backoff (via tenacity)."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import FatalProviderError, is_transient_error
from ai_nexus.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 2.0
DEFAULT_JITTER = 1.0


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log retry attempts for observability."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "retry_attempt",
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep if retry_state.next_action else 0, 2),
        error=str(error) if error else None,
        error_type=type(error).__name__ if error else None,
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    jitter: float = DEFAULT_JITTER,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying transient failures with backoff.

    Transient failures (HTTP 429/503, "429" or "RESOURCE_EXHAUSTED" in the
    message) are retried; the wait before retry ``n`` (0-based) is
    ``initial_delay * 2**n`` plus up to ``jitter`` seconds of random jitter.
    Any other error is raised immediately after a single call. When the final
    attempt also fails transiently, its original error is raised.

    Args:
        operation: Zero-argument coroutine function to run
        max_retries: Total number of attempts, including the first
        initial_delay: Base delay in seconds
        jitter: Upper bound of random jitter added to each delay, in seconds
        sleep: Awaitable sleep used between attempts (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The operation's last error, or FatalProviderError if no attempt ran
    """
    retryer = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2)
        + wait_random(0, jitter),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry_attempt,
        sleep=sleep,
        reraise=True,
    )

    async for attempt in retryer:
        with attempt:
            return await operation()

    raise FatalProviderError(
        "API request failed to complete after all retries.",
        error_code=ErrorCode.PRV_RETRIES_EXHAUSTED.value,
        context={"max_retries": max_retries},
    )
