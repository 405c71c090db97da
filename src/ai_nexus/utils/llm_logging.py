"""Structured logging helpers for generation requests.

Records request start, duration, and output size per provider call, plus
cumulative per-provider counters for the running session.
"""

import time
from collections import defaultdict
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 60.0

_session_metrics: dict[str, dict[str, float]] = defaultdict(
    lambda: {"requests": 0, "errors": 0, "duration": 0.0, "output_chars": 0}
)


def log_generation_request(
    provider: str,
    model: str,
    operation: str,
    prompt_length: int = 0,
    **extra_context: Any,
) -> float:
    """Log generation request start and return start time.

    Args:
        provider: Provider service name (e.g., "gemini", "openai")
        model: Model identifier
        operation: Operation name (e.g., "chat", "image", "speech")
        prompt_length: Length of prompt or system instruction in characters
        **extra_context: Additional context to log

    Returns:
        Start time for duration calculation
    """
    start_time = time.time()
    logger.info(
        "generation_request_start",
        provider=provider,
        model=model,
        operation=operation,
        prompt_length=prompt_length,
        **extra_context,
    )
    return start_time


def log_generation_success(
    provider: str,
    model: str,
    operation: str,
    start_time: float,
    output_length: int,
    **extra_context: Any,
) -> None:
    """Log a finished generation request with timing metrics.

    Args:
        provider: Provider service name
        model: Model identifier
        operation: Operation name
        start_time: Request start time (from log_generation_request)
        output_length: Characters (or bytes for audio) produced
        **extra_context: Additional context to log
    """
    duration = time.time() - start_time
    is_slow = duration > SLOW_REQUEST_SECONDS
    if is_slow:
        logger.warning(
            "generation_slow_request",
            provider=provider,
            model=model,
            operation=operation,
            duration_seconds=round(duration, 2),
        )

    metrics = _session_metrics[provider]
    metrics["requests"] += 1
    metrics["duration"] += duration
    metrics["output_chars"] += output_length

    logger.info(
        "generation_request_success",
        provider=provider,
        model=model,
        operation=operation,
        duration_seconds=round(duration, 3),
        output_length=output_length,
        is_slow=is_slow,
        **extra_context,
    )


def log_generation_error(
    provider: str,
    model: str,
    operation: str,
    start_time: float,
    error: BaseException,
    **extra_context: Any,
) -> None:
    """Log a failed generation request."""
    duration = time.time() - start_time
    _session_metrics[provider]["errors"] += 1
    logger.error(
        "generation_request_error",
        provider=provider,
        model=model,
        operation=operation,
        duration_seconds=round(duration, 3),
        error=str(error),
        error_type=type(error).__name__,
        **extra_context,
    )


def get_session_metrics() -> dict[str, dict[str, float]]:
    """Return a copy of cumulative per-provider metrics."""
    return {provider: dict(values) for provider, values in _session_metrics.items()}


def reset_session_metrics() -> None:
    """Clear cumulative metrics (for testing)."""
    _session_metrics.clear()
