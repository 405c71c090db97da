"""Centralized exception hierarchy for ai-nexus.

All custom exceptions inherit from AINexusError, so callers can catch every
error raised by the RAG pipeline and the generation orchestrator with a
single except clause.

Exception Hierarchy:
    AINexusError (base)
     ConfigError - Missing/invalid endpoint, key, or chunking parameters
     ProviderError - Generation backend communication errors
        TransientProviderError - Rate limits and 503s, retried with backoff
        FatalProviderError - Any other non-2xx or malformed response
        ProviderTimeoutError - Polling ceiling exceeded
     EmbeddingError - Embedding backend failures
     IndexingError - Indexing job aborted on an embedding failure
     StorageError - Vector store failures

Usage Examples:
    try:
        context = await rag.find_relevant_context(query, character)
    except EmbeddingError as e:
        print(f"Embedding failed: {e.message}")
        print(f"Suggestion: {e.suggestion}")

    raise TransientProviderError(
        "Rate limited by provider",
        error_code=ErrorCode.PRV_RATE_LIMITED.value,
        status_code=429,
    )
"""

from typing import Any

import httpx

TRANSIENT_STATUS_CODES = frozenset({429, 503})
TRANSIENT_MARKERS = ("429", "RESOURCE_EXHAUSTED")


class AINexusError(Exception):
    """Base exception for all ai-nexus errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (e.g., provider, model)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            suggestion: Optional suggestion for resolving the error
            error_code: Structured error code (e.g., "PRV-RATE-001")
            context: Additional context for debugging
        """
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with error code and suggestion if available."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


# Configuration Errors


class ConfigError(AINexusError):
    """Configuration errors.

    Raised when:
    - An endpoint or API key required by a provider is missing
    - Chunking parameters would stall the chunk cursor
    - Config file or environment values fail validation
    """


# Provider Errors


class ProviderError(AINexusError):
    """Generation backend communication errors.

    Base class for chat, image, and speech provider failures.
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, suggestion, error_code, context)


class TransientProviderError(ProviderError):
    """Rate limited or temporarily unavailable provider (HTTP 429/503)."""


class FatalProviderError(ProviderError):
    """Provider failure that retrying will not fix.

    Raised when:
    - Provider returns a non-2xx status other than 429/503
    - Response body is malformed or missing the expected payload
    - Model refuses the request
    """


class ProviderTimeoutError(ProviderError):
    """Asynchronous provider job did not finish within the polling ceiling."""


# RAG Errors


class EmbeddingError(AINexusError):
    """Embedding provider or network failure."""


class IndexingError(AINexusError):
    """Indexing job aborted before anything was persisted.

    Raised when the file cannot be read, or when a chunk cannot be embedded;
    ``chunk_index`` is the 0-based index of the failing chunk in that case.
    """

    def __init__(
        self,
        message: str,
        chunk_index: int | None = None,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.chunk_index = chunk_index
        super().__init__(message, suggestion, error_code, context)


class StorageError(AINexusError):
    """Vector store read, write, or delete failure."""


def is_transient_error(error: BaseException) -> bool:
    """Check if an error should be retried with backoff.

    An error is transient when it carries an HTTP 429 or 503 status or its
    message mentions "429" or "RESOURCE_EXHAUSTED". Everything else is fatal.

    Args:
        error: The exception to check

    Returns:
        True if the error is transient, False otherwise
    """
    if isinstance(error, TransientProviderError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        if error.response.status_code in TRANSIENT_STATUS_CODES:
            return True
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int) and status_code in TRANSIENT_STATUS_CODES:
        return True
    message = error.message if isinstance(error, AINexusError) else str(error)
    return any(marker in message for marker in TRANSIENT_MARKERS)
