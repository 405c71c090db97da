"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    CFG - Configuration errors
    PRV - Provider errors (chat, image, speech backends)
    RAG - Retrieval and indexing errors
    STO - Vector store errors

Usage:
    from ai_nexus.error_codes import ErrorCode

    logger.error(
        "provider_rate_limited",
        error_code=ErrorCode.PRV_RATE_LIMITED.value,
        status_code=429,
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling.

    All error codes inherit from str for JSON serialization compatibility.
    """

    # =========================================================================
    # Configuration Errors (CFG-xxx-xxx)
    # =========================================================================
    CFG_MISSING_ENDPOINT = "CFG-ENDPOINT-001"
    """Provider endpoint is required but not configured."""

    CFG_MISSING_KEY = "CFG-KEY-001"
    """Provider API key is required but not configured."""

    CFG_CHUNKING_INVALID = "CFG-CHUNK-001"
    """Chunk size and overlap do not satisfy chunk_size > overlap >= 0."""

    CFG_FILE_INVALID = "CFG-FILE-001"
    """Config file could not be parsed or validated."""

    # =========================================================================
    # Provider Errors (PRV-xxx-xxx)
    # =========================================================================
    PRV_RATE_LIMITED = "PRV-RATE-001"
    """Provider returned 429 or reported resource exhaustion."""

    PRV_UNAVAILABLE = "PRV-UNAVAIL-001"
    """Provider returned 503."""

    PRV_HTTP_ERROR = "PRV-HTTP-001"
    """Provider returned a non-retryable HTTP error."""

    PRV_NETWORK_ERROR = "PRV-NET-001"
    """Provider could not be reached (connection failure or timeout)."""

    PRV_MALFORMED_RESPONSE = "PRV-RESP-001"
    """Provider response is missing the expected payload."""

    PRV_REFUSED = "PRV-REFUSE-001"
    """Model answered with text instead of the requested media."""

    PRV_POLL_TIMEOUT = "PRV-POLL-001"
    """Asynchronous job was not finished after the maximum poll attempts."""

    PRV_JOB_IMPOSSIBLE = "PRV-POLL-002"
    """Asynchronous job was rejected as impossible to fulfil."""

    PRV_RETRIES_EXHAUSTED = "PRV-RETRY-001"
    """Retry loop ended without a result."""

    PRV_IMAGE_FAILED = "PRV-IMAGE-001"
    """Image generation failed in any provider."""

    # =========================================================================
    # RAG Errors (RAG-xxx-xxx)
    # =========================================================================
    RAG_EMBEDDING_FAILED = "RAG-EMBED-001"
    """Embedding provider failed for a piece of text."""

    RAG_CHUNK_FAILED = "RAG-INDEX-001"
    """Indexing aborted on the first chunk that failed to embed."""

    RAG_READ_FAILED = "RAG-READ-001"
    """Uploaded file could not be read as text."""

    # =========================================================================
    # Storage Errors (STO-xxx-xxx)
    # =========================================================================
    STO_WRITE_FAILED = "STO-WRITE-001"
    """Vector store failed to persist chunks."""

    STO_READ_FAILED = "STO-READ-001"
    """Vector store failed to load chunks for a source."""

    STO_DELETE_FAILED = "STO-DELETE-001"
    """Vector store failed to delete chunks for a source."""
