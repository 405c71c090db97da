"""Fixed-size overlapping text chunker for RAG indexing."""

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import ConfigError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200


def validate_chunking(chunk_size: int, overlap: int) -> None:
    """Raise ConfigError unless ``chunk_size > overlap >= 0``."""
    if overlap < 0 or chunk_size <= overlap:
        msg = (
            f"Invalid chunking parameters: chunk_size={chunk_size}, overlap={overlap}"
        )
        raise ConfigError(
            msg,
            suggestion="Use a chunk_size larger than overlap, and a non-negative overlap",
            error_code=ErrorCode.CFG_CHUNKING_INVALID.value,
            context={"chunk_size": chunk_size, "overlap": overlap},
        )


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """Split text into overlapping windows of at most ``chunk_size`` characters.

    Consecutive windows start ``chunk_size - overlap`` characters apart. Once
    the next start would leave no more than ``overlap`` new characters, the
    walk stops, so the tail is emitted exactly once.

    Args:
        text: Text to split
        chunk_size: Window length in characters
        overlap: Characters shared by consecutive windows

    Returns:
        Chunks in document order (empty for empty text)

    Raises:
        ConfigError: If chunk_size <= overlap or overlap < 0
    """
    validate_chunking(chunk_size, overlap)

    chunks: list[str] = []
    step = chunk_size - overlap
    length = len(text)
    i = 0
    while i < length:
        chunks.append(text[i : min(i + chunk_size, length)])
        i += step
        if i + overlap >= length:
            i = length
    return chunks
