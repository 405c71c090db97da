"""Test fixtures package."""

from .mock_dispatcher import MockChatProvider, MockDispatcher
from .mock_embedding_client import MockEmbeddingClient

__all__ = [
    "MockChatProvider",
    "MockDispatcher",
    "MockEmbeddingClient",
]
